"""
Tests for pipeline settings and collector config endpoints.
"""

from __future__ import annotations

from insider.core.storage import CONFIG_KEY, SETTINGS_KEY


class TestPipelineSettings:
    def test_defaults_when_absent(self, client):
        assert client.get("/api/settings").json() == {
            "auto_publish": False,
            "retention_days": 30,
            "maintenance_mode": False,
        }

    def test_replace(self, client, api_store):
        response = client.post(
            "/api/settings", json={"auto_publish": True, "retention_days": 7, "maintenance_mode": False}
        )
        assert response.status_code == 200
        assert api_store.documents[SETTINGS_KEY] == {
            "auto_publish": True,
            "retention_days": 7,
            "maintenance_mode": False,
        }
        assert client.get("/api/settings").json()["retention_days"] == 7

    def test_omitted_fields_reset_to_defaults(self, client, api_store):
        client.post("/api/settings", json={"auto_publish": True, "retention_days": 7})
        client.post("/api/settings", json={"maintenance_mode": True})
        assert api_store.documents[SETTINGS_KEY] == {
            "auto_publish": False,
            "retention_days": 30,
            "maintenance_mode": True,
        }

    def test_malformed_body_does_not_write(self, client, api_store):
        for body in ({"retention_days": "soon"}, {"unknown": 1}, {"retention_days": -1}):
            assert client.post("/api/settings", json=body).status_code == 422
        assert SETTINGS_KEY not in api_store.documents


class TestCollectorConfig:
    def test_defaults_when_absent(self, client):
        collector = client.get("/api/config").json()["collector"]
        assert collector["interval_hours"] == 24
        assert collector["enabled"] is True

    def test_replace_keeps_other_sections(self, client, api_store):
        api_store.documents[CONFIG_KEY] = {"news": {"feeds": ["x"]}, "collector": {"interval_hours": 24}}
        response = client.post("/api/config", json={"interval_hours": 6, "enabled": False})
        assert response.status_code == 200
        stored = api_store.documents[CONFIG_KEY]
        assert stored["news"] == {"feeds": ["x"]}
        assert stored["collector"]["interval_hours"] == 6
        assert stored["collector"]["enabled"] is False

    def test_interval_bounds(self, client, api_store):
        assert client.post("/api/config", json={"interval_hours": 0}).status_code == 422
        assert client.post("/api/config", json={"interval_hours": 169}).status_code == 422
        assert CONFIG_KEY not in api_store.documents
