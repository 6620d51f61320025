"""Dataclass models for the documents the pipeline reads and writes.

All models use :func:`dataclasses.dataclass`.  Field names match the keys
of the persisted JSON documents exactly, so ``to_dict()`` output is what
lands on disk and ``from_dict()`` accepts what an older process (or an
operator editing the file by hand) left there.

Documents
---------
RawBatch          ``raw_data.json`` and ``history/raw_data_<ts>.json``
Catalog           ``analyzed_data.json``
PipelineSettings  ``settings.json``
CollectorConfig   ``config.json`` (``collector`` section)

Tags:
    insider, models, dataclasses, documents
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from insider.core.errors import ConfigError


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


def format_timestamp(value: datetime) -> str:
    """ISO 8601 with millisecond precision and a ``Z`` suffix."""
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO 8601 timestamp; ``None`` for empty or unparseable input."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _int_or(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _config_int(data: dict[str, Any], key: str, default: int) -> int:
    """Integer setting from a hand-editable document; bad values are a ConfigError."""
    value = data.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be an integer, got {value!r}", cause=exc) from exc


class EntryStatus(str, Enum):
    """Publish state of a catalog entry."""

    DRAFT = "draft"
    PUBLISHED = "published"


# ── Source records ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class SourceRecord:
    """One repository as returned by a collection pass. Identity is ``url``."""

    name: str
    url: str
    description: str | None = None
    stars: int = 0
    updated_at: str | None = None
    language: str | None = None
    license: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "url": self.url,
            "description": self.description,
            "stars": self.stars,
            "updated_at": self.updated_at,
            "language": self.language,
            "license": self.license,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SourceRecord:
        return cls(
            name=data.get("name") or data.get("url", ""),
            url=data["url"],
            description=data.get("description"),
            stars=_int_or(data.get("stars"), 0),
            updated_at=data.get("updated_at"),
            language=data.get("language"),
            license=data.get("license"),
        )


_RECORD_KEYS = frozenset(f.name for f in fields(SourceRecord))


@dataclass
class RawBatch:
    """Output of one collection pass."""

    timestamp: str
    repositories: list[SourceRecord] = field(default_factory=list)

    @property
    def total_count(self) -> int:
        return len(self.repositories)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "total_count": self.total_count,
            "repositories": [r.to_dict() for r in self.repositories],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RawBatch:
        return cls(
            timestamp=data.get("timestamp", ""),
            repositories=[
                SourceRecord.from_dict(r) for r in data.get("repositories", []) if r.get("url")
            ],
        )


# ── Enrichment ───────────────────────────────────────────────────────────


@dataclass
class Annotation:
    """Structured enrichment output attached to a catalog entry.

    Keys the model returns beyond the known ones are kept in ``extra``
    and written back unchanged.
    """

    summary: str = ""
    catchphrase: str = ""
    wow_factor: str = ""
    dev_utility: int | None = None
    category: list[str] = field(default_factory=list)
    safety_level: str = "Unknown"
    use_cases: list[str] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    _KNOWN = ("summary", "catchphrase", "wow_factor", "dev_utility", "category", "safety_level", "use_cases")

    def to_dict(self) -> dict[str, Any]:
        data = {
            "summary": self.summary,
            "catchphrase": self.catchphrase,
            "wow_factor": self.wow_factor,
            "dev_utility": self.dev_utility,
            "category": list(self.category),
            "safety_level": self.safety_level,
            "use_cases": list(self.use_cases),
        }
        data.update(self.extra)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Annotation:
        category = data.get("category") or []
        if isinstance(category, str):
            category = [category]
        use_cases = data.get("use_cases") or []
        if isinstance(use_cases, str):
            use_cases = [use_cases]
        dev_utility = data.get("dev_utility")
        try:
            dev_utility = int(dev_utility) if dev_utility is not None else None
        except (TypeError, ValueError):
            dev_utility = None
        return cls(
            summary=str(data.get("summary") or data.get("summary_ja") or ""),
            catchphrase=str(data.get("catchphrase") or ""),
            wow_factor=str(data.get("wow_factor") or ""),
            dev_utility=dev_utility,
            category=[str(c) for c in category],
            safety_level=str(data.get("safety_level") or "Unknown"),
            use_cases=[str(u) for u in use_cases],
            extra={k: v for k, v in data.items() if k not in cls._KNOWN and k != "summary_ja"},
        )


# ── Catalog ──────────────────────────────────────────────────────────────


@dataclass
class CatalogEntry:
    """A catalog record for one source item, across its full lifecycle.

    ``extra`` holds fields an operator attached through the admin API.
    A re-merge rebuilds the entry from the fresh record, so they last
    until the next successful enrichment of the same url.
    """

    record: SourceRecord
    analysis: Annotation | None = None
    status: EntryStatus = EntryStatus.DRAFT
    analyzed_at: datetime | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def url(self) -> str:
        return self.record.url

    @property
    def is_published(self) -> bool:
        return self.status is EntryStatus.PUBLISHED

    def age_days(self, now: datetime) -> float | None:
        """Age relative to ``analyzed_at`` in fractional days."""
        if self.analyzed_at is None:
            return None
        return (now - self.analyzed_at).total_seconds() / 86400

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data.update(self.record.to_dict())
        data["analysis"] = self.analysis.to_dict() if self.analysis is not None else None
        data["status"] = self.status.value
        data["analyzed_at"] = format_timestamp(self.analyzed_at) if self.analyzed_at else None
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CatalogEntry:
        analysis = data.get("analysis")
        try:
            status = EntryStatus(data.get("status") or EntryStatus.DRAFT.value)
        except ValueError:
            status = EntryStatus.DRAFT
        reserved = _RECORD_KEYS | {"analysis", "status", "analyzed_at"}
        return cls(
            record=SourceRecord.from_dict(data),
            analysis=Annotation.from_dict(analysis) if isinstance(analysis, dict) else None,
            status=status,
            analyzed_at=parse_timestamp(data.get("analyzed_at")),
            extra={k: v for k, v in data.items() if k not in reserved},
        )


@dataclass
class Catalog:
    """Ordered collection of entries keyed by ``url``."""

    entries: list[CatalogEntry] = field(default_factory=list)
    last_updated: datetime | None = None

    @property
    def total_count(self) -> int:
        return len(self.entries)

    def get(self, url: str) -> CatalogEntry | None:
        for entry in self.entries:
            if entry.url == url:
                return entry
        return None

    def urls(self) -> list[str]:
        return [e.url for e in self.entries]

    def to_dict(self) -> dict[str, Any]:
        return {
            "last_updated": format_timestamp(self.last_updated) if self.last_updated else None,
            "total_count": self.total_count,
            "projects": [e.to_dict() for e in self.entries],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Catalog:
        return cls(
            entries=[CatalogEntry.from_dict(p) for p in data.get("projects", []) if p.get("url")],
            last_updated=parse_timestamp(data.get("last_updated")),
        )


# ── Runtime documents ────────────────────────────────────────────────────


@dataclass(frozen=True)
class PipelineSettings:
    """Operator-tunable merge settings; a pass reads one snapshot."""

    auto_publish: bool = False
    retention_days: int = 30
    maintenance_mode: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "auto_publish": self.auto_publish,
            "retention_days": self.retention_days,
            "maintenance_mode": self.maintenance_mode,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> PipelineSettings:
        data = data or {}
        retention_days = _config_int(data, "retention_days", 30)
        if retention_days < 0:
            raise ConfigError(f"retention_days must be >= 0, got {retention_days}")
        return cls(
            auto_publish=bool(data.get("auto_publish", False)),
            retention_days=retention_days,
            maintenance_mode=bool(data.get("maintenance_mode", False)),
        )


MIN_INTERVAL_HOURS = 1
MAX_INTERVAL_HOURS = 168
DEFAULT_SOURCE_SELECTOR = "topic:model-context-protocol"


@dataclass(frozen=True)
class CollectorConfig:
    """Collector section of the config document."""

    enabled: bool = True
    source_selector: str = DEFAULT_SOURCE_SELECTOR
    interval_hours: int = 24
    per_page: int = 30
    max_pages: int = 3

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "source_selector": self.source_selector,
            "interval_hours": self.interval_hours,
            "per_page": self.per_page,
            "max_pages": self.max_pages,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> CollectorConfig:
        """Build from either the whole config document or its ``collector`` section."""
        data = data or {}
        if isinstance(data.get("collector"), dict):
            data = data["collector"]
        interval = _config_int(data, "interval_hours", 24)
        if not MIN_INTERVAL_HOURS <= interval <= MAX_INTERVAL_HOURS:
            raise ConfigError(
                f"interval_hours must be within [{MIN_INTERVAL_HOURS}, {MAX_INTERVAL_HOURS}], got {interval}"
            )
        return cls(
            enabled=bool(data.get("enabled", True)),
            source_selector=str(data.get("source_selector") or DEFAULT_SOURCE_SELECTOR),
            interval_hours=interval,
            per_page=_config_int(data, "per_page", 30) or 30,
            max_pages=_config_int(data, "max_pages", 3) or 3,
        )
