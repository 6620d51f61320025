"""
Admin API — FastAPI surface over the catalog, settings and stage runs.

Usage::

    from insider.api.app import create_app
    app = create_app()
"""

from insider.api.app import create_app

__all__ = ["create_app"]
