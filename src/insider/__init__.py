"""
insider — topic-driven repository catalog with LLM enrichment.

Collects repositories matching a search topic, enriches each with an
LLM-generated annotation, and serves the catalog through an admin API
that can edit records, tune settings, and stream pipeline runs live.

Subpackages
-----------
core        errors, logging, settings, document models, storage
collector   paginated search capability + collect stage
analyzer    enrichment session, merge engine, analyze stage
scheduling  adaptive collection timer + config change notification
gateway     stage subprocesses as cancellable event streams
api         FastAPI admin surface
cli         Typer entry points (``insider collect|analyze|deploy|serve|schedule``)
"""

__version__ = "0.3.0"
