"""Deploy — publish the public subset of the catalog."""

from insider.deploy.stage import published_view, run_deploy

__all__ = ["published_view", "run_deploy"]
