"""HTTP trigger surface."""

from cgov_sync.api.app import build_app, default_app

__all__ = ["build_app", "default_app"]
