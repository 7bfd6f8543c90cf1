"""HTTP surface of the storyboard swarm."""

from .main import create_app

__all__ = ["create_app"]
