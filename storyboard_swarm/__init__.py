"""Storyboard swarm: turns an uploaded PDF into a page-by-page storyboard."""

__version__ = "0.1.0"
