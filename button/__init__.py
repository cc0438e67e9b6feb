"""The Button: a last-press-wins countdown game server."""

__version__ = "1.0.0"
