"""droppy: self-hosted file sharing server."""

from droppy.version import __version__

__all__ = ["__version__"]
