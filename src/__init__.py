"""profilegen: cached, provider-agnostic profile image generation."""

from profilegen.version import __version__

__all__ = ["__version__"]
