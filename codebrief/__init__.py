"""CodeBrief: cached, two-stage LLM analysis of a workspace's structure."""

from .version import __version__

__all__ = ["__version__"]
