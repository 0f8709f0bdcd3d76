"""Version information for CodeBrief."""

__version__ = "0.3.0"
