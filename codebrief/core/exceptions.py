"""Exceptions raised by CodeBrief."""


class CodeBriefError(Exception):
    """Base class for errors surfaced to CodeBrief callers."""


class WorkspaceScanError(CodeBriefError):
    """The workspace root itself could not be read."""


class ConfigurationError(CodeBriefError):
    """A configuration file or value is invalid."""


class ProviderUnavailableError(CodeBriefError):
    """The configured LLM endpoint did not answer a health check."""
