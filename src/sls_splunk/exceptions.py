"""Exceptions for sls-splunk."""

from typing import Any

# ---------------------------------------------------------------------------
# Base Exception
# ---------------------------------------------------------------------------


class SplunkPluginError(Exception):
    """
    Base exception for all sls-splunk errors.

    All exceptions raised by this library inherit from this class,
    allowing the host (or the CLI) to catch every library-specific
    error with a single except clause.
    """

    pass


# ---------------------------------------------------------------------------
# Configuration Exceptions
# ---------------------------------------------------------------------------


class ConfigurationError(SplunkPluginError):
    """
    Raised when the ``custom.splunk`` or ``custom.cicd`` section is invalid.

    Reported before any resource is synthesized so that a partially wired
    resource graph is never produced.

    Attributes:
        field: Dotted configuration key that failed validation
        value: The offending value (``None`` when the key is missing)
        reason: Human readable explanation
    """

    def __init__(self, field: str, value: Any, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid configuration for '{field}': {reason}")


# ---------------------------------------------------------------------------
# Filesystem Exceptions
# ---------------------------------------------------------------------------


class ArtifactError(SplunkPluginError):
    """
    Raised when the forwarder artifact cannot be staged or removed.

    Any underlying ``OSError`` is chained as ``__cause__``.

    Attributes:
        path: Filesystem path that was being read, written or removed
        reason: Human readable explanation
    """

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Forwarder artifact error at {path}: {reason}")


# ---------------------------------------------------------------------------
# Resource Graph Exceptions
# ---------------------------------------------------------------------------


class ResourceGraphError(SplunkPluginError):
    """
    Raised when synthesized declarations would form an invalid template.

    Attributes:
        resource: Logical ID (or type) of the offending declaration
        reason: Human readable explanation
    """

    def __init__(self, resource: str, reason: str) -> None:
        self.resource = resource
        self.reason = reason
        super().__init__(f"Invalid resource graph at '{resource}': {reason}")
