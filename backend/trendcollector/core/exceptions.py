"""Custom exception classes for the application."""

from typing import Optional


class TrendCollectorException(Exception):
    """Base exception for all trend collector errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class NotFoundError(TrendCollectorException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} with identifier '{identifier}' not found")


class SearchToolError(TrendCollectorException):
    """Base class for failures of the external search tool."""


class ToolNotInstalled(SearchToolError):
    """Raised when the search tool binary cannot be spawned.

    This is a deployment precondition, not a transient fault, so a full
    collection run aborts before any keyword is touched.
    """

    def __init__(self, binary: str = "yt-dlp"):
        self.binary = binary
        super().__init__(f"{binary} is not installed or not on PATH")


class ToolExecutionFailed(SearchToolError):
    """Raised when the search tool exits non-zero without producing any record."""

    def __init__(self, exit_code: Optional[int], binary: str = "yt-dlp"):
        self.exit_code = exit_code
        self.binary = binary
        super().__init__(f"{binary} exited with code {exit_code}")


class ToolSpawnFailed(SearchToolError):
    """Raised when the search tool exists but the OS refused to start it."""

    def __init__(self, reason: str, binary: str = "yt-dlp"):
        self.reason = reason
        self.binary = binary
        super().__init__(f"{binary} could not be started: {reason}")


class ParseError(TrendCollectorException):
    """A single output line could not be decoded into a record.

    Handed to the parser's error callback; never raised to callers.
    """

    def __init__(self, line: str, reason: str):
        self.line = line
        self.reason = reason
        super().__init__(f"Unparseable line ({reason}): {line[:80]}")


class PersistenceError(TrendCollectorException):
    """Raised when a single record cannot be written to the database."""

    def __init__(self, resource: str, message: str):
        self.resource = resource
        super().__init__(f"Failed to persist {resource}: {message}")


class CollectionInProgressError(TrendCollectorException):
    """Raised when a manual run is requested while another run is active."""

    def __init__(self):
        super().__init__("A collection run is already in progress")
