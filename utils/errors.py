"""
Defines custom exception classes for the application.
"""

class AgentException(Exception):
    """Base exception class for the continuous agent."""
    pass

class CollectorError(AgentException):
    """Raised when a change-set source call fails or returns malformed data."""
    pass

class DocumentIOError(AgentException):
    """Raised when the status document cannot be read or written."""
    pass

class PatchError(AgentException):
    """Raised when a section cannot be merged into a document."""
    pass

class FormatterError(AgentException):
    """Raised when an error occurs during section rendering."""
    pass

class StoreError(AgentException):
    """Raised when workflow artifacts cannot be persisted or loaded."""
    pass

class ConfigError(AgentException):
    """Raised when there is a configuration error."""
    pass
