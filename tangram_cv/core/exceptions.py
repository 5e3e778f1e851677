"""Custom exceptions for the application."""

class ApplicationError(Exception):
    """Base application error."""
    pass

class ConfigError(ApplicationError):
    """Configuration-related errors."""
    pass

class ValidationError(ApplicationError, ValueError):
    """Malformed domain data (bad matrix shape, duplicate target ids...)."""
    pass

class DetectionError(ApplicationError):
    """Detector output that cannot be mapped (e.g. a malformed frame payload)."""
    pass
