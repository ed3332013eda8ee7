class CSRFGuardError(Exception):
    """Base class for csrfguard errors."""


class ConfigurationError(CSRFGuardError):
    """Raised when the guard cannot run safely, e.g. no token store or session."""
