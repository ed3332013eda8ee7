from csrfguard.exceptions import ConfigurationError
from csrfguard.exceptions import CSRFGuardError
from csrfguard.guard import Guard
from csrfguard.guard import STATE_CHANGING_METHODS
from csrfguard.middleware import CSRFMiddleware
from csrfguard.middleware import csrf_fields
from csrfguard.middleware import get_token_pair
from csrfguard.schemas import TokenPair
from csrfguard.store import MemoryTokenStore

__all__ = [
    "ConfigurationError",
    "CSRFGuardError",
    "CSRFMiddleware",
    "Guard",
    "MemoryTokenStore",
    "STATE_CHANGING_METHODS",
    "TokenPair",
    "csrf_fields",
    "get_token_pair",
]
