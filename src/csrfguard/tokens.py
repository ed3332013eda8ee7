import secrets
import sys

DEFAULT_STRENGTH = 16

# Upper bound of the numeric suffix appended to token names
MAX_NAME_SUFFIX = sys.maxsize


def create_token(strength: int = DEFAULT_STRENGTH) -> str:
    """Returns `strength` bytes from the OS CSPRNG, hex encoded.

    16 bytes gives a 32 character token.
    """
    return secrets.token_hex(strength)


def create_token_name(prefix: str) -> str:
    return f"{prefix}{secrets.randbelow(MAX_NAME_SUFFIX + 1)}"
