"""Token stores.

Any ``MutableMapping[str, str]`` that preserves insertion order can hold
tokens; the guard evicts from the front of its iteration order.
"""
from collections.abc import Iterator
from collections.abc import MutableMapping
from contextlib import nullcontext
from threading import RLock

from starlette.requests import Request

from csrfguard.exceptions import ConfigurationError

TokenStore = MutableMapping[str, str]


class MemoryTokenStore(MutableMapping):
    """Process-local ordered store, safe to share between threads.

    Each operation holds a lock so ``pop`` of a given key succeeds at most
    once, which is what limits an issued token to a single validation.
    Multi-step updates such as eviction hold ``lock`` for the whole sequence.
    """

    def __init__(self, initial=None):
        self._tokens: dict[str, str] = dict(initial or {})
        self._lock = RLock()

    @property
    def lock(self) -> RLock:
        return self._lock

    def __getitem__(self, key: str) -> str:
        with self._lock:
            return self._tokens[key]

    def __setitem__(self, key: str, value: str) -> None:
        with self._lock:
            self._tokens[key] = value

    def __delitem__(self, key: str) -> None:
        with self._lock:
            del self._tokens[key]

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._tokens))

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

    def pop(self, key, *default):
        with self._lock:
            return self._tokens.pop(key, *default)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({len(self)} tokens)"


def storage_lock(store: TokenStore):
    """Lock guarding multi-step updates of `store`, a no-op for plain mappings."""
    return getattr(store, "lock", None) or nullcontext()


def session_store(request: Request, key: str) -> TokenStore:
    """Returns the token mapping kept under `key` in the request session.

    Tokens get their own sub-mapping so eviction never touches other
    session data (e.g. the logged in user id).
    """
    if "session" not in request.scope:
        raise ConfigurationError("CSRF middleware failed. Session not found.")

    tokens = request.session.get(key)
    if not isinstance(tokens, dict):
        tokens = {}
        request.session[key] = tokens
    return tokens
