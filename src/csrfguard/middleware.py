from typing import Optional
from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from csrfguard.guard import DEFAULT_PREFIX
from csrfguard.guard import DEFAULT_STORAGE_LIMIT
from csrfguard.guard import FailureHandler
from csrfguard.guard import Guard
from csrfguard.schemas import TokenPair
from csrfguard.store import session_store
from csrfguard.store import TokenStore
from csrfguard.tokens import DEFAULT_STRENGTH

if TYPE_CHECKING:
    from csrfguard.settings import GuardSettings


class CSRFMiddleware(BaseHTTPMiddleware):
    """Runs every request through a `Guard`.

    Without an explicit `storage` the tokens are kept in the request session,
    so SessionMiddleware has to be installed outside of this middleware.
    """

    def __init__(
        self,
        app,
        storage: Optional[TokenStore] = None,
        settings: Optional["GuardSettings"] = None,
        failure_handler: Optional[FailureHandler] = None,
        prefix: Optional[str] = None,
        storage_limit: Optional[int] = None,
        token_strength: Optional[int] = None,
    ):
        super().__init__(app)
        defaults = {
            "prefix": settings.prefix if settings else DEFAULT_PREFIX,
            "storage_limit": settings.storage_limit if settings else DEFAULT_STORAGE_LIMIT,
            "token_strength": settings.token_strength if settings else DEFAULT_STRENGTH,
        }
        overrides = {
            "prefix": prefix,
            "storage_limit": storage_limit,
            "token_strength": token_strength,
        }
        self.options = {
            key: overrides[key] if overrides[key] is not None else default
            for key, default in defaults.items()
        }
        self.failure_handler = failure_handler
        # One guard for all requests when the store is shared
        self.guard = self._build_guard(storage) if storage is not None else None

    def _build_guard(self, storage: TokenStore) -> Guard:
        return Guard(storage, failure_handler=self.failure_handler, **self.options)

    async def dispatch(self, request, call_next):
        if self.guard is not None:
            return await self.guard.handle(request, call_next)

        key = self.options["prefix"].rstrip("_")
        guard = self._build_guard(session_store(request, key))
        response = await guard.handle(request, call_next)
        # The session only tracks top-level writes, reassign so the cookie is rewritten
        request.session[key] = dict(guard.storage)
        return response


def get_token_pair(request: Request, prefix: str = DEFAULT_PREFIX) -> Optional[TokenPair]:
    """Token pair attached to `request` by the guard, if any."""
    prefix = prefix.rstrip("_")
    name = getattr(request.state, f"{prefix}_name", None)
    value = getattr(request.state, f"{prefix}_value", None)
    if not name or not value:
        return None
    return TokenPair(name=name, value=value)


def csrf_fields(request: Request, prefix: str = DEFAULT_PREFIX) -> dict:
    """Hidden form fields for the current token pair, e.g. for templates."""
    pair = get_token_pair(request, prefix)
    if pair is None:
        return {}
    prefix = prefix.rstrip("_")
    return {f"{prefix}_name": pair.name, f"{prefix}_value": pair.value}
