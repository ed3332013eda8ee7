import inspect
import logging
import secrets
from typing import Any
from typing import Awaitable
from typing import Callable
from typing import Mapping
from typing import Optional
from typing import TYPE_CHECKING

from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.responses import Response

from csrfguard.exceptions import ConfigurationError
from csrfguard.schemas import TokenPair
from csrfguard.store import storage_lock
from csrfguard.store import TokenStore
from csrfguard.tokens import create_token
from csrfguard.tokens import create_token_name
from csrfguard.tokens import DEFAULT_STRENGTH

if TYPE_CHECKING:
    from csrfguard.settings import GuardSettings

logger = logging.getLogger(__name__)

STATE_CHANGING_METHODS = frozenset({"POST", "PUT", "DELETE", "PATCH"})

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

DEFAULT_PREFIX = "csrf"
DEFAULT_STORAGE_LIMIT = 200

CallNext = Callable[[Request], Awaitable[Response]]
FailureHandler = Callable[[Request, CallNext], Any]


def default_failure_handler(request: Request, call_next: CallNext) -> Response:
    return PlainTextResponse("Failed CSRF check!", status_code=400)


async def parsed_body(request: Request) -> Mapping[str, Any]:
    """Form fields or JSON object of the request body, empty for anything else."""
    content_type = request.headers.get("content-type", "").lower()

    # Cache the raw body first so handlers further down can read it again
    await request.body()

    if content_type.startswith(FORM_CONTENT_TYPES):
        try:
            return await request.form()
        except (HTTPException, MultiPartException) as exc:
            # Unparseable forms carry no token, so they fail the check
            logger.debug("Could not parse form body: %s", exc)
            return {}
    if content_type.startswith("application/json"):
        try:
            data = await request.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}
    return {}


class Guard:
    """CSRF protection based on the OWASP synchronizer token pattern.

    Every request gets a fresh single-use token pair attached to
    ``request.state``; POST, PUT, DELETE and PATCH requests must echo back a
    pair issued earlier under ``{prefix}_name`` / ``{prefix}_value``.
    """

    def __init__(
        self,
        storage: Optional[TokenStore],
        prefix: str = DEFAULT_PREFIX,
        failure_handler: Optional[FailureHandler] = None,
        storage_limit: int = DEFAULT_STORAGE_LIMIT,
        token_strength: int = DEFAULT_STRENGTH,
    ):
        if storage is None:
            raise ConfigurationError("CSRF guard failed. No token storage given.")

        prefix = prefix.rstrip("_")
        if not prefix:
            raise ConfigurationError("CSRF prefix must not be empty.")
        if storage_limit < 1:
            raise ConfigurationError("CSRF storage limit must be at least 1.")
        if token_strength < 1:
            raise ConfigurationError("CSRF token strength must be at least 1 byte.")

        self._storage = storage
        self._prefix = prefix
        self._storage_limit = storage_limit
        self._token_strength = token_strength
        self._failure_handler = failure_handler

    @classmethod
    def from_settings(
        cls,
        storage: Optional[TokenStore],
        settings: "GuardSettings",
        failure_handler: Optional[FailureHandler] = None,
    ) -> "Guard":
        return cls(
            storage,
            prefix=settings.prefix,
            failure_handler=failure_handler,
            storage_limit=settings.storage_limit,
            token_strength=settings.token_strength,
        )

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def storage(self) -> TokenStore:
        return self._storage

    @property
    def storage_limit(self) -> int:
        return self._storage_limit

    @property
    def token_strength(self) -> int:
        return self._token_strength

    @property
    def token_name_key(self) -> str:
        return f"{self._prefix}_name"

    @property
    def token_value_key(self) -> str:
        return f"{self._prefix}_value"

    @property
    def failure_handler(self) -> FailureHandler:
        if self._failure_handler is None:
            self._failure_handler = default_failure_handler
        return self._failure_handler

    @failure_handler.setter
    def failure_handler(self, handler: Optional[FailureHandler]) -> None:
        self._failure_handler = handler

    async def handle(self, request: Request, call_next: CallNext) -> Response:
        if request.method in STATE_CHANGING_METHODS:
            body = await parsed_body(request)
            name = self._submitted(body, self.token_name_key)
            value = self._submitted(body, self.token_value_key)

            # A submitted name is always consumed, even when the value is missing
            valid = name is not None and self.validate_token(name, value or "")
            if not valid:
                logger.warning(
                    "Failed CSRF check for %s %s (token %s)",
                    request.method,
                    request.url.path,
                    name or "<missing>",
                )
                # validate_token burned the submitted token, hand out a new one
                request = self.generate_new_token(request)
                response = self.failure_handler(request, call_next)
                if inspect.isawaitable(response):
                    response = await response
                return response

        request = self.generate_new_token(request)
        return await call_next(request)

    def validate_token(self, name: str, value: str) -> bool:
        """Checks `value` against the stored token and removes it either way."""
        stored = self._storage.pop(name, None)
        if stored is None or not value:
            return False
        return secrets.compare_digest(str(stored).encode("utf-8"), value.encode("utf-8"))

    def issue_token(self) -> TokenPair:
        pair = TokenPair(name=create_token_name(self._prefix), value=create_token(self._token_strength))
        self._storage[pair.name] = pair.value
        self.enforce_storage_limit()
        logger.debug("Issued CSRF token %s", pair.name)
        return pair

    def generate_new_token(self, request: Request) -> Request:
        pair = self.issue_token()
        setattr(request.state, self.token_name_key, pair.name)
        setattr(request.state, self.token_value_key, pair.value)
        return request

    def enforce_storage_limit(self) -> None:
        # Oldest first; most tokens are never submitted back
        with storage_lock(self._storage):
            while len(self._storage) > self._storage_limit:
                oldest = next(iter(self._storage))
                self._storage.pop(oldest, None)
                logger.debug("Evicted CSRF token %s", oldest)

    @staticmethod
    def _submitted(body: Mapping[str, Any], key: str) -> Optional[str]:
        value = body.get(key)
        if isinstance(value, str) and value:
            return value
        return None
