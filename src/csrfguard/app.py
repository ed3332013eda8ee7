from pathlib import Path

import air
from air.responses import JSONResponse
from fastapi import Form
from pydantic import Field
from starlette.middleware.sessions import SessionMiddleware

from csrfguard.logging import setup_logging
from csrfguard.middleware import csrf_fields
from csrfguard.middleware import CSRFMiddleware
from csrfguard.middleware import get_token_pair
from csrfguard.settings import GuardSettings

BASE_DIR = Path(__file__).resolve().parent
jinja = air.JinjaRenderer(directory=str(BASE_DIR / "templates"))


class AppSettings(GuardSettings):
    # === General ===
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")

    # === Sessions ===
    session_secret: str = Field(default=..., validation_alias="SESSION_SECRET")


settings = AppSettings()

setup_logging(settings)

# Cookie/session tuning
COOKIE_NAME = "sessionid"
COOKIE_SECURE = settings.environment == "production"
COOKIE_SAMESITE = "strict"
COOKIE_MAX_AGE = 60 * 60 * 24 * 14  # 14 days


app = air.Air()

# Added first so it runs inside the session middleware
app.add_middleware(CSRFMiddleware, settings=settings)

app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret,
    session_cookie=COOKIE_NAME,
    same_site=COOKIE_SAMESITE,
    https_only=COOKIE_SECURE,
    max_age=COOKIE_MAX_AGE,
)


@app.get("/")
def index(request: air.Request):
    return jinja(request, "form.html", {"csrf": csrf_fields(request, settings.prefix)})


@app.post("/submit")
def submit(request: air.Request, message: str = Form("")):
    pair = get_token_pair(request, settings.prefix)
    return JSONResponse(
        {
            "ok": True,
            "message": message,
            "next_token": pair.model_dump() if pair else None,
        }
    )


@app.get("/healthz")
def healthz():
    return JSONResponse({"ok": True})
