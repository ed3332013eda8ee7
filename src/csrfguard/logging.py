"""Logging configuration helpers."""
from logging.config import dictConfig
from typing import Any
from typing import Dict
from typing import Optional
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from csrfguard.settings import GuardSettings


def build_logging_config(settings: Optional["GuardSettings"] = None) -> Dict[str, Any]:
    level = settings.log_level if settings else "INFO"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {
                "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            },
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "console",
            },
        },
        "loggers": {
            "": {"handlers": ["default"], "level": "INFO"},
            "csrfguard": {"level": level},
        },
    }


def setup_logging(settings: Optional["GuardSettings"] = None) -> None:
    dictConfig(build_logging_config(settings))


__all__ = ["setup_logging", "build_logging_config"]
