"""Runtime settings and logging setup.

Settings are read from environment variables. A `.env` file in the working
directory is loaded first when present, so local development does not need
exported variables.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from logging.config import dictConfig
from typing import List

from dotenv import load_dotenv


def _split_origins(value: str) -> List[str]:
    return [o.strip() for o in value.split(",") if o.strip()]


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///:memory:"
    ping_interval: float = 30.0
    queue_size: int = 100
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 5000

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            database_url=os.getenv("DATABASE_URL", "sqlite:///:memory:"),
            ping_interval=float(os.getenv("STREAM_PING_INTERVAL", "30")),
            queue_size=int(os.getenv("STREAM_QUEUE_SIZE", "100")),
            cors_origins=_split_origins(os.getenv("CORS_ORIGINS", "*")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "5000")),
        )


def configure_logging(level: str = "INFO") -> None:
    """Send application and uvicorn logs to one console handler."""
    dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {"format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"},
        },
        "handlers": {
            "console": {"class": "logging.StreamHandler", "formatter": "plain"},
        },
        "loggers": {
            "": {"handlers": ["console"], "level": level},
            "uvicorn": {"handlers": ["console"], "level": level, "propagate": False},
            "uvicorn.error": {"handlers": ["console"], "level": level, "propagate": False},
            "uvicorn.access": {"handlers": ["console"], "level": level, "propagate": False},
        },
    })
