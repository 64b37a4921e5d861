from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite+aiosqlite:///./data/attempts.db"
    log_level: str = "INFO"
    listening_questions_per_part: int = 10

def load_settings() -> Settings:
    load_dotenv()
    database_url = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./data/attempts.db").strip()
    if not database_url:
        raise RuntimeError("DATABASE_URL must not be empty")

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    if log_level not in _LOG_LEVELS:
        raise RuntimeError("LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")

    raw_per_part = os.getenv("LISTENING_QUESTIONS_PER_PART", "10").strip()
    try:
        per_part = int(raw_per_part)
    except ValueError:
        raise RuntimeError("LISTENING_QUESTIONS_PER_PART must be an integer") from None
    if per_part <= 0:
        raise RuntimeError("LISTENING_QUESTIONS_PER_PART must be positive")

    return Settings(
        database_url=database_url,
        log_level=log_level,
        listening_questions_per_part=per_part,
    )

def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
