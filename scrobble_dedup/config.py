import logging
import os
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path

from dotenv import load_dotenv

from .errors import ConfigurationError

PROJECT_ROOT = Path(__file__).parent.parent

load_dotenv(PROJECT_ROOT / ".env")

DATA_DIR = Path(os.getenv("DATA_DIR", str(PROJECT_ROOT / "data")))

INPUT_DAY_FORMAT = "%d-%m-%Y"

CACHE_TYPES = {"file", "inmemory", "redis"}


def _str_to_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def _str_to_float(val: str | None, default: float) -> float:
    try:
        return float(val) if val is not None else default
    except Exception:
        return default


def _str_to_int(val: str | None, default: int) -> int:
    try:
        return int(val) if val is not None else default
    except Exception:
        return default


def _str_to_setting_int(name: str, val: str | None, default: int) -> int:
    """Parse a whole number that selects what gets deleted. A typo is an error."""
    if val is None or not val.strip():
        return default
    try:
        return int(val.strip())
    except ValueError as e:
        raise ConfigurationError(f"invalid {name} {val!r}, expected a whole number") from e


def _str_to_date(val: str | None) -> date | None:
    """Parse a DD-MM-YYYY day. Unlike numbers, a malformed date is an error."""
    if val is None or not val.strip():
        return None
    try:
        return datetime.strptime(val.strip(), INPUT_DAY_FORMAT).date()
    except ValueError as e:
        raise ConfigurationError(f"invalid date {val!r}, expected DD-MM-YYYY") from e


@dataclass(frozen=True)
class Settings:
    """Application configuration loaded from environment variables."""

    lastfm_user: str
    lastfm_password: str
    delete: bool = False
    start_page: int = 0
    date_from: date | None = None
    date_to: date | None = None
    duplicate_threshold: int = 90
    complete_threshold: int = 0
    cache_type: str = "file"
    cache_file: str = str(DATA_DIR / "cache.db")
    cache_flush_interval: float = 30.0
    redis_url: str = ""
    data_dir: str = str(DATA_DIR)
    log_level: str = "INFO"
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""
    request_timeout: float = 30.0
    musicbrainz_max_retries: int = 10
    page_max_retries: int = 3
    delete_max_retries: int = 3

    @property
    def dry_run(self) -> bool:
        return not self.delete

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)

    def validate(self) -> None:
        """Raise ConfigurationError if settings contradict each other."""
        if not 0 <= self.duplicate_threshold <= 100:
            raise ConfigurationError("duplicate threshold must be between 0 and 100")
        if not 0 <= self.complete_threshold <= 100:
            raise ConfigurationError("complete threshold must be between 0 and 100")
        if self.start_page < 0:
            raise ConfigurationError("start page must not be negative")
        if self.start_page and (self.date_from or self.date_to):
            raise ConfigurationError("start page and from/to dates must not be set at the same time")
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ConfigurationError('"to" date must be after "from" date')
        if self.cache_type not in CACHE_TYPES:
            raise ConfigurationError(f"unsupported cache type: {self.cache_type}")
        if self.cache_type == "redis" and not self.redis_url:
            raise ConfigurationError("REDIS_URL must be set if cache type is redis")
        if bool(self.telegram_bot_token) != bool(self.telegram_chat_id):
            raise ConfigurationError("telegram bot token and chat id must both be set")
        for name in ("musicbrainz_max_retries", "page_max_retries", "delete_max_retries"):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{name} must be at least 1")

    @staticmethod
    def from_env() -> "Settings":
        """Load settings from environment variables."""
        lastfm_user = os.getenv("LASTFM_USER", "").strip()
        lastfm_password = os.getenv("LASTFM_PASSWORD", "")
        if not lastfm_user or not lastfm_password:
            raise ConfigurationError("LASTFM_USER and LASTFM_PASSWORD must be set in environment or .env")

        data_dir = os.getenv("DATA_DIR", str(DATA_DIR))

        log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        if log_level not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            log_level = "INFO"

        return Settings(
            lastfm_user=lastfm_user,
            lastfm_password=lastfm_password,
            delete=_str_to_bool(os.getenv("DELETE"), False),
            start_page=_str_to_setting_int("START_PAGE", os.getenv("START_PAGE"), 0),
            date_from=_str_to_date(os.getenv("DATE_FROM")),
            date_to=_str_to_date(os.getenv("DATE_TO")),
            duplicate_threshold=_str_to_setting_int("DUPLICATE_THRESHOLD", os.getenv("DUPLICATE_THRESHOLD"), 90),
            complete_threshold=_str_to_setting_int("COMPLETE_THRESHOLD", os.getenv("COMPLETE_THRESHOLD"), 0),
            cache_type=os.getenv("CACHE_TYPE", "file").strip().lower(),
            cache_file=os.getenv("CACHE_FILE", str(Path(data_dir) / "cache.db")),
            cache_flush_interval=_str_to_float(os.getenv("CACHE_FLUSH_INTERVAL"), 30.0),
            redis_url=os.getenv("REDIS_URL", "").strip(),
            data_dir=data_dir,
            log_level=log_level,
            telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN", "").strip(),
            telegram_chat_id=os.getenv("TELEGRAM_CHAT_ID", "").strip(),
            request_timeout=_str_to_float(os.getenv("REQUEST_TIMEOUT"), 30.0),
            musicbrainz_max_retries=_str_to_int(os.getenv("MUSICBRAINZ_MAX_RETRIES"), 10),
            page_max_retries=_str_to_int(os.getenv("PAGE_MAX_RETRIES"), 3),
            delete_max_retries=_str_to_int(os.getenv("DELETE_MAX_RETRIES"), 3),
        )


def configure_logging(level: str) -> None:
    """Configure logging with the specified level."""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(levelname)s: %(message)s",
    )
