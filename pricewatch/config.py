"""Configuration management from environment variables."""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file
load_dotenv()

# Project root
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = Path(os.getenv("DATA_DIR", str(PROJECT_ROOT / "data")))
SPOOL_DIR = DATA_DIR / "spool"
STATE_DB = DATA_DIR / "state.db"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def parse_backend_overrides(raw: str | None) -> dict[str, str]:
    """Parse ``host=static,host2=browser`` into a mapping."""
    overrides: dict[str, str] = {}
    if not raw:
        return overrides
    for item in raw.split(","):
        if "=" not in item:
            continue
        host, backend = item.split("=", 1)
        host = host.strip().lower()
        backend = backend.strip().lower()
        if host and backend:
            overrides[host] = backend
    return overrides


class Config:
    """Application configuration."""

    # Fetching
    USER_AGENT: str = os.getenv("USER_AGENT", DEFAULT_USER_AGENT)
    HTTP_TIMEOUT: float = float(os.getenv("HTTP_TIMEOUT", "30"))
    MAX_RETRIES: int = int(os.getenv("MAX_RETRIES", "3"))
    RATE_PER_DOMAIN: float = float(os.getenv("RATE_PER_DOMAIN", "1.0"))

    # Browser
    BROWSER_HEADLESS: bool = _env_bool("BROWSER_HEADLESS", True)
    NAV_TIMEOUT_MS: int = int(os.getenv("NAV_TIMEOUT_MS", "60000"))
    NETWORK_IDLE_TIMEOUT_MS: int = int(os.getenv("NETWORK_IDLE_TIMEOUT_MS", "15000"))
    SCROLL_STEPS: int = int(os.getenv("SCROLL_STEPS", "12"))
    SCROLL_PAUSE_MS: int = int(os.getenv("SCROLL_PAUSE_MS", "300"))
    LOAD_MORE_CLICKS: int = int(os.getenv("LOAD_MORE_CLICKS", "3"))

    # Extraction
    MAX_PRODUCTS: int = int(os.getenv("MAX_PRODUCTS", "50"))
    JSON_FALLBACK_THRESHOLD: int = int(os.getenv("JSON_FALLBACK_THRESHOLD", "8"))
    BACKEND_OVERRIDES: dict[str, str] = parse_backend_overrides(os.getenv("BACKEND_OVERRIDES"))

    # Model-number service
    OPENAI_API_KEY: str | None = os.getenv("OPENAI_API_KEY")
    OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    OPENAI_BASE_URL: str = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
    MODEL_SERVICE_TIMEOUT: float = float(os.getenv("MODEL_SERVICE_TIMEOUT", "20"))
    MODEL_BATCH_SIZE: int = int(os.getenv("MODEL_BATCH_SIZE", "5"))
    MODEL_BATCH_DELAY: float = float(os.getenv("MODEL_BATCH_DELAY", "0.2"))

    # Batch runs
    CONCURRENCY: int = int(os.getenv("CONCURRENCY", "4"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def validate(cls) -> None:
        """Validate configuration values."""
        errors = []
        if cls.MAX_PRODUCTS <= 0:
            errors.append("MAX_PRODUCTS must be positive")
        if cls.HTTP_TIMEOUT <= 0:
            errors.append("HTTP_TIMEOUT must be positive")
        if cls.CONCURRENCY <= 0:
            errors.append("CONCURRENCY must be positive")
        if cls.MODEL_BATCH_SIZE <= 0:
            errors.append("MODEL_BATCH_SIZE must be positive")
        for host, backend in cls.BACKEND_OVERRIDES.items():
            if backend not in ("static", "browser"):
                errors.append(f"BACKEND_OVERRIDES: unknown backend '{backend}' for {host}")
        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")


config = Config()
