"""Configuration management from environment variables."""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file
load_dotenv()

# Project root
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"


def _getbool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration."""

    # Portal
    PORTAL_URL: str = os.getenv("PORTAL_URL", "https://invoicing.eta.gov.eg/documentsList")
    SHARE_BASE_URL: str = os.getenv("SHARE_BASE_URL", "https://invoicing.eta.gov.eg/documents")

    # Browser
    HEADLESS: bool = _getbool("HEADLESS", "false")
    STORAGE_STATE: str | None = os.getenv("STORAGE_STATE")
    NAVIGATION_TIMEOUT: int = int(os.getenv("NAVIGATION_TIMEOUT", "60"))

    # Readiness / pacing (seconds)
    POLL_INTERVAL: float = float(os.getenv("POLL_INTERVAL", "0.1"))
    LOAD_TIMEOUT: float = float(os.getenv("LOAD_TIMEOUT", "10"))
    STABILITY_SAMPLES: int = int(os.getenv("STABILITY_SAMPLES", "3"))
    STABILITY_INTERVAL: float = float(os.getenv("STABILITY_INTERVAL", "0.2"))
    SETTLE_DELAY: float = float(os.getenv("SETTLE_DELAY", "1.0"))
    PAGE_DELAY: float = float(os.getenv("PAGE_DELAY", "1.5"))
    RESCAN_DEBOUNCE: float = float(os.getenv("RESCAN_DEBOUNCE", "1.0"))

    # Scanner
    DEFAULT_PAGE_SIZE: int = int(os.getenv("DEFAULT_PAGE_SIZE", "10"))

    # Details
    DETAILS_BATCH_SIZE: int = int(os.getenv("DETAILS_BATCH_SIZE", "3"))
    DETAILS_BATCH_DELAY: float = float(os.getenv("DETAILS_BATCH_DELAY", "0.3"))

    # Output
    OUTPUT_DIR: Path = Path(os.getenv("OUTPUT_DIR", str(DATA_DIR / "exports")))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # API Security
    API_KEY: str | None = os.getenv("API_KEY")

    @classmethod
    def validate(cls) -> None:
        """Validate configuration values."""
        errors = []
        if not cls.PORTAL_URL:
            errors.append("PORTAL_URL is required")
        if cls.POLL_INTERVAL <= 0:
            errors.append("POLL_INTERVAL must be positive")
        if cls.STABILITY_SAMPLES < 1:
            errors.append("STABILITY_SAMPLES must be at least 1")
        if cls.DEFAULT_PAGE_SIZE < 1:
            errors.append("DEFAULT_PAGE_SIZE must be at least 1")
        if cls.DETAILS_BATCH_SIZE < 1:
            errors.append("DETAILS_BATCH_SIZE must be at least 1")
        if cls.STORAGE_STATE and not Path(cls.STORAGE_STATE).exists():
            errors.append(f"STORAGE_STATE file not found: {cls.STORAGE_STATE}")
        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")


config = Config()
