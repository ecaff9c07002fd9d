"""Environment-driven settings."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_SLOTS_PATH = Path.home() / ".resumematch" / "slots.json"


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


@dataclass
class Settings:
    """Runtime configuration for the CLI and the web app."""
    anthropic_api_key: str = ""
    model: str = DEFAULT_MODEL
    max_tokens: int = 3000
    storage_path: Optional[Path] = None
    slots_path: Path = DEFAULT_SLOTS_PATH
    log_level: str = "INFO"
    log_dir: Optional[Path] = None

    @property
    def ai_enabled(self) -> bool:
        return bool(self.anthropic_api_key)


def load_settings() -> Settings:
    """Build settings from the current environment."""
    storage_path = get_env("RESUMEMATCH_STORAGE_PATH")
    slots_path = get_env("RESUMEMATCH_SLOTS_PATH")
    log_dir = get_env("RESUMEMATCH_LOG_DIR")

    try:
        max_tokens = int(get_env("RESUMEMATCH_MAX_TOKENS", "3000"))
    except ValueError:
        max_tokens = 3000

    return Settings(
        anthropic_api_key=get_env("ANTHROPIC_API_KEY"),
        model=get_env("RESUMEMATCH_MODEL") or DEFAULT_MODEL,
        max_tokens=max_tokens,
        storage_path=Path(storage_path) if storage_path else None,
        slots_path=Path(slots_path) if slots_path else DEFAULT_SLOTS_PATH,
        log_level=get_env("LOG_LEVEL", "INFO").upper() or "INFO",
        log_dir=Path(log_dir) if log_dir else None,
    )
