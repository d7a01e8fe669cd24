"""
Runtime settings for Shadow Scan.

Everything is read from the environment (optionally seeded from a .env
file) so the scanner can be pointed at different models or a different
data directory without code changes.
"""

import os
from dataclasses import dataclass, replace
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else default


@dataclass(frozen=True)
class ScanSettings:
    """Resolved configuration for one scanner instance."""
    api_key: Optional[str] = None
    standard_model: str = "gemini-2.5-flash"
    extended_model: str = "gemini-3-pro-preview"
    tts_model: str = "gemini-2.5-flash-preview-tts"
    tts_voice: str = "Fenrir"
    temperature: float = 0.4
    reasoning_budget: int = 32768
    max_attempts: int = 3
    retry_base_delay_s: float = 1.0
    data_dir: str = os.path.join(os.path.expanduser("~"), ".shadow_scan")
    history_limit: int = 20
    oembed_url: str = "https://noembed.com/embed"
    metadata_timeout_s: float = 10.0
    log_file: str = "logs/shadow_scan.log"

    @classmethod
    def from_env(cls) -> "ScanSettings":
        defaults = cls()
        return cls(
            api_key=os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY"),
            standard_model=os.getenv("SHADOW_SCAN_STANDARD_MODEL", defaults.standard_model),
            extended_model=os.getenv("SHADOW_SCAN_EXTENDED_MODEL", defaults.extended_model),
            tts_model=os.getenv("SHADOW_SCAN_TTS_MODEL", defaults.tts_model),
            tts_voice=os.getenv("SHADOW_SCAN_TTS_VOICE", defaults.tts_voice),
            temperature=_env_float("SHADOW_SCAN_TEMPERATURE", defaults.temperature),
            reasoning_budget=_env_int("SHADOW_SCAN_REASONING_BUDGET", defaults.reasoning_budget),
            max_attempts=max(1, _env_int("SHADOW_SCAN_MAX_ATTEMPTS", defaults.max_attempts)),
            retry_base_delay_s=_env_float("SHADOW_SCAN_RETRY_BASE_DELAY_SEC", defaults.retry_base_delay_s),
            data_dir=os.path.expanduser(os.getenv("SHADOW_SCAN_DATA_DIR", defaults.data_dir)),
            history_limit=max(1, _env_int("SHADOW_SCAN_HISTORY_LIMIT", defaults.history_limit)),
            oembed_url=os.getenv("SHADOW_SCAN_OEMBED_URL", defaults.oembed_url),
            metadata_timeout_s=_env_float("SHADOW_SCAN_METADATA_TIMEOUT_SEC", defaults.metadata_timeout_s),
            log_file=os.getenv("SHADOW_SCAN_LOG_FILE", defaults.log_file),
        )

    def with_overrides(self, **changes) -> "ScanSettings":
        return replace(self, **changes)
