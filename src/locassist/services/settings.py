"""Settings service — load/save ~/.config/locassist/settings.json."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

log = logging.getLogger(__name__)

_SETTINGS_FILE = Path.home() / ".config" / "locassist" / "settings.json"

AI_PROVIDERS = ("gemini", "openai", "anthropic")

DEFAULTS: dict[str, Any] = {
    # Languages
    "secondary_language": "en",
    # Names offered as the reference language when a project is imported
    "reference_aliases": ["pl", "polish"],
    "feedback_language": "Polish",

    # AI service
    "ai_provider": "gemini",
    "ai_model": "",  # empty = provider default
    "analysis_workers": 4,
    "bulk_chunk_size": 10,
    "bulk_delay_seconds": 1.0,

    # Session
    "restore_session": True,

    # Appearance
    "editor_font_size": 12,
}


class Settings:
    """Application settings backed by a JSON file."""

    _instance: Settings | None = None

    def __init__(self):
        self._data: dict[str, Any] = dict(DEFAULTS)
        self._load()

    @classmethod
    def get(cls) -> Settings:
        if cls._instance is None:
            cls._instance = Settings()
        return cls._instance

    @classmethod
    def reset_instance(cls):
        cls._instance = None

    # ── Public API ────────────────────────────────────────────────

    def __getitem__(self, key: str) -> Any:
        return self._data.get(key, DEFAULTS.get(key))

    def __setitem__(self, key: str, value: Any):
        self._data[key] = value

    def save(self):
        _SETTINGS_FILE.parent.mkdir(parents=True, exist_ok=True)
        _SETTINGS_FILE.write_text(
            json.dumps(self._data, ensure_ascii=False, indent=2), "utf-8"
        )

    # ── Convenience properties ────────────────────────────────────

    @property
    def ai_provider(self) -> str:
        provider = self._data.get("ai_provider", DEFAULTS["ai_provider"])
        return provider if provider in AI_PROVIDERS else DEFAULTS["ai_provider"]

    @property
    def bulk_chunk_size(self) -> int:
        try:
            return max(1, int(self._data.get("bulk_chunk_size", DEFAULTS["bulk_chunk_size"])))
        except (TypeError, ValueError):
            return DEFAULTS["bulk_chunk_size"]

    @property
    def bulk_delay_seconds(self) -> float:
        try:
            return max(0.0, float(self._data.get("bulk_delay_seconds", DEFAULTS["bulk_delay_seconds"])))
        except (TypeError, ValueError):
            return DEFAULTS["bulk_delay_seconds"]

    # ── Private ───────────────────────────────────────────────────

    def _load(self):
        if not _SETTINGS_FILE.exists():
            return
        try:
            stored = json.loads(_SETTINGS_FILE.read_text("utf-8"))
        except (OSError, ValueError) as e:
            log.warning("Ignoring unreadable settings file %s: %s", _SETTINGS_FILE, e)
            return
        if isinstance(stored, dict):
            self._data.update(stored)
