"""locassist: AI-assisted editor for per-language JSON translation files."""

APP_ID = "se.locassist.LocAssist"
__version__ = "0.4.0"
