"""Session snapshot — the whole project saved as one JSON blob.

Saving always overwrites the complete snapshot and loading always replaces
the complete in-memory state; nothing is persisted incrementally.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from locassist.services.project import Project

log = logging.getLogger(__name__)

_SESSION_FILE = Path.home() / ".config" / "locassist" / "session.json"


def session_exists() -> bool:
    return _SESSION_FILE.exists()


def save_session(project: Project) -> None:
    """Overwrite the stored snapshot with *project*."""
    _SESSION_FILE.parent.mkdir(parents=True, exist_ok=True)
    tmp = _SESSION_FILE.with_suffix(".tmp")
    tmp.write_text(json.dumps(project.to_dict(), ensure_ascii=False), "utf-8")
    tmp.replace(_SESSION_FILE)


def load_session() -> Optional[Project]:
    """Return the stored project, or None when there is no usable snapshot.

    A snapshot that cannot be read is removed so the next start is clean.
    """
    if not _SESSION_FILE.exists():
        return None
    try:
        data = json.loads(_SESSION_FILE.read_text("utf-8"))
        return Project.from_dict(data)
    except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
        log.error("Failed to load session from %s: %s", _SESSION_FILE, e)
        clear_session()
        return None


def clear_session() -> None:
    _SESSION_FILE.unlink(missing_ok=True)


def session_timestamp() -> Optional[datetime]:
    """When the stored snapshot was last updated, for the "continue" prompt."""
    if not _SESSION_FILE.exists():
        return None
    try:
        data = json.loads(_SESSION_FILE.read_text("utf-8"))
        return datetime.fromisoformat(data["lastUpdated"])
    except (OSError, ValueError, KeyError, TypeError):
        return None
