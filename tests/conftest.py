"""Shared fixtures for LocAssist tests."""
import sys
from pathlib import Path

import pytest

# Ensure src is on path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


@pytest.fixture(autouse=True)
def isolate_config(tmp_path, monkeypatch):
    """Point every file under ~/.config/locassist at a temp directory."""
    config = tmp_path / "config"
    monkeypatch.setattr("locassist.services.settings._SETTINGS_FILE", config / "settings.json")
    monkeypatch.setattr("locassist.services.session._SESSION_FILE", config / "session.json")
    monkeypatch.setattr("locassist.services.glossary.GLOSSARY_FILE", config / "glossary.json")
    from locassist.services.settings import Settings
    Settings.reset_instance()
    yield config
    Settings.reset_instance()


@pytest.fixture
def sample_files():
    """Three languages with partly overlapping keys."""
    from locassist.parsers.json_parser import TranslationFile
    return [
        TranslationFile("pl", {
            "buttons": {"submit": "Wyślij", "cancel": "Anuluj"},
            "title": "Aplikacja",
            "count": 3,
        }),
        TranslationFile("en", {
            "buttons": {"submit": "Submit"},
            "title": "Application",
            "tags": ["a", "b"],
        }),
        TranslationFile("de", {
            "buttons": {"submit": "Senden", "cancel": ""},
            "empty": {},
        }),
    ]


@pytest.fixture
def project(sample_files):
    from locassist.services.project import Project
    p = Project(files=sample_files, contexts={"title": "Window title"})
    p.set_reference_language("pl")
    p.set_secondary_language("en")
    return p
