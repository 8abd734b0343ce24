"""Glossary / terminology management.

Each term is written in the reference language and maps to the required
translation per target language, e.g.
``{"Aplikacja": {"en": "Application", "de": "Anwendung"}}``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

log = logging.getLogger(__name__)

GLOSSARY_FILE = Path.home() / ".config" / "locassist" / "glossary.json"

# {source term: {language: required translation}}
Glossary = dict[str, dict[str, str]]


@dataclass
class GlossaryTerm:
    """A glossary term."""
    source: str
    translations: dict[str, str] = field(default_factory=dict)
    notes: str = ""


@dataclass
class GlossaryViolation:
    """A glossary consistency violation."""
    term: GlossaryTerm
    key: str
    language: str
    found_translation: str
    message: str = ""


def _load_glossary() -> list[dict]:
    if not GLOSSARY_FILE.exists():
        return []
    try:
        data = json.loads(GLOSSARY_FILE.read_text("utf-8"))
    except (OSError, ValueError) as e:
        log.warning("Ignoring unreadable glossary %s: %s", GLOSSARY_FILE, e)
        return []
    return data if isinstance(data, list) else []


def _save_glossary(terms: list[dict]) -> None:
    GLOSSARY_FILE.parent.mkdir(parents=True, exist_ok=True)
    GLOSSARY_FILE.write_text(json.dumps(terms, ensure_ascii=False, indent=2), "utf-8")


def get_terms() -> list[GlossaryTerm]:
    """Load all glossary terms."""
    return [GlossaryTerm(
        source=t.get("source", ""),
        translations=dict(t.get("translations", {})),
        notes=t.get("notes", ""),
    ) for t in _load_glossary() if t.get("source")]


def set_term(source: str, translations: dict[str, str], notes: str = "") -> None:
    """Add a term, or replace the translations and notes of an existing one.

    Languages left out of *translations* are no longer required for the term.
    """
    data = _load_glossary()
    for t in data:
        if t.get("source", "").lower() == source.lower():
            t["translations"] = dict(translations)
            t["notes"] = notes
            _save_glossary(data)
            return
    data.append({"source": source, "translations": dict(translations), "notes": notes})
    _save_glossary(data)


def remove_term(source: str) -> None:
    """Remove a glossary term."""
    data = _load_glossary()
    data = [t for t in data if t.get("source", "").lower() != source.lower()]
    _save_glossary(data)


def as_mapping(terms: list[GlossaryTerm] | None = None) -> Glossary:
    """Glossary in the shape the prompt builders take."""
    if terms is None:
        terms = get_terms()
    return {t.source: dict(t.translations) for t in terms if t.translations}


def check_glossary(entries: list[dict], lang: str,
                   terms: list[GlossaryTerm] | None = None) -> list[GlossaryViolation]:
    """Check translations in *lang* against the glossary.

    Each entry: {"key": str, "source": str, "target": str}, where source is
    the reference-language text. A violation is reported when a glossary
    term occurs in the source but its required translation is missing from
    the target.
    """
    if terms is None:
        terms = get_terms()
    relevant = [t for t in terms if t.translations.get(lang)]
    if not relevant:
        return []

    violations = []
    for entry in entries:
        source = entry.get("source", "").lower()
        target = entry.get("target", "").lower()
        if not source or not target:
            continue
        for term in relevant:
            expected = term.translations[lang]
            if term.source.lower() in source and expected.lower() not in target:
                violations.append(GlossaryViolation(
                    term=term, key=entry.get("key", ""), language=lang,
                    found_translation=entry.get("target", ""),
                    message=f"Expected '{expected}' for '{term.source}', not found in translation",
                ))
    return violations
