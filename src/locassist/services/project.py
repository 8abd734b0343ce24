"""Project state: the loaded language files and everything edited around them.

A :class:`Project` is the single container for one translation session. The
addressing and discovery functions in :mod:`locassist.parsers` stay pure and
receive trees from here as plain arguments.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, NamedTuple, Optional

from locassist.parsers.json_parser import TranslationFile, union_keys
from locassist.parsers.keypath import MISSING, get_value, set_value
from locassist.parsers.values import display_text

log = logging.getLogger(__name__)

# {key: {language: approved value}}
TranslationHistory = dict[str, dict[str, Any]]


class LanguageValue(NamedTuple):
    lang: str
    value: str


class GroupError(ValueError):
    """A translation group definition is incomplete or inconsistent."""


def _key_list(value: Any) -> list[str]:
    """Group keys from a snapshot; a lone string is one key, not its characters."""
    if isinstance(value, str):
        return [value] if value else []
    if not isinstance(value, (list, tuple)):
        return []
    return [str(k) for k in value]


@dataclass
class TranslationGroup:
    """A curated set of keys sharing one context description."""
    id: str
    name: str
    context: str = ""
    keys: list[str] = field(default_factory=list)
    reference_keys: list[str] = field(default_factory=list)

    def validate(self) -> None:
        if not self.name.strip():
            raise GroupError("Group name is required.")
        if not self.keys:
            raise GroupError("A group needs at least one key.")
        stray = [k for k in self.reference_keys if k not in self.keys]
        if stray:
            raise GroupError(f"Reference keys must belong to the group: {', '.join(stray)}")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "context": self.context,
            "keys": list(self.keys),
            "referenceKeys": list(self.reference_keys),
        }

    @classmethod
    def from_dict(cls, d: dict) -> TranslationGroup:
        return cls(
            id=str(d.get("id", "")),
            name=str(d.get("name", "")),
            context=str(d.get("context", "") or ""),
            keys=_key_list(d.get("keys")),
            reference_keys=_key_list(d.get("referenceKeys", d.get("reference_keys"))),
        )


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Project:
    """In-memory state of one translation project."""

    def __init__(self, files: Iterable[TranslationFile] = (),
                 contexts: Optional[dict] = None,
                 history: Optional[TranslationHistory] = None,
                 groups: Iterable[TranslationGroup] = (),
                 global_context: str = "",
                 reference_language: Optional[str] = None,
                 secondary_language: Optional[str] = None,
                 last_updated: Optional[str] = None):
        self._files: list[TranslationFile] = []
        self._keys: Optional[list[str]] = None
        self._set_files(list(files))
        self.contexts: dict = dict(contexts or {})
        self.history: TranslationHistory = {k: dict(v) for k, v in (history or {}).items()}
        self.groups: list[TranslationGroup] = list(groups)
        self.global_context = global_context
        self.reference_language: Optional[str] = None
        self.secondary_language: Optional[str] = None
        if reference_language in self.languages:
            self.reference_language = reference_language
        if secondary_language in self.languages:
            self.secondary_language = secondary_language
        self.last_updated = last_updated or _now()

    # ── Files and keys ────────────────────────────────────────────

    def _set_files(self, files: list[TranslationFile]) -> None:
        names = [f.name for f in files]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate language names: {', '.join(duplicates)}")
        self._files = files
        self._keys = None

    @property
    def files(self) -> list[TranslationFile]:
        return list(self._files)

    @property
    def languages(self) -> list[str]:
        return [f.name for f in self._files]

    @property
    def keys(self) -> list[str]:
        """The key universe, recomputed from scratch after any file change."""
        if self._keys is None:
            self._keys = union_keys(self._files)
        return list(self._keys)

    def file(self, name: str) -> TranslationFile:
        for f in self._files:
            if f.name == name:
                return f
        raise KeyError(name)

    def has_file(self, name: str) -> bool:
        return any(f.name == name for f in self._files)

    def touch(self) -> None:
        self.last_updated = _now()

    # ── Reference languages ───────────────────────────────────────

    def set_reference_language(self, name: Optional[str]) -> None:
        if name is not None and not self.has_file(name):
            raise KeyError(name)
        self.reference_language = name
        if name is not None and self.secondary_language == name:
            self.secondary_language = None
        self.touch()

    def set_secondary_language(self, name: Optional[str]) -> None:
        if name is not None and not self.has_file(name):
            raise KeyError(name)
        if name is not None and name == self.reference_language:
            raise ValueError("The secondary language must differ from the reference language.")
        self.secondary_language = name
        self.touch()

    def guess_language(self, aliases: Iterable[str]) -> Optional[str]:
        """Suggest a loaded language whose name equals one of *aliases*.

        Only exact, case-insensitive name matches count. The result is a
        proposal for the user to confirm, it is never applied here.
        """
        wanted = [a.lower() for a in aliases]
        by_name = {f.name.lower(): f.name for f in self._files}
        for alias in wanted:
            if alias in by_name:
                return by_name[alias]
        return None

    @property
    def reference_file(self) -> Optional[TranslationFile]:
        if self.reference_language is None:
            return None
        return self.file(self.reference_language)

    @property
    def review_languages(self) -> list[str]:
        """Languages judged against the reference, in load order."""
        skip = {self.reference_language, self.secondary_language}
        return [name for name in self.languages if name not in skip]

    # ── Values ────────────────────────────────────────────────────

    def value(self, lang: str, key: str) -> Any:
        return self.file(lang).value(key)

    def text(self, lang: str, key: str) -> str:
        """Display text of a value; missing values read as an empty string."""
        if not self.has_file(lang):
            return ""
        return display_text(self.value(lang, key))

    def translations_for(self, key: str) -> list[LanguageValue]:
        return [LanguageValue(f.name, display_text(f.value(key))) for f in self._files]

    def untranslated_keys(self, lang: str) -> list[str]:
        f = self.file(lang)
        return [k for k in self.keys if f.value(k) in (MISSING, None, "")]

    def _write(self, lang: str, key: str, value: Any) -> None:
        index = self.languages.index(lang)
        current = self._files[index]
        files = list(self._files)
        files[index] = current.with_data(set_value(current.data, key, value))
        self._set_files(files)
        # Copy-on-write; worker threads may hold the previous mapping.
        self.history = {**self.history, key: {**self.history.get(key, {}), lang: value}}

    def update_value(self, lang: str, key: str, value: Any) -> None:
        """Store *value* for *key* in *lang* and remember it as approved."""
        if not self.has_file(lang):
            raise KeyError(lang)
        self._write(lang, key, value)
        self.touch()
        log.debug("Updated %s in %s", key, lang)

    def save_bulk(self, values_by_lang: dict[str, dict[str, Any]]) -> int:
        """Apply ``{lang: {key: value}}``; unknown languages are skipped."""
        applied = 0
        for lang, values in values_by_lang.items():
            if not self.has_file(lang):
                log.warning("Skipping %d values for unknown language %s", len(values), lang)
                continue
            for key, value in values.items():
                self._write(lang, key, value)
                applied += 1
        if applied:
            self.touch()
        return applied

    def search_keys(self, query: str) -> list[str]:
        """Keys whose name or reference-language text contains *query*."""
        query = query.strip().lower()
        if not query:
            return self.keys
        ref = self.reference_file
        matches = []
        for key in self.keys:
            if query in key.lower():
                matches.append(key)
            elif ref is not None:
                value = ref.value(key)
                if isinstance(value, str) and query in value.lower():
                    matches.append(key)
        return matches

    # ── Contexts ──────────────────────────────────────────────────

    def context_for(self, key: str) -> str:
        # context.json may be flat ({"a.b": ...}) or nested like the files
        value = self.contexts.get(key, MISSING)
        if value is MISSING:
            value = get_value(self.contexts, key)
        return value if isinstance(value, str) else ""

    def update_context(self, key: str, text: str) -> bool:
        if self.context_for(key) == text:
            return False
        if key in self.contexts:
            self.contexts = {**self.contexts, key: text}
        else:
            self.contexts = set_value(self.contexts, key, text)
        self.touch()
        return True

    def set_global_context(self, text: str) -> None:
        if text != self.global_context:
            self.global_context = text
            self.touch()

    # ── Groups ────────────────────────────────────────────────────

    def group(self, group_id: str) -> TranslationGroup:
        for g in self.groups:
            if g.id == group_id:
                return g
        raise KeyError(group_id)

    def _new_group_id(self) -> str:
        taken = {g.id for g in self.groups}
        candidate = int(time.time() * 1000)
        while str(candidate) in taken:
            candidate += 1
        return str(candidate)

    def add_group(self, name: str, context: str = "", keys: Iterable[str] = (),
                  reference_keys: Iterable[str] = ()) -> TranslationGroup:
        group = TranslationGroup(
            id=self._new_group_id(),
            name=name.strip(),
            context=context.strip(),
            keys=list(dict.fromkeys(keys)),
            reference_keys=list(dict.fromkeys(reference_keys)),
        )
        group.validate()
        self.groups = [*self.groups, group]
        self.touch()
        return group

    def update_group(self, group_id: str, **changes: Any) -> TranslationGroup:
        current = self.group(group_id)
        fields = {
            "name": current.name, "context": current.context,
            "keys": current.keys, "reference_keys": current.reference_keys,
        }
        unknown = set(changes) - set(fields)
        if unknown:
            raise TypeError(f"Unknown group fields: {', '.join(sorted(unknown))}")
        fields.update(changes)
        updated = TranslationGroup(
            id=group_id,
            name=str(fields["name"]).strip(),
            context=str(fields["context"]).strip(),
            keys=list(dict.fromkeys(fields["keys"])),
            reference_keys=list(dict.fromkeys(fields["reference_keys"])),
        )
        updated.validate()
        self.groups = [updated if g.id == group_id else g for g in self.groups]
        self.touch()
        return updated

    def delete_group(self, group_id: str) -> None:
        self.group(group_id)
        self.groups = [g for g in self.groups if g.id != group_id]
        self.touch()

    def unknown_group_keys(self, group: TranslationGroup) -> list[str]:
        """Keys of *group* that no loaded file provides."""
        universe = set(self.keys)
        return [k for k in group.keys if k not in universe]

    # ── Snapshot format ───────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            "translationFiles": [{"name": f.name, "data": f.data} for f in self._files],
            "contexts": self.contexts,
            "translationHistory": self.history,
            "translationGroups": [g.to_dict() for g in self.groups],
            "globalContext": self.global_context,
            "referenceLanguage": self.reference_language,
            "secondaryLanguage": self.secondary_language,
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, d: dict) -> Project:
        files = [
            TranslationFile(name=str(f["name"]), data=f.get("data", {}))
            for f in d.get("translationFiles", [])
        ]
        return cls(
            files=files,
            contexts=d.get("contexts") or {},
            history=d.get("translationHistory") or {},
            groups=[TranslationGroup.from_dict(g) for g in d.get("translationGroups", [])],
            global_context=d.get("globalContext", "") or "",
            reference_language=d.get("referenceLanguage"),
            secondary_language=d.get("secondaryLanguage"),
            last_updated=d.get("lastUpdated"),
        )
