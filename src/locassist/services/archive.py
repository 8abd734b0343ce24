"""Project import from JSON / TXT / ZIP inputs and export to a ZIP archive.

Recognised inputs:

* ``<lang>.json``          one language file per translation
* ``context.json``         key path -> free-text context
* ``history.json``         key path -> {language: approved value}
* ``groups.json``          list of translation groups
* ``reference_keys.json``  list of keys marked as reference keys in their groups
* ``global_context.txt``   free-form description of the whole application

A single ``.zip`` holding any mix of the above is expanded first.

SPDX-License-Identifier: GPL-3.0-or-later
"""

from __future__ import annotations

import io
import logging
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Union

from locassist.parsers import dump_json, load_json
from locassist.parsers.json_parser import TranslationFile, parse_json_text
from locassist.services.project import Project, TranslationGroup, TranslationHistory

log = logging.getLogger(__name__)

CONTEXT_FILE = "context.json"
HISTORY_FILE = "history.json"
GROUPS_FILE = "groups.json"
REFERENCE_KEYS_FILE = "reference_keys.json"
GLOBAL_CONTEXT_FILE = "global_context.txt"

NO_TRANSLATIONS_MESSAGE = "Please upload at least one JSON translation file."

Content = Union[str, bytes]


@dataclass
class ImportIssue:
    """A problem with one input file."""
    filename: str
    message: str

    def __str__(self) -> str:
        return f"{self.filename}: {self.message}" if self.filename else self.message


class ProjectImportError(Exception):
    """The inputs did not contain a usable project."""

    def __init__(self, issues: list[ImportIssue]):
        self.issues = issues
        super().__init__("; ".join(str(i) for i in issues) or NO_TRANSLATIONS_MESSAGE)


@dataclass
class ImportResult:
    files: list[TranslationFile] = field(default_factory=list)
    contexts: dict = field(default_factory=dict)
    history: TranslationHistory = field(default_factory=dict)
    groups: list[TranslationGroup] = field(default_factory=list)
    global_context: str = ""
    reference_keys: list[str] = field(default_factory=list)
    errors: list[ImportIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return bool(self.files)


# ── Reading inputs ────────────────────────────────────────────────────

def _basename(name: str) -> str:
    return name.replace("\\", "/").rsplit("/", 1)[-1]


def expand_zip(data: bytes) -> list[tuple[str, bytes]]:
    """Return ``(basename, content)`` for every file in a ZIP archive."""
    entries = []
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        for info in zf.infolist():
            if info.is_dir():
                continue
            name = _basename(info.filename)
            # macOS archives carry resource forks next to the real files
            if not name or name.startswith("._") or "__MACOSX/" in info.filename:
                continue
            entries.append((name, zf.read(info)))
    return entries


def _as_bytes(content: Content) -> bytes:
    return content.encode("utf-8") if isinstance(content, str) else content


def import_files(entries: Iterable[tuple[str, Content]]) -> ImportResult:
    """Sort named inputs into language files and sidecars.

    Problems with single files are collected in ``ImportResult.errors`` and
    the file is skipped. When no valid language file remains the result is
    empty apart from its errors, and ``ok`` is False.
    """
    entries = [(_basename(name), _as_bytes(content)) for name, content in entries]
    result = ImportResult()

    if len(entries) == 1 and entries[0][0].lower().endswith(".zip"):
        name, data = entries[0]
        try:
            entries = expand_zip(data)
        except (zipfile.BadZipFile, OSError) as e:
            log.warning("Cannot read %s: %s", name, e)
            result.errors.append(ImportIssue(name, f"Failed to read ZIP file. Error: {e}"))
            return result
        log.info("Expanded %s: %d files", name, len(entries))

    for name, data in entries:
        try:
            _import_one(result, name, data)
        except ValueError as e:
            log.warning("Skipping %s: %s", name, e)
            result.errors.append(ImportIssue(name, f"Error parsing \"{name}\". Please ensure it's valid JSON."))

    if not result.files:
        errors = result.errors + [ImportIssue("", NO_TRANSLATIONS_MESSAGE)]
        return ImportResult(errors=errors)
    return result


def _import_one(result: ImportResult, name: str, data: bytes) -> None:
    if name == GLOBAL_CONTEXT_FILE:
        result.global_context = data.decode("utf-8-sig", errors="replace")
    elif name == CONTEXT_FILE:
        contexts = load_json(data)
        if not isinstance(contexts, dict):
            raise ValueError("context.json must contain an object")
        result.contexts = contexts
    elif name == HISTORY_FILE:
        history = load_json(data)
        if not isinstance(history, dict):
            raise ValueError("history.json must contain an object")
        result.history = {k: dict(v) for k, v in history.items() if isinstance(v, dict)}
    elif name == GROUPS_FILE:
        groups = load_json(data)
        if not isinstance(groups, list):
            raise ValueError("groups.json must contain a list")
        result.groups = [TranslationGroup.from_dict(g) for g in groups if isinstance(g, dict)]
    elif name == REFERENCE_KEYS_FILE:
        keys = load_json(data)
        if not isinstance(keys, list):
            raise ValueError("reference_keys.json must contain a list")
        result.reference_keys = [str(k) for k in keys]
    elif name.lower().endswith(".json"):
        lang = name[:-len(".json")]
        if any(f.name == lang for f in result.files):
            result.errors.append(ImportIssue(name, f"Duplicate language \"{lang}\" ignored."))
            return
        result.files.append(parse_json_text(lang, data))
    else:
        log.debug("Ignoring %s", name)


def import_paths(paths: Iterable[Union[str, Path]]) -> ImportResult:
    """Import files from disk; see :func:`import_files`."""
    entries = []
    for p in paths:
        p = Path(p)
        entries.append((p.name, p.read_bytes()))
    return import_files(entries)


def build_project(result: ImportResult, reference_aliases: Iterable[str] = (),
                  secondary_aliases: Iterable[str] = ()) -> Project:
    """Create a project from a successful import.

    The reference and secondary languages are only pre-selected when a file
    name matches an alias exactly; the user confirms or changes them later.
    """
    if not result.ok:
        raise ProjectImportError(result.errors)
    groups = result.groups
    if result.reference_keys:
        marked = set(result.reference_keys)
        groups = [
            TranslationGroup(
                id=g.id, name=g.name, context=g.context, keys=list(g.keys),
                reference_keys=list(dict.fromkeys(
                    [*g.reference_keys, *(k for k in g.keys if k in marked)])),
            )
            for g in groups
        ]
    project = Project(
        files=result.files,
        contexts=result.contexts,
        history=result.history,
        groups=groups,
        global_context=result.global_context,
    )
    reference = project.guess_language(reference_aliases)
    if reference:
        project.set_reference_language(reference)
    secondary = project.guess_language(secondary_aliases)
    if secondary and secondary != reference:
        project.set_secondary_language(secondary)
    log.info("Imported %d languages, %d keys", len(project.languages), len(project.keys))
    return project


# ── Export ────────────────────────────────────────────────────────────

def export_entries(project: Project) -> list[tuple[str, str]]:
    """The ``(filename, text)`` pairs written to an exported archive."""
    entries = [(f"{f.name}.json", dump_json(f.data)) for f in project.files]
    if project.contexts:
        entries.append((CONTEXT_FILE, dump_json(project.contexts)))
    if project.history:
        entries.append((HISTORY_FILE, dump_json(project.history)))
    if project.groups:
        entries.append((GROUPS_FILE, dump_json([g.to_dict() for g in project.groups])))
    if project.global_context:
        entries.append((GLOBAL_CONTEXT_FILE, project.global_context))
    return entries


def export_zip(project: Project) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, text in export_entries(project):
            zf.writestr(name, text.encode("utf-8"))
    return buf.getvalue()


def write_zip(project: Project, path: Union[str, Path], *, overwrite: bool = True) -> Path:
    out = Path(path)
    if out.exists() and not overwrite:
        raise FileExistsError(out)
    out.write_bytes(export_zip(project))
    log.info("Exported %s", out)
    return out
