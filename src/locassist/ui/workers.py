"""Background workers for the AI service calls.

SPDX-License-Identifier: GPL-3.0-or-later
"""

from __future__ import annotations

from typing import Optional

from PySide6.QtCore import QThread, Signal

from locassist.services.ai import (
    AIClient, analyze_keys, bulk_translate, generate_context,
)
from locassist.services.glossary import Glossary
from locassist.services.project import LanguageValue, Project, TranslationGroup


class AnalysisWorker(QThread):
    """Analyse one or more keys; emits ``{key: KeyOutcome}`` when all are done."""

    finished_all = Signal(dict)
    error = Signal(str)

    def __init__(self, client: AIClient, project: Project, keys: list[str],
                 group: Optional[TranslationGroup] = None,
                 glossary: Optional[Glossary] = None,
                 languages: Optional[list[str]] = None,
                 max_workers: int = 4, feedback_language: str = "Polish"):
        super().__init__()
        self.client = client
        self.project = project
        self.keys = keys
        self.group = group
        self.glossary = glossary
        self.languages = languages
        self.max_workers = max_workers
        self.feedback_language = feedback_language

    def run(self):
        try:
            outcomes = analyze_keys(
                self.client, self.project, self.keys, group=self.group,
                glossary=self.glossary, languages=self.languages,
                max_workers=self.max_workers, feedback_language=self.feedback_language,
            )
        except Exception as e:
            self.error.emit(str(e))
            return
        self.finished_all.emit(outcomes)


class ContextWorker(QThread):
    """Ask for a context description of one key."""

    context_ready = Signal(str, str)  # key, context
    error = Signal(str)

    def __init__(self, client: AIClient, key: str, translations: list[LanguageValue],
                 global_context: str = "", feedback_language: str = "Polish"):
        super().__init__()
        self.client = client
        self.key = key
        self.translations = translations
        self.global_context = global_context
        self.feedback_language = feedback_language

    def run(self):
        try:
            text = generate_context(self.client, self.key, self.translations,
                                    self.global_context, self.feedback_language)
        except Exception as e:
            self.error.emit(str(e))
            return
        self.context_ready.emit(self.key, text)


class BulkTranslateWorker(QThread):
    """Translate many keys into one language, chunk by chunk."""

    progress = Signal(int, int)  # processed, total
    finished_all = Signal(object)  # BulkResult
    error = Signal(str)

    def __init__(self, client: AIClient, project: Project, keys: list[str], target_lang: str,
                 chunk_size: int = 10, delay: float = 1.0,
                 glossary: Optional[Glossary] = None):
        super().__init__()
        self.client = client
        self.project = project
        self.keys = keys
        self.target_lang = target_lang
        self.chunk_size = chunk_size
        self.delay = delay
        self.glossary = glossary

    def run(self):
        try:
            result = bulk_translate(
                self.client, self.project, self.keys, self.target_lang,
                chunk_size=self.chunk_size, delay=self.delay, glossary=self.glossary,
                on_progress=self.progress.emit,
            )
        except Exception as e:
            self.error.emit(str(e))
            return
        self.finished_all.emit(result)
