"""Main application window — key list, per-language editors and AI analysis.

SPDX-License-Identifier: GPL-3.0-or-later
"""

from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtWidgets import (
    QMainWindow, QWidget, QSplitter, QVBoxLayout, QHBoxLayout, QFormLayout,
    QLabel, QLineEdit, QListWidget, QListWidgetItem, QComboBox, QPushButton,
    QPlainTextEdit, QTableWidget, QTableWidgetItem, QHeaderView,
    QAbstractItemView, QFileDialog, QMessageBox, QInputDialog, QDialog,
    QDialogButtonBox, QGroupBox,
)
from PySide6.QtCore import Qt
from PySide6.QtGui import QAction, QBrush, QColor, QFont, QKeySequence

from locassist import __version__
from locassist.parsers.json_parser import line_number_for
from locassist.parsers.values import ValueCoercionError, coerce_edit, format_for_edit
from locassist.services import session
from locassist.services.ai import (
    AIClient, AnalysisResult, Evaluation, KeyOutcome, analysis_inputs, apply_suggestions,
    group_references,
)
from locassist.services.archive import (
    ProjectImportError, build_project, import_paths, write_zip,
)
from locassist.services.glossary import as_mapping
from locassist.services.project import GroupError, Project, TranslationGroup
from locassist.services.prompts import build_analysis_prompt
from locassist.services.settings import Settings
from locassist.ui.bulk_translate_dialog import BulkTranslateDialog
from locassist.ui.glossary_dialog import GlossaryDialog
from locassist.ui.preferences_dialog import PreferencesDialog
from locassist.ui.workers import AnalysisWorker, ContextWorker

log = logging.getLogger(__name__)

_EVALUATION_COLORS = {
    Evaluation.GOOD: QColor(30, 130, 50),
    Evaluation.NEEDS_IMPROVEMENT: QColor(179, 107, 0),
    Evaluation.INCORRECT: QColor(200, 50, 50),
}

_ALL_KEYS = "__all__"

# Table columns
_COL_LANG, _COL_VALUE, _COL_EVAL, _COL_FEEDBACK, _COL_SUGGESTION = range(5)


class _PromptDialog(QDialog):
    """Read-only view of a prompt before it is sent."""

    def __init__(self, prompt: str, parent=None):
        super().__init__(parent)
        self.setWindowTitle(self.tr("Prompt"))
        self.resize(700, 600)
        layout = QVBoxLayout(self)
        view = QPlainTextEdit(prompt)
        view.setReadOnly(True)
        view.setFont(QFont("monospace"))
        layout.addWidget(view)
        buttons = QDialogButtonBox(QDialogButtonBox.Close)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)


class LocAssistWindow(QMainWindow):
    """One window editing one :class:`Project`."""

    def __init__(self, project: Optional[Project] = None):
        super().__init__()
        self.setWindowTitle("LocAssist")
        self.resize(1200, 760)

        self._settings = Settings.get()
        self._project: Optional[Project] = None
        self._current_key: Optional[str] = None
        self._results: dict[str, AnalysisResult] = {}
        self._errors: dict[str, str] = {}
        self._workers: list = []
        self._populating = False

        self._build_actions()
        self._build_ui()
        self._apply_settings()
        self._set_project(project)

    # ── UI ────────────────────────────────────────────────────────

    def _build_actions(self):
        file_menu = self.menuBar().addMenu(self.tr("&File"))

        open_act = QAction(self.tr("&Import Files…"), self)
        open_act.setShortcut(QKeySequence.Open)
        open_act.triggered.connect(self._on_import)
        file_menu.addAction(open_act)

        self._export_act = QAction(self.tr("&Export ZIP…"), self)
        self._export_act.setShortcut(QKeySequence("Ctrl+E"))
        self._export_act.triggered.connect(self._on_export)
        file_menu.addAction(self._export_act)

        self._close_act = QAction(self.tr("&Close Project"), self)
        self._close_act.triggered.connect(self._on_close_project)
        file_menu.addAction(self._close_act)

        file_menu.addSeparator()
        prefs_act = QAction(self.tr("&Preferences…"), self)
        prefs_act.triggered.connect(self._on_preferences)
        file_menu.addAction(prefs_act)

        quit_act = QAction(self.tr("&Quit"), self)
        quit_act.setShortcut(QKeySequence.Quit)
        quit_act.triggered.connect(self.close)
        file_menu.addAction(quit_act)

        project_menu = self.menuBar().addMenu(self.tr("&Project"))

        self._global_ctx_act = QAction(self.tr("Application &Context…"), self)
        self._global_ctx_act.triggered.connect(self._on_global_context)
        project_menu.addAction(self._global_ctx_act)

        self._new_group_act = QAction(self.tr("&New Group from Selection…"), self)
        self._new_group_act.triggered.connect(self._on_new_group)
        project_menu.addAction(self._new_group_act)

        self._delete_group_act = QAction(self.tr("&Delete Group"), self)
        self._delete_group_act.triggered.connect(self._on_delete_group)
        project_menu.addAction(self._delete_group_act)

        self._toggle_ref_act = QAction(self.tr("Toggle &Reference Key"), self)
        self._toggle_ref_act.triggered.connect(self._on_toggle_reference_key)
        project_menu.addAction(self._toggle_ref_act)

        self._glossary_act = QAction(self.tr("&Glossary…"), self)
        self._glossary_act.triggered.connect(self._on_glossary)
        project_menu.addAction(self._glossary_act)

        project_menu.addSeparator()
        self._bulk_act = QAction(self.tr("&Bulk AI Translate…"), self)
        self._bulk_act.triggered.connect(self._on_bulk_translate)
        project_menu.addAction(self._bulk_act)

        help_menu = self.menuBar().addMenu(self.tr("&Help"))
        about_act = QAction(self.tr("&About"), self)
        about_act.triggered.connect(self._on_about)
        help_menu.addAction(about_act)

    def _build_ui(self):
        splitter = QSplitter(Qt.Horizontal)

        # Left: group filter, search and key list
        left = QWidget()
        left_layout = QVBoxLayout(left)
        left_layout.setContentsMargins(4, 4, 4, 4)

        self._group_combo = QComboBox()
        self._group_combo.currentIndexChanged.connect(self._refresh_keys)
        left_layout.addWidget(self._group_combo)

        self._search_edit = QLineEdit()
        self._search_edit.setPlaceholderText(self.tr("Search keys and reference text…"))
        self._search_edit.setClearButtonEnabled(True)
        self._search_edit.textChanged.connect(self._refresh_keys)
        left_layout.addWidget(self._search_edit)

        self._key_list = QListWidget()
        self._key_list.setSelectionMode(QAbstractItemView.ExtendedSelection)
        self._key_list.currentItemChanged.connect(self._on_key_changed)
        left_layout.addWidget(self._key_list, 1)

        self._count_label = QLabel("")
        left_layout.addWidget(self._count_label)
        splitter.addWidget(left)

        # Right: languages, key details, translations
        right = QWidget()
        right_layout = QVBoxLayout(right)
        right_layout.setContentsMargins(4, 4, 4, 4)

        lang_form = QFormLayout()
        self._reference_combo = QComboBox()
        self._reference_combo.activated.connect(self._on_reference_changed)
        lang_form.addRow(self.tr("Reference language:"), self._reference_combo)
        self._secondary_combo = QComboBox()
        self._secondary_combo.activated.connect(self._on_secondary_changed)
        lang_form.addRow(self.tr("Secondary language:"), self._secondary_combo)
        right_layout.addLayout(lang_form)

        self._key_label = QLabel("")
        self._key_label.setTextInteractionFlags(Qt.TextSelectableByMouse)
        font = self._key_label.font()
        font.setBold(True)
        self._key_label.setFont(font)
        right_layout.addWidget(self._key_label)

        self._location_label = QLabel("")
        self._location_label.setStyleSheet("color: gray; font-size: 11px;")
        right_layout.addWidget(self._location_label)

        ctx_group = QGroupBox(self.tr("Context"))
        ctx_layout = QVBoxLayout(ctx_group)
        self._context_edit = QPlainTextEdit()
        self._context_edit.setMaximumHeight(90)
        ctx_layout.addWidget(self._context_edit)
        ctx_buttons = QHBoxLayout()
        self._save_ctx_btn = QPushButton(self.tr("Save Context"))
        self._save_ctx_btn.clicked.connect(self._on_save_context)
        ctx_buttons.addWidget(self._save_ctx_btn)
        self._suggest_ctx_btn = QPushButton(self.tr("Suggest Context"))
        self._suggest_ctx_btn.clicked.connect(self._on_suggest_context)
        ctx_buttons.addWidget(self._suggest_ctx_btn)
        ctx_buttons.addStretch()
        ctx_layout.addLayout(ctx_buttons)
        right_layout.addWidget(ctx_group)

        self._table = QTableWidget()
        self._table.setColumnCount(5)
        self._table.setHorizontalHeaderLabels([
            self.tr("Language"), self.tr("Value"), self.tr("Evaluation"),
            self.tr("Feedback"), self.tr("Suggestion"),
        ])
        self._table.setWordWrap(True)
        self._table.setSelectionBehavior(QAbstractItemView.SelectRows)
        header = self._table.horizontalHeader()
        header.setSectionResizeMode(_COL_LANG, QHeaderView.ResizeToContents)
        header.setSectionResizeMode(_COL_VALUE, QHeaderView.Stretch)
        header.setSectionResizeMode(_COL_EVAL, QHeaderView.ResizeToContents)
        header.setSectionResizeMode(_COL_FEEDBACK, QHeaderView.Stretch)
        header.setSectionResizeMode(_COL_SUGGESTION, QHeaderView.Stretch)
        self._table.itemChanged.connect(self._on_value_edited)
        right_layout.addWidget(self._table, 1)

        btn_layout = QHBoxLayout()
        self._analyze_btn = QPushButton(self.tr("Analyze"))
        self._analyze_btn.setToolTip(self.tr("Analyze the selected keys"))
        self._analyze_btn.clicked.connect(self._on_analyze)
        btn_layout.addWidget(self._analyze_btn)

        self._analyze_group_btn = QPushButton(self.tr("Analyze Group"))
        self._analyze_group_btn.clicked.connect(self._on_analyze_group)
        btn_layout.addWidget(self._analyze_group_btn)

        self._prompt_btn = QPushButton(self.tr("Show Prompt"))
        self._prompt_btn.clicked.connect(self._on_show_prompt)
        btn_layout.addWidget(self._prompt_btn)

        btn_layout.addStretch()

        self._apply_btn = QPushButton(self.tr("Apply Suggestions"))
        self._apply_btn.clicked.connect(self._on_apply_suggestions)
        btn_layout.addWidget(self._apply_btn)
        right_layout.addLayout(btn_layout)

        self._status_label = QLabel("")
        self._status_label.setWordWrap(True)
        right_layout.addWidget(self._status_label)

        splitter.addWidget(right)
        splitter.setStretchFactor(1, 3)
        self.setCentralWidget(splitter)

    def _apply_settings(self):
        font = self._table.font()
        font.setPointSize(int(self._settings["editor_font_size"]))
        self._table.setFont(font)
        self._context_edit.setFont(font)

    # ── Project state ─────────────────────────────────────────────

    def _set_project(self, project: Optional[Project]):
        self._project = project
        self._current_key = None
        self._results.clear()
        self._errors.clear()
        has_project = project is not None
        for widget in (self._export_act, self._close_act, self._global_ctx_act,
                       self._new_group_act, self._delete_group_act,
                       self._toggle_ref_act, self._glossary_act, self._bulk_act):
            widget.setEnabled(has_project)
        self._refresh_languages()
        self._refresh_groups()
        self._refresh_keys()
        self._show_key()

    def _changed(self):
        """Persist the whole project after every edit."""
        if self._project is None:
            return
        try:
            session.save_session(self._project)
        except OSError as e:
            log.error("Could not save session: %s", e)
            self._status_label.setText(self.tr("Could not save session: %s") % e)

    def _refresh_languages(self):
        self._reference_combo.clear()
        self._secondary_combo.clear()
        if self._project is None:
            return
        self._reference_combo.addItem(self.tr("(none)"), None)
        self._secondary_combo.addItem(self.tr("(none)"), None)
        for lang in self._project.languages:
            self._reference_combo.addItem(lang, lang)
            if lang != self._project.reference_language:
                self._secondary_combo.addItem(lang, lang)
        self._reference_combo.setCurrentIndex(
            max(0, self._reference_combo.findData(self._project.reference_language)))
        self._secondary_combo.setCurrentIndex(
            max(0, self._secondary_combo.findData(self._project.secondary_language)))

    def _refresh_groups(self):
        self._group_combo.blockSignals(True)
        current = self._group_combo.currentData()
        self._group_combo.clear()
        self._group_combo.addItem(self.tr("All keys"), _ALL_KEYS)
        if self._project is not None:
            for g in self._project.groups:
                self._group_combo.addItem(f"{g.name} ({len(g.keys)})", g.id)
        self._group_combo.setCurrentIndex(max(0, self._group_combo.findData(current)))
        self._group_combo.blockSignals(False)

    def _current_group(self) -> Optional[TranslationGroup]:
        group_id = self._group_combo.currentData()
        if self._project is None or group_id in (None, _ALL_KEYS):
            return None
        try:
            return self._project.group(group_id)
        except KeyError:
            return None

    def _refresh_keys(self, *_):
        self._key_list.blockSignals(True)
        self._key_list.clear()
        if self._project is None:
            self._count_label.setText("")
            self._key_list.blockSignals(False)
            return
        keys = self._project.search_keys(self._search_edit.text())
        group = self._current_group()
        if group is not None:
            members = set(group.keys)
            keys = [k for k in keys if k in members]
            missing = self._project.unknown_group_keys(group)
            if missing:
                self._status_label.setText(
                    self.tr("Group keys not found in any file: %s") % ", ".join(missing))
        for key in keys:
            item = QListWidgetItem(key)
            if group is not None and key in group.reference_keys:
                font = item.font()
                font.setBold(True)
                item.setFont(font)
            if key in self._errors:
                item.setForeground(QBrush(QColor(200, 50, 50)))
            self._key_list.addItem(item)
            if key == self._current_key:
                self._key_list.setCurrentItem(item)
        self._count_label.setText(self.tr("%d of %d keys") % (len(keys), len(self._project.keys)))
        self._key_list.blockSignals(False)

    def _selected_keys(self) -> list[str]:
        keys = [item.text() for item in self._key_list.selectedItems()]
        if not keys and self._current_key:
            keys = [self._current_key]
        return keys

    # ── Key details ───────────────────────────────────────────────

    def _on_key_changed(self, current: Optional[QListWidgetItem], _previous=None):
        self._current_key = current.text() if current is not None else None
        self._show_key()

    def _show_key(self):
        key = self._current_key
        project = self._project
        self._populating = True
        self._table.setRowCount(0)
        enabled = project is not None and key is not None
        for widget in (self._context_edit, self._save_ctx_btn, self._suggest_ctx_btn,
                       self._analyze_btn, self._prompt_btn, self._apply_btn):
            widget.setEnabled(enabled)
        self._analyze_group_btn.setEnabled(project is not None and self._current_group() is not None)
        if not enabled:
            self._key_label.setText("")
            self._location_label.setText("")
            self._context_edit.setPlainText("")
            self._populating = False
            return

        self._key_label.setText(key)
        ref = project.reference_file
        line = line_number_for(ref, key) if ref is not None else None
        self._location_label.setText(
            self.tr("%s.json, line %d") % (ref.name, line) if line else "")
        group = self._current_group()
        self._context_edit.setPlainText(group.context if group else project.context_for(key))

        result = self._results.get(key)
        self._table.setRowCount(len(project.languages))
        for row, lang in enumerate(project.languages):
            lang_item = QTableWidgetItem(lang)
            lang_item.setFlags(lang_item.flags() & ~Qt.ItemIsEditable)
            if lang == project.reference_language:
                lang_font = lang_item.font()
                lang_font.setBold(True)
                lang_item.setFont(lang_font)
            self._table.setItem(row, _COL_LANG, lang_item)
            self._table.setItem(row, _COL_VALUE,
                                QTableWidgetItem(format_for_edit(project.value(lang, key))))
            item = result.item_for(lang) if result else None
            for col, text in ((_COL_EVAL, item.evaluation.value if item else ""),
                              (_COL_FEEDBACK, item.feedback if item else ""),
                              (_COL_SUGGESTION, (item.suggestion or "") if item else "")):
                cell = QTableWidgetItem(text)
                cell.setFlags(cell.flags() & ~Qt.ItemIsEditable)
                if item and col == _COL_EVAL:
                    cell.setForeground(QBrush(_EVALUATION_COLORS[item.evaluation]))
                self._table.setItem(row, col, cell)
        self._table.resizeRowsToContents()

        if key in self._errors:
            self._status_label.setText(self._errors[key])
        elif result is not None:
            counts = result.summary()
            self._status_label.setText(", ".join(f"{e.value}: {n}" for e, n in counts.items()))
        self._populating = False

    def _on_value_edited(self, item: QTableWidgetItem):
        if self._populating or item.column() != _COL_VALUE or self._current_key is None:
            return
        key = self._current_key
        lang = self._table.item(item.row(), _COL_LANG).text()
        previous = self._project.value(lang, key)
        try:
            value = coerce_edit(item.text(), previous)
        except ValueCoercionError as e:
            QMessageBox.warning(self, self.tr("Invalid Value"), str(e))
            self._show_key()
            return
        if value == previous and type(value) is type(previous):
            return
        self._project.update_value(lang, key, value)
        result = self._results.get(key)
        if result is not None and result.item_for(lang) is not None:
            result.item_for(lang).suggestion = None
        self._changed()
        self._show_key()

    def _on_reference_changed(self, _index: int):
        lang = self._reference_combo.currentData()
        self._project.set_reference_language(lang)
        self._changed()
        self._refresh_languages()
        self._refresh_keys()
        self._show_key()

    def _on_secondary_changed(self, _index: int):
        lang = self._secondary_combo.currentData()
        try:
            self._project.set_secondary_language(lang)
        except ValueError as e:
            QMessageBox.warning(self, self.tr("Secondary Language"), str(e))
            self._refresh_languages()
            return
        self._changed()

    # ── Context ───────────────────────────────────────────────────

    def _on_save_context(self):
        text = self._context_edit.toPlainText().strip()
        group = self._current_group()
        if group is not None:
            if text != group.context:
                self._project.update_group(group.id, context=text)
                self._changed()
        elif self._project.update_context(self._current_key, text):
            self._changed()
        self._status_label.setText(self.tr("Context saved."))

    def _on_suggest_context(self):
        client = self._client()
        if client is None:
            return
        key = self._current_key
        worker = ContextWorker(client, key, self._project.translations_for(key),
                               self._project.global_context,
                               self._settings["feedback_language"])
        worker.context_ready.connect(self._on_context_suggested)
        worker.error.connect(self._on_worker_error)
        self._start_worker(worker, self.tr("Generating context for %s…") % key)

    def _on_context_suggested(self, key: str, text: str):
        self._status_label.setText(self.tr("Context suggestion ready; save it to keep it."))
        if key == self._current_key:
            self._context_edit.setPlainText(text)

    def _on_global_context(self):
        text, ok = QInputDialog.getMultiLineText(
            self, self.tr("Application Context"),
            self.tr("Describe the application so the AI understands where the texts appear:"),
            self._project.global_context,
        )
        if ok:
            self._project.set_global_context(text.strip())
            self._changed()

    # ── Analysis ──────────────────────────────────────────────────

    def _client(self) -> Optional[AIClient]:
        if self._project.reference_language is None:
            QMessageBox.warning(self, self.tr("Reference Language"),
                                self.tr("Select a reference language first."))
            return None
        client = AIClient.from_settings(self._settings)
        if not client.api_key:
            QMessageBox.warning(self, self.tr("API Key"), self.tr(
                "No API key is configured. Add one under File → Preferences."))
            return None
        return client

    def _start_worker(self, worker, status: str):
        self._workers.append(worker)
        worker.finished.connect(lambda w=worker: self._forget_worker(w))
        self._status_label.setText(status)
        worker.start()

    def _forget_worker(self, worker):
        if worker in self._workers:
            self._workers.remove(worker)

    def _on_worker_error(self, message: str):
        self._status_label.setText(message)
        QMessageBox.warning(self, self.tr("AI Service"), message)

    def _run_analysis(self, keys: list[str], group: Optional[TranslationGroup] = None):
        client = self._client()
        if client is None or not keys:
            return
        worker = AnalysisWorker(
            client, self._project, keys, group=group, glossary=as_mapping(),
            max_workers=int(self._settings["analysis_workers"]),
            feedback_language=self._settings["feedback_language"],
        )
        worker.finished_all.connect(self._on_analysis_done)
        worker.error.connect(self._on_worker_error)
        self._start_worker(worker, self.tr("Analyzing %d keys…") % len(keys))

    def _on_analyze(self):
        self._run_analysis(self._selected_keys(), self._current_group())

    def _on_analyze_group(self):
        group = self._current_group()
        if group is not None:
            self._run_analysis(list(group.keys), group)

    def _on_analysis_done(self, outcomes: dict[str, KeyOutcome]):
        failed = 0
        for key, outcome in outcomes.items():
            if outcome.ok:
                self._results[key] = outcome.result
                self._errors.pop(key, None)
            else:
                self._errors[key] = outcome.error
                failed += 1
        self._refresh_keys()
        self._show_key()
        self._status_label.setText(
            self.tr("Analysis finished: %d succeeded, %d failed.") % (len(outcomes) - failed, failed))

    def _on_show_prompt(self):
        project = self._project
        key = self._current_key
        if project.reference_language is None:
            QMessageBox.warning(self, self.tr("Reference Language"),
                                self.tr("Select a reference language first."))
            return
        group = self._current_group()
        reference, secondary, review = analysis_inputs(project, key)
        prompt = build_analysis_prompt(
            key, group.context if group else project.context_for(key),
            reference, secondary, review, project.history,
            glossary=as_mapping(),
            group_references=group_references(project, group) if group else None,
            global_context=project.global_context,
            feedback_language=self._settings["feedback_language"],
        )
        _PromptDialog(prompt, self).exec()

    def _on_apply_suggestions(self):
        key = self._current_key
        result = self._results.get(key)
        if result is None:
            return
        applied = apply_suggestions(self._project, {key: KeyOutcome(result=result)})
        if not applied:
            self._status_label.setText(self.tr("No suggestions to apply."))
            return
        self._changed()
        self._show_key()
        self._status_label.setText(self.tr("Applied %d suggestions.") % applied)

    def _on_glossary(self):
        GlossaryDialog(self._project, self).exec()

    def _on_bulk_translate(self):
        client = self._client()
        if client is None:
            return
        keys = [item.text() for item in self._key_list.selectedItems()]
        if len(keys) < 2:
            keys = [self._key_list.item(i).text() for i in range(self._key_list.count())]
        dlg = BulkTranslateDialog(self._project, client, keys, glossary=as_mapping(), parent=self)
        dlg.translations_accepted.connect(self._on_bulk_accepted)
        dlg.exec()

    def _on_bulk_accepted(self, lang: str, translations: dict):
        applied = self._project.save_bulk({lang: translations})
        self._changed()
        self._show_key()
        self._status_label.setText(self.tr("Saved %d translations for %s.") % (applied, lang))

    # ── Groups ────────────────────────────────────────────────────

    def _on_new_group(self):
        keys = [item.text() for item in self._key_list.selectedItems()]
        if not keys:
            QMessageBox.information(self, self.tr("New Group"),
                                    self.tr("Select the keys that belong to the group first."))
            return
        name, ok = QInputDialog.getText(self, self.tr("New Group"), self.tr("Group name:"))
        if not ok:
            return
        context, ok = QInputDialog.getMultiLineText(
            self, self.tr("New Group"), self.tr("Shared context for these keys:"))
        if not ok:
            return
        try:
            group = self._project.add_group(name, context, keys)
        except GroupError as e:
            QMessageBox.warning(self, self.tr("New Group"), str(e))
            return
        self._changed()
        self._refresh_groups()
        self._group_combo.setCurrentIndex(self._group_combo.findData(group.id))

    def _on_delete_group(self):
        group = self._current_group()
        if group is None:
            return
        answer = QMessageBox.question(
            self, self.tr("Delete Group"),
            self.tr("Delete the group \"%s\"? The keys themselves are kept.") % group.name)
        if answer != QMessageBox.Yes:
            return
        self._project.delete_group(group.id)
        self._changed()
        self._refresh_groups()
        self._refresh_keys()
        self._show_key()

    def _on_toggle_reference_key(self):
        group = self._current_group()
        key = self._current_key
        if group is None or key is None:
            return
        if key in group.reference_keys:
            refs = [k for k in group.reference_keys if k != key]
        else:
            refs = [*group.reference_keys, key]
        self._project.update_group(group.id, reference_keys=refs)
        self._changed()
        self._refresh_keys()

    # ── Files ─────────────────────────────────────────────────────

    def open_paths(self, paths: list[str]):
        try:
            result = import_paths(paths)
            project = build_project(
                result,
                reference_aliases=self._settings["reference_aliases"],
                secondary_aliases=[self._settings["secondary_language"]],
            )
        except ProjectImportError as e:
            QMessageBox.critical(self, self.tr("Import Failed"),
                                 "\n".join(str(i) for i in e.issues))
            return
        except OSError as e:
            QMessageBox.critical(self, self.tr("Import Failed"), str(e))
            return
        if result.errors:
            QMessageBox.warning(self, self.tr("Some Files Were Skipped"),
                                "\n".join(str(i) for i in result.errors))
        self._set_project(project)
        self._changed()
        if project.reference_language is None:
            QMessageBox.information(self, self.tr("Reference Language"), self.tr(
                "No file matched the configured reference language. "
                "Choose the reference language before running an analysis."))

    def _on_import(self):
        if self._project is not None and QMessageBox.question(
                self, self.tr("Import Files"),
                self.tr("Importing replaces the current project. Continue?")) != QMessageBox.Yes:
            return
        paths, _ = QFileDialog.getOpenFileNames(
            self, self.tr("Import Translation Files"), "",
            self.tr("Translation files (*.json *.txt *.zip);;All files (*)"),
        )
        if paths:
            self.open_paths(paths)

    def _on_export(self):
        path, _ = QFileDialog.getSaveFileName(
            self, self.tr("Export Project"), "translations.zip", self.tr("ZIP archives (*.zip)"))
        if not path:
            return
        try:
            write_zip(self._project, path)
        except OSError as e:
            QMessageBox.critical(self, self.tr("Export Failed"), str(e))
            return
        self._status_label.setText(self.tr("Exported to %s") % path)

    def _on_close_project(self):
        if QMessageBox.question(
                self, self.tr("Close Project"),
                self.tr("Close the project and discard the saved session?")) != QMessageBox.Yes:
            return
        session.clear_session()
        self._set_project(None)

    def _on_preferences(self):
        if PreferencesDialog(self).exec():
            self._apply_settings()

    def _on_about(self):
        QMessageBox.about(self, self.tr("About LocAssist"), self.tr(
            "<b>LocAssist %s</b><br>AI-assisted review of JSON translation files.") % __version__)

    def closeEvent(self, event):
        for worker in list(self._workers):
            worker.wait()
        self._changed()
        super().closeEvent(event)
