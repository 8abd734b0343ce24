"""Bulk AI Translate dialog — translate many keys into one language at once.

SPDX-License-Identifier: GPL-3.0-or-later
"""

from __future__ import annotations

from typing import Optional

from PySide6.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QLabel, QPushButton,
    QProgressBar, QGroupBox, QComboBox, QCheckBox, QSpinBox, QDoubleSpinBox,
    QTableWidget, QTableWidgetItem, QHeaderView, QAbstractItemView,
    QFormLayout, QMessageBox,
)
from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QColor, QBrush

from locassist.services.ai import AIClient, BulkResult
from locassist.services.glossary import Glossary
from locassist.services.project import Project
from locassist.services.settings import Settings
from locassist.ui.workers import BulkTranslateWorker


def _readonly_item(text: str) -> QTableWidgetItem:
    item = QTableWidgetItem(text)
    item.setFlags(item.flags() & ~Qt.ItemIsEditable)
    return item


class BulkTranslateDialog(QDialog):
    """Translate a set of keys with preview before anything is written."""

    # Emitted when the user accepts: target language, {key: translation}
    translations_accepted = Signal(str, dict)

    def __init__(self, project: Project, client: AIClient, keys: list[str],
                 glossary: Optional[Glossary] = None, parent=None):
        super().__init__(parent)
        self.setWindowTitle(self.tr("Bulk AI Translate"))
        self.setMinimumSize(800, 550)

        self._project = project
        self._client = client
        self._all_keys = keys
        self._glossary = glossary
        self._worker: Optional[BulkTranslateWorker] = None
        self._keys: list[str] = []
        self._result = BulkResult()

        self._build_ui()

    # ── UI ────────────────────────────────────────────────────────

    def _build_ui(self):
        layout = QVBoxLayout(self)
        settings = Settings.get()

        self._info = QLabel()
        self._info.setTextFormat(Qt.RichText)
        layout.addWidget(self._info)

        settings_group = QGroupBox(self.tr("Translation Settings"))
        form = QFormLayout(settings_group)

        self._target_combo = QComboBox()
        targets = [lang for lang in self._project.languages
                   if lang != self._project.reference_language]
        self._target_combo.addItems(targets)
        self._target_combo.currentIndexChanged.connect(self._populate_table)
        form.addRow(self.tr("Target language:"), self._target_combo)

        self._only_missing = QCheckBox(self.tr("Only keys without a translation"))
        self._only_missing.setChecked(True)
        self._only_missing.toggled.connect(self._populate_table)
        form.addRow(self._only_missing)

        self._chunk_spin = QSpinBox()
        self._chunk_spin.setRange(1, 100)
        self._chunk_spin.setValue(settings.bulk_chunk_size)
        form.addRow(self.tr("Keys per request:"), self._chunk_spin)

        self._delay_spin = QDoubleSpinBox()
        self._delay_spin.setRange(0.0, 60.0)
        self._delay_spin.setSingleStep(0.5)
        self._delay_spin.setSuffix(self.tr(" s"))
        self._delay_spin.setValue(settings.bulk_delay_seconds)
        form.addRow(self.tr("Pause between requests:"), self._delay_spin)

        layout.addWidget(settings_group)

        self._progress_bar = QProgressBar()
        self._progress_bar.setTextVisible(True)
        self._progress_bar.setFormat(self.tr("%v / %m"))
        self._progress_bar.setVisible(False)
        layout.addWidget(self._progress_bar)

        self._status_label = QLabel("")
        self._status_label.setWordWrap(True)
        layout.addWidget(self._status_label)

        self._table = QTableWidget()
        self._table.setColumnCount(4)
        self._table.setHorizontalHeaderLabels([
            self.tr("Key"), self.tr("Reference"), self.tr("Suggestion"), self.tr("Status"),
        ])
        self._table.setAlternatingRowColors(True)
        self._table.setSelectionBehavior(QAbstractItemView.SelectRows)
        header = self._table.horizontalHeader()
        header.setSectionResizeMode(0, QHeaderView.ResizeToContents)
        header.setSectionResizeMode(1, QHeaderView.Stretch)
        header.setSectionResizeMode(2, QHeaderView.Stretch)
        header.setSectionResizeMode(3, QHeaderView.ResizeToContents)
        layout.addWidget(self._table, 1)

        btn_layout = QHBoxLayout()

        self._translate_btn = QPushButton(self.tr("Translate"))
        self._translate_btn.clicked.connect(self._start_translation)
        btn_layout.addWidget(self._translate_btn)

        btn_layout.addStretch()

        self._apply_btn = QPushButton(self.tr("Apply Results"))
        self._apply_btn.setEnabled(False)
        self._apply_btn.clicked.connect(self._apply_results)
        btn_layout.addWidget(self._apply_btn)

        self._close_btn = QPushButton(self.tr("Close"))
        self._close_btn.clicked.connect(self.reject)
        btn_layout.addWidget(self._close_btn)

        layout.addLayout(btn_layout)

        self._populate_table()

    def _target(self) -> str:
        return self._target_combo.currentText()

    def _populate_table(self):
        target = self._target()
        if self._only_missing.isChecked() and target:
            missing = set(self._project.untranslated_keys(target))
            self._keys = [k for k in self._all_keys if k in missing]
        else:
            self._keys = list(self._all_keys)

        self._info.setText(self.tr("<b>%d</b> keys selected out of <b>%d</b>.")
                           % (len(self._keys), len(self._all_keys)))

        ref = self._project.reference_language
        self._table.setRowCount(len(self._keys))
        for row, key in enumerate(self._keys):
            source = self._project.text(ref, key) if ref else ""
            self._table.setItem(row, 0, _readonly_item(key))
            self._table.setItem(row, 1, _readonly_item(source[:200].replace("\n", " ")))
            self._table.setItem(row, 2, QTableWidgetItem(""))
            self._table.setItem(row, 3, _readonly_item(self.tr("Pending")))
        self._apply_btn.setEnabled(False)

    # ── Translation ──────────────────────────────────────────────

    def _start_translation(self):
        if not self._keys or not self._target():
            QMessageBox.information(self, self.tr("Nothing to Translate"),
                                    self.tr("There are no keys to translate."))
            return

        self._result = BulkResult()
        self._progress_bar.setVisible(True)
        self._progress_bar.setMaximum(len(self._keys))
        self._progress_bar.setValue(0)
        self._translate_btn.setEnabled(False)
        self._target_combo.setEnabled(False)
        self._only_missing.setEnabled(False)
        self._apply_btn.setEnabled(False)
        self._close_btn.setEnabled(False)
        self._status_label.setText(self.tr("Translating…"))

        self._worker = BulkTranslateWorker(
            self._client, self._project, self._keys, self._target(),
            chunk_size=self._chunk_spin.value(), delay=self._delay_spin.value(),
            glossary=self._glossary,
        )
        self._worker.progress.connect(self._on_progress)
        self._worker.finished_all.connect(self._on_finished)
        self._worker.error.connect(self._on_error)
        self._worker.start()

    def _on_progress(self, current: int, total: int):
        self._progress_bar.setValue(current)

    def _on_error(self, message: str):
        self._reset_controls()
        self._status_label.setText(message)
        QMessageBox.warning(self, self.tr("Error"), message)

    def _on_finished(self, result: BulkResult):
        self._reset_controls()
        self._result = result
        errors = {k: f.error for f in result.failures for k in f.keys}

        for row, key in enumerate(self._keys):
            if key in result.suggestions:
                self._table.setItem(row, 2, QTableWidgetItem(result.suggestions[key]))
                status_item = _readonly_item("✓")
                status_item.setForeground(QBrush(QColor(30, 130, 50)))
            elif key in errors:
                status_item = _readonly_item(self.tr("Error"))
                status_item.setForeground(QBrush(QColor(200, 50, 50)))
                status_item.setToolTip(errors[key])
            else:
                status_item = _readonly_item(self.tr("No answer"))
            self._table.setItem(row, 3, status_item)

        ok = len(result.suggestions)
        status = self.tr("Done. %d translated, %d failed.") % (ok, len(errors))
        if result.failures:
            status += "\n" + result.failures[0].error
        self._status_label.setText(status)
        # failed rows can still be filled in by hand
        self._apply_btn.setEnabled(ok > 0 or bool(result.failures))

    def _reset_controls(self):
        self._translate_btn.setEnabled(True)
        self._target_combo.setEnabled(True)
        self._only_missing.setEnabled(True)
        self._close_btn.setEnabled(True)

    # ── Apply ────────────────────────────────────────────────────

    def _edited_texts(self) -> dict[str, str]:
        edited = {}
        for row, key in enumerate(self._keys):
            item = self._table.item(row, 2)
            if item is not None:
                edited[key] = item.text()
        return edited

    def _apply_results(self):
        self.translations_accepted.emit(self._target(), self._result.accepted(self._edited_texts()))
        self.accept()

    def reject(self):
        if self._worker is not None and self._worker.isRunning():
            return
        super().reject()
