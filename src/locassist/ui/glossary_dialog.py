"""Glossary management dialog: required translations of key terms."""

from __future__ import annotations

from PySide6.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QLabel, QLineEdit, QPushButton,
    QTableWidget, QTableWidgetItem, QHeaderView, QMessageBox,
    QGroupBox, QAbstractItemView, QListWidget,
)
from PySide6.QtCore import Signal

from locassist.services.glossary import (
    GlossaryTerm, check_glossary, get_terms, remove_term, set_term,
)
from locassist.services.project import Project


class GlossaryDialog(QDialog):
    """Edit glossary terms and check the project against them."""

    glossary_changed = Signal()

    def __init__(self, project: Project, parent=None):
        super().__init__(parent)
        self.setWindowTitle(self.tr("Glossary"))
        self.setMinimumSize(800, 560)
        self._project = project
        self._languages = [lang for lang in project.languages
                           if lang != project.reference_language]
        self._terms: list[GlossaryTerm] = []
        self._build_ui()
        self._load_terms()

    def _build_ui(self):
        layout = QVBoxLayout(self)

        self._search_entry = QLineEdit()
        self._search_entry.setPlaceholderText(self.tr("Search terms..."))
        self._search_entry.setClearButtonEnabled(True)
        self._search_entry.textChanged.connect(self._populate)
        layout.addWidget(self._search_entry)

        table_group = QGroupBox(self.tr("Terms"))
        table_layout = QVBoxLayout(table_group)
        self._table = QTableWidget()
        headers = [self.tr("Term (%s)") % (self._project.reference_language or "?")]
        headers += self._languages + [self.tr("Notes")]
        self._table.setColumnCount(len(headers))
        self._table.setHorizontalHeaderLabels(headers)
        self._table.setAlternatingRowColors(True)
        self._table.setSelectionBehavior(QAbstractItemView.SelectRows)
        self._table.horizontalHeader().setSectionResizeMode(QHeaderView.Stretch)
        table_layout.addWidget(self._table)
        layout.addWidget(table_group, 1)

        btn_layout = QHBoxLayout()
        add_btn = QPushButton(self.tr("Add Term"))
        add_btn.clicked.connect(self._add_row)
        btn_layout.addWidget(add_btn)
        remove_btn = QPushButton(self.tr("Remove Term"))
        remove_btn.clicked.connect(self._remove_selected)
        btn_layout.addWidget(remove_btn)
        check_btn = QPushButton(self.tr("Check Project"))
        check_btn.clicked.connect(self._check_project)
        btn_layout.addWidget(check_btn)
        btn_layout.addStretch()
        save_btn = QPushButton(self.tr("Save"))
        save_btn.clicked.connect(self._save)
        btn_layout.addWidget(save_btn)
        close_btn = QPushButton(self.tr("Close"))
        close_btn.clicked.connect(self.reject)
        btn_layout.addWidget(close_btn)
        layout.addLayout(btn_layout)

        self._violations_label = QLabel("")
        layout.addWidget(self._violations_label)
        self._violations = QListWidget()
        self._violations.setMaximumHeight(140)
        layout.addWidget(self._violations)

    def _load_terms(self):
        self._terms = get_terms()
        self._populate()

    def _populate(self, *_):
        query = self._search_entry.text().strip().lower()
        terms = [t for t in self._terms
                 if not query or query in t.source.lower()
                 or any(query in v.lower() for v in t.translations.values())]
        self._table.setRowCount(len(terms))
        for row, term in enumerate(terms):
            self._table.setItem(row, 0, QTableWidgetItem(term.source))
            for col, lang in enumerate(self._languages, start=1):
                self._table.setItem(row, col, QTableWidgetItem(term.translations.get(lang, "")))
            self._table.setItem(row, len(self._languages) + 1, QTableWidgetItem(term.notes))

    def _cell(self, row: int, col: int) -> str:
        item = self._table.item(row, col)
        return item.text().strip() if item is not None else ""

    def _add_row(self):
        row = self._table.rowCount()
        self._table.insertRow(row)
        item = QTableWidgetItem("")
        self._table.setItem(row, 0, item)
        self._table.setCurrentCell(row, 0)
        self._table.editItem(item)

    def _remove_selected(self):
        rows = sorted({i.row() for i in self._table.selectedIndexes()}, reverse=True)
        for row in rows:
            source = self._cell(row, 0)
            if source:
                remove_term(source)
            self._table.removeRow(row)
        if rows:
            self._terms = get_terms()
            self.glossary_changed.emit()

    def _save(self):
        notes_col = len(self._languages) + 1
        stored = {t.source.lower(): t.translations for t in self._terms}
        for row in range(self._table.rowCount()):
            source = self._cell(row, 0)
            if not source:
                continue
            # languages without a column here are kept as they are
            translations = {lang: text for lang, text in stored.get(source.lower(), {}).items()
                            if lang not in self._languages}
            translations.update({lang: self._cell(row, col)
                                 for col, lang in enumerate(self._languages, start=1)
                                 if self._cell(row, col)})
            set_term(source, translations, self._cell(row, notes_col))
        self._load_terms()
        self.glossary_changed.emit()

    def _check_project(self):
        ref = self._project.reference_language
        self._violations.clear()
        if ref is None:
            QMessageBox.warning(self, self.tr("Reference Language"),
                                self.tr("Select a reference language first."))
            return
        found = 0
        for lang in self._languages:
            entries = [{"key": k, "source": self._project.text(ref, k),
                        "target": self._project.text(lang, k)} for k in self._project.keys]
            for v in check_glossary(entries, lang, self._terms):
                self._violations.addItem(f"{v.key} [{lang}]: {v.message}")
                found += 1
        self._violations_label.setText(self.tr("%d glossary violations.") % found)
