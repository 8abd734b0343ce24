"""Preferences dialog — languages, AI provider and API key."""

from __future__ import annotations

from PySide6.QtWidgets import (
    QDialog, QVBoxLayout, QTabWidget, QWidget, QFormLayout,
    QLineEdit, QComboBox, QSpinBox, QDialogButtonBox, QCheckBox, QLabel,
)

from locassist.services import keystore
from locassist.services.ai import PROVIDERS
from locassist.services.settings import Settings


class PreferencesDialog(QDialog):

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setWindowTitle(self.tr("Preferences"))
        self.setModal(True)
        self.resize(500, 380)
        self._settings = Settings.get()
        self._build_ui()

    def _build_ui(self):
        layout = QVBoxLayout(self)

        tabs = QTabWidget()
        tabs.addTab(self._build_languages_tab(), self.tr("Languages"))
        tabs.addTab(self._build_ai_tab(), self.tr("AI Service"))
        layout.addWidget(tabs)

        buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        buttons.accepted.connect(self._on_accept)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def _build_languages_tab(self) -> QWidget:
        page = QWidget()
        form = QFormLayout(page)
        form.setFieldGrowthPolicy(QFormLayout.ExpandingFieldsGrow)

        self._aliases_edit = QLineEdit(", ".join(self._settings["reference_aliases"]))
        self._aliases_edit.setToolTip(self.tr(
            "File names offered as the reference language when a project is imported"))
        form.addRow(self.tr("Reference language names:"), self._aliases_edit)

        self._secondary_edit = QLineEdit(self._settings["secondary_language"])
        form.addRow(self.tr("Secondary language name:"), self._secondary_edit)

        self._feedback_edit = QLineEdit(self._settings["feedback_language"])
        form.addRow(self.tr("Language of AI feedback:"), self._feedback_edit)

        self._restore_check = QCheckBox(self.tr("Offer to continue the last session on start"))
        self._restore_check.setChecked(bool(self._settings["restore_session"]))
        form.addRow("", self._restore_check)

        self._font_spin = QSpinBox()
        self._font_spin.setRange(8, 32)
        self._font_spin.setValue(self._settings["editor_font_size"])
        form.addRow(self.tr("Editor font size:"), self._font_spin)

        return page

    def _build_ai_tab(self) -> QWidget:
        page = QWidget()
        form = QFormLayout(page)
        form.setFieldGrowthPolicy(QFormLayout.ExpandingFieldsGrow)

        self._provider_combo = QComboBox()
        for key, info in PROVIDERS.items():
            self._provider_combo.addItem(info["name"], key)
        index = self._provider_combo.findData(self._settings.ai_provider)
        self._provider_combo.setCurrentIndex(max(0, index))
        self._provider_combo.currentIndexChanged.connect(self._on_provider_changed)
        form.addRow(self.tr("Provider:"), self._provider_combo)

        self._model_edit = QLineEdit(self._settings["ai_model"])
        form.addRow(self.tr("Model:"), self._model_edit)

        self._key_edit = QLineEdit()
        self._key_edit.setEchoMode(QLineEdit.Password)
        form.addRow(self.tr("API key:"), self._key_edit)

        self._workers_spin = QSpinBox()
        self._workers_spin.setRange(1, 16)
        self._workers_spin.setValue(self._settings["analysis_workers"])
        form.addRow(self.tr("Parallel analyses:"), self._workers_spin)

        backend = QLabel(self.tr("Keys are stored with: %s") % keystore.backend_name())
        backend.setWordWrap(True)
        form.addRow("", backend)

        self._on_provider_changed()
        return page

    def _provider(self) -> str:
        return self._provider_combo.currentData()

    def _on_provider_changed(self, *_):
        provider = self._provider()
        self._model_edit.setPlaceholderText(PROVIDERS[provider]["model"])
        self._key_edit.setPlaceholderText(
            self.tr("(configured)") if keystore.get_secret(provider) else "")

    def _on_accept(self):
        self._save()
        self.accept()

    def _save(self):
        s = self._settings
        aliases = [a.strip() for a in self._aliases_edit.text().split(",") if a.strip()]
        s["reference_aliases"] = aliases or list(s["reference_aliases"])
        s["secondary_language"] = self._secondary_edit.text().strip()
        s["feedback_language"] = self._feedback_edit.text().strip() or "Polish"
        s["restore_session"] = self._restore_check.isChecked()
        s["editor_font_size"] = self._font_spin.value()
        s["ai_provider"] = self._provider()
        s["ai_model"] = self._model_edit.text().strip()
        s["analysis_workers"] = self._workers_spin.value()
        s.save()

        key = self._key_edit.text().strip()
        if key:
            keystore.store_secret(self._provider(), key)
