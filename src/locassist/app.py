"""LocAssist PySide6 application entry point."""

from __future__ import annotations

import logging
import sys

from PySide6.QtWidgets import QApplication, QMessageBox

from locassist import APP_ID
from locassist.services import session
from locassist.services.settings import Settings

log = logging.getLogger(__name__)


class LocAssistApp:
    """Main application wrapper."""

    def __init__(self, argv: list[str]):
        self._argv = argv
        self._qt_app = QApplication(argv)
        self._qt_app.setApplicationName("LocAssist")
        self._qt_app.setApplicationDisplayName("LocAssist")
        self._qt_app.setDesktopFileName(APP_ID)

    def _restore_session(self):
        """Offer to continue the stored session; return its project or None."""
        settings = Settings.get()
        if not settings["restore_session"] or not session.session_exists():
            return None
        when = session.session_timestamp()
        text = QApplication.translate("LocAssistApp", "Continue the previous session?")
        if when is not None:
            text += "\n" + QApplication.translate(
                "LocAssistApp", "Last change: %s") % when.astimezone().strftime("%Y-%m-%d %H:%M")
        answer = QMessageBox.question(
            None, QApplication.translate("LocAssistApp", "Previous Session"), text)
        if answer != QMessageBox.Yes:
            session.clear_session()
            return None
        project = session.load_session()
        if project is None:
            QMessageBox.warning(
                None, QApplication.translate("LocAssistApp", "Previous Session"),
                QApplication.translate("LocAssistApp", "The saved session could not be read."))
        return project

    def run(self) -> int:
        from locassist.ui.window import LocAssistWindow

        paths = self._argv[1:]
        project = None if paths else self._restore_session()
        self._win = LocAssistWindow(project)
        if paths:
            self._win.open_paths(paths)
        self._win.show()
        return self._qt_app.exec()


def main():
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")
    app = LocAssistApp(sys.argv)
    sys.exit(app.run())


if __name__ == "__main__":
    main()
