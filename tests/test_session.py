"""Tests for session snapshot persistence."""


class TestSession:
    def test_no_session(self):
        from locassist.services.session import load_session, session_exists, session_timestamp
        assert not session_exists()
        assert load_session() is None
        assert session_timestamp() is None

    def test_save_and_load(self, project):
        from locassist.services.session import load_session, save_session, session_exists
        project.update_value("de", "title", "Anwendung")
        save_session(project)
        assert session_exists()
        restored = load_session()
        assert restored.to_dict() == project.to_dict()
        assert restored.reference_language == "pl"

    def test_save_overwrites(self, project):
        from locassist.services.session import load_session, save_session
        save_session(project)
        project.update_value("de", "title", "Anwendung")
        save_session(project)
        assert load_session().value("de", "title") == "Anwendung"

    def test_corrupt_snapshot_is_cleared(self, isolate_config):
        from locassist.services.session import load_session, session_exists
        isolate_config.mkdir(parents=True, exist_ok=True)
        (isolate_config / "session.json").write_text("{broken", "utf-8")
        assert load_session() is None
        assert not session_exists()

    def test_timestamp(self, project):
        from datetime import datetime
        from locassist.services.session import save_session, session_timestamp
        save_session(project)
        assert session_timestamp() == datetime.fromisoformat(project.last_updated)

    def test_clear(self, project):
        from locassist.services.session import clear_session, save_session, session_exists
        save_session(project)
        clear_session()
        assert not session_exists()
        clear_session()
