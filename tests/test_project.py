"""Tests for the project state container."""
import pytest


class TestKeys:
    def test_key_universe(self, project):
        assert project.keys == ["buttons.cancel", "buttons.submit", "count", "tags", "title"]

    def test_keys_recomputed_after_edit(self, project):
        project.update_value("de", "new.key", "neu")
        assert "new.key" in project.keys

    def test_duplicate_language_rejected(self):
        from locassist.parsers.json_parser import TranslationFile
        from locassist.services.project import Project
        with pytest.raises(ValueError):
            Project(files=[TranslationFile("pl", {}), TranslationFile("pl", {})])


class TestLanguages:
    def test_reference_must_exist(self, project):
        with pytest.raises(KeyError):
            project.set_reference_language("fr")

    def test_secondary_differs_from_reference(self, project):
        with pytest.raises(ValueError):
            project.set_secondary_language("pl")

    def test_reference_clears_same_secondary(self, project):
        project.set_reference_language("en")
        assert project.reference_language == "en"
        assert project.secondary_language is None

    def test_review_languages(self, project):
        assert project.review_languages == ["de"]

    def test_guess_language_exact_only(self):
        from locassist.parsers.json_parser import TranslationFile
        from locassist.services.project import Project
        p = Project(files=[TranslationFile("spolish_extra", {}), TranslationFile("Polish", {})])
        assert p.guess_language(["pl", "polish"]) == "Polish"
        assert p.reference_language is None
        q = Project(files=[TranslationFile("pl_old", {})])
        assert q.guess_language(["pl", "polish"]) is None


class TestValues:
    def test_update_value_records_history(self, project):
        before = project.file("de")
        project.update_value("de", "buttons.cancel", "Abbrechen")
        assert project.value("de", "buttons.cancel") == "Abbrechen"
        assert project.history["buttons.cancel"] == {"de": "Abbrechen"}
        assert before.value("buttons.cancel") == ""

    def test_history_is_replaced_not_mutated(self, project):
        project.update_value("de", "title", "Anwendung")
        earlier = project.history
        earlier_entry = earlier["title"]
        project.update_value("en", "title", "App")
        project.update_value("de", "buttons.cancel", "Abbrechen")
        assert earlier == {"title": {"de": "Anwendung"}}
        assert earlier_entry == {"de": "Anwendung"}
        assert project.history["title"] == {"de": "Anwendung", "en": "App"}

    def test_update_value_unknown_language(self, project):
        with pytest.raises(KeyError):
            project.update_value("fr", "title", "Titre")

    def test_text_and_translations_for(self, project):
        from locassist.services.project import LanguageValue
        assert project.text("pl", "count") == "3"
        assert project.text("de", "title") == ""
        assert project.text("xx", "title") == ""
        assert project.translations_for("title") == [
            LanguageValue("pl", "Aplikacja"), LanguageValue("en", "Application"),
            LanguageValue("de", ""),
        ]

    def test_untranslated_keys(self, project):
        assert project.untranslated_keys("de") == ["buttons.cancel", "count", "tags", "title"]

    def test_save_bulk(self, project):
        applied = project.save_bulk({
            "de": {"title": "Anwendung", "count": 3},
            "fr": {"title": "Application"},
        })
        assert applied == 2
        assert project.value("de", "title") == "Anwendung"
        assert not project.has_file("fr")

    def test_search_keys(self, project):
        assert project.search_keys("BUTTONS") == ["buttons.cancel", "buttons.submit"]
        assert project.search_keys("anuluj") == ["buttons.cancel"]
        assert project.search_keys("  ") == project.keys

    def test_touch_on_update(self, project):
        project.last_updated = "2000-01-01T00:00:00+00:00"
        project.update_value("en", "title", "App")
        assert project.last_updated != "2000-01-01T00:00:00+00:00"


class TestContexts:
    def test_flat_and_nested(self, project):
        project.contexts = {"title": "Window title", "buttons": {"submit": "Form button"}}
        assert project.context_for("title") == "Window title"
        assert project.context_for("buttons.submit") == "Form button"
        assert project.context_for("count") == ""

    def test_update_context(self, project):
        assert project.update_context("title", "Main title") is True
        assert project.update_context("title", "Main title") is False
        assert project.contexts["title"] == "Main title"
        assert project.update_context("buttons.submit", "Form button") is True
        assert project.contexts["buttons"] == {"submit": "Form button"}

    def test_global_context(self, project):
        project.set_global_context("A banking app")
        assert project.global_context == "A banking app"


class TestGroups:
    def test_add_group(self, project):
        g = project.add_group(" Buttons ", "Form buttons", ["buttons.submit", "buttons.cancel"],
                              reference_keys=["buttons.submit"])
        assert g.name == "Buttons"
        assert project.group(g.id) is g

    def test_group_ids_unique(self, project):
        a = project.add_group("A", keys=["title"])
        b = project.add_group("B", keys=["title"])
        assert a.id != b.id

    def test_group_validation(self, project):
        from locassist.services.project import GroupError
        with pytest.raises(GroupError):
            project.add_group("", keys=["title"])
        with pytest.raises(GroupError):
            project.add_group("Empty", keys=[])
        with pytest.raises(GroupError):
            project.add_group("Bad", keys=["title"], reference_keys=["count"])

    def test_update_and_delete(self, project):
        g = project.add_group("A", keys=["title"])
        updated = project.update_group(g.id, context="New", keys=["title", "count"])
        assert updated.context == "New"
        assert project.group(g.id).keys == ["title", "count"]
        with pytest.raises(TypeError):
            project.update_group(g.id, colour="red")
        project.delete_group(g.id)
        with pytest.raises(KeyError):
            project.group(g.id)

    def test_unknown_group_keys(self, project):
        g = project.add_group("A", keys=["title", "gone.key"])
        assert project.unknown_group_keys(g) == ["gone.key"]


class TestSnapshot:
    def test_round_trip(self, project):
        from locassist.services.project import Project
        project.update_value("de", "title", "Anwendung")
        project.add_group("A", "ctx", ["title"], ["title"])
        project.set_global_context("App")
        data = project.to_dict()
        assert set(data) == {
            "translationFiles", "contexts", "translationHistory", "translationGroups",
            "globalContext", "referenceLanguage", "secondaryLanguage", "lastUpdated",
        }
        restored = Project.from_dict(data)
        assert restored.to_dict() == data

    def test_unknown_reference_dropped(self):
        from locassist.services.project import Project
        p = Project.from_dict({"translationFiles": [{"name": "en", "data": {}}],
                               "referenceLanguage": "pl"})
        assert p.reference_language is None

    def test_group_keys_from_string(self):
        from locassist.services.project import TranslationGroup
        g = TranslationGroup.from_dict({"id": "1", "name": "A", "keys": "a.b",
                                        "referenceKeys": {"a.b": True}})
        assert g.keys == ["a.b"]
        assert g.reference_keys == []
