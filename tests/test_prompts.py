"""Tests for the prompt builders."""


def _lv(lang, value):
    from locassist.services.project import LanguageValue
    return LanguageValue(lang, value)


class TestAnalysisPrompt:
    def test_contains_all_material(self):
        from locassist.services.prompts import GroupReference, build_analysis_prompt
        prompt = build_analysis_prompt(
            "buttons.submit", "Form button",
            _lv("pl", "Wyślij"), _lv("en", "Submit"), [_lv("de", "Senden")],
            history={"buttons.submit": {"de": "Absenden"}},
            glossary={"Wyślij": {"de": "Senden"}},
            group_references=[GroupReference("buttons.cancel", [_lv("pl", "Anuluj")])],
            global_context="Banking app",
            feedback_language="English",
        )
        assert '"Wyślij"' in prompt
        assert "Form button" in prompt
        assert "Banking app" in prompt
        assert "Absenden" in prompt
        assert "buttons.cancel" in prompt and "Anuluj" in prompt
        assert "MUST be written in English" in prompt
        for lang in ("pl", "en", "de"):
            assert f"- Language: {lang}," in prompt

    def test_priority_order(self):
        from locassist.services.prompts import GroupReference, build_analysis_prompt
        prompt = build_analysis_prompt(
            "k", "ctx", _lv("pl", "a"), None, [],
            history={"k": {"en": "b"}},
            glossary={"a": {"en": "b"}},
            group_references=[GroupReference("r", [])],
        )
        glossary = prompt.index("**Glossary (CRITICAL PRIORITY):**")
        group = prompt.index("**Group Reference Keys (HIGH PRIORITY):**")
        history = prompt.index("**Change History (HIGH PRIORITY):**")
        source = prompt.index("**SOURCE OF TRUTH (pl):**")
        assert glossary < group < history < source

    def test_optional_sections_omitted(self):
        from locassist.services.prompts import build_analysis_prompt
        prompt = build_analysis_prompt("k", "", _lv("pl", "a"), None, [_lv("de", "")], history={})
        assert "Glossary (CRITICAL" not in prompt
        assert "Group Reference Keys (HIGH" not in prompt
        assert "Change History (HIGH" not in prompt
        assert '"N/A"' in prompt

    def test_history_of_other_keys_ignored(self):
        from locassist.services.prompts import build_analysis_prompt
        prompt = build_analysis_prompt("k", "", _lv("pl", "a"), None, [],
                                       history={"other": {"en": "secret"}})
        assert "secret" not in prompt


class TestContextPrompt:
    def test_context_prompt(self):
        from locassist.services.prompts import build_context_prompt
        prompt = build_context_prompt("menu.file", [_lv("pl", "Plik"), _lv("en", "File")],
                                      global_context="Editor", feedback_language="Polish")
        assert '"menu.file"' in prompt
        assert "- Language: en, Translation: \"File\"" in prompt
        assert "Editor" in prompt
        assert "must be in Polish" in prompt


class TestBulkPrompt:
    def test_bulk_prompt(self):
        from locassist.services.prompts import BulkItem, build_bulk_prompt
        prompt = build_bulk_prompt(
            [BulkItem("a", "Konto", "Account", "Header"), BulkItem("b", "Plik")],
            "de",
            history={"a": {"de": "Benutzerkonto"}, "c": {"fr": "x"}},
            glossary={"Konto": {"de": "Konto"}, "Plik": {"fr": "Fichier"}},
            global_context="",
            reference_lang="pl",
            secondary_lang="en",
        )
        assert "**de**" in prompt
        assert '- Key: "a"' in prompt and '- Key: "b"' in prompt
        assert "Benutzerkonto" in prompt
        assert "Fichier" not in prompt
        assert "No global context" in prompt
        assert 'Current Value: "(empty)"' in prompt
        assert '"translations"' in prompt
