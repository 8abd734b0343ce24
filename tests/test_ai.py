"""Tests for the AI service layer, using a fake client instead of a provider."""
import json
import re
import threading

import pytest
import requests

_KEY_RE = re.compile(r'\*\*Key:\*\* "([^"]+)"')
_BULK_KEY_RE = re.compile(r'- Key: "([^"]+)"')


class FakeClient:
    """Answers prompts through *handler* and records every prompt."""

    def __init__(self, handler):
        self.handler = handler
        self.prompts = []
        self._lock = threading.Lock()

    def complete(self, prompt, schema=None, action="AI analysis"):
        with self._lock:
            self.prompts.append(prompt)
        return self.handler(prompt)


def _analysis(*items):
    return json.dumps({"analysis": [
        {"language": lang, "evaluation": ev, "feedback": "fb", **({"suggestion": s} if s else {})}
        for lang, ev, s in items
    ]})


@pytest.fixture
def bulk_project():
    from locassist.parsers.json_parser import TranslationFile
    from locassist.services.project import Project
    source = {f"k{i:02d}": f"tekst {i}" for i in range(1, 11)}
    p = Project(files=[TranslationFile("pl", source), TranslationFile("de", {})])
    p.set_reference_language("pl")
    return p


# ── Errors ───────────────────────────────────────────────────────────

class TestClassifyError:
    def test_http_status_codes(self):
        from locassist.services.ai import INVALID_KEY, PERMISSION, QUOTA, classify_error
        for code, kind in ((401, INVALID_KEY), (403, PERMISSION), (429, QUOTA)):
            response = requests.Response()
            response.status_code = code
            err = classify_error(requests.HTTPError(f"{code} error", response=response))
            assert err.kind == kind

    def test_provider_messages(self):
        from locassist.services.ai import INVALID_KEY, PERMISSION, QUOTA, classify_error
        assert classify_error(Exception("403 PERMISSION_DENIED")).kind == PERMISSION
        assert classify_error(Exception("429 RESOURCE_EXHAUSTED")).kind == QUOTA
        err = classify_error(Exception("API key not valid. Please pass a valid API key."))
        assert err.kind == INVALID_KEY
        assert "not valid" in str(err)

    def test_status_code_attribute(self):
        from locassist.services.ai import QUOTA, classify_error

        class RateLimited(Exception):
            status_code = 429

        assert classify_error(RateLimited("slow down")).kind == QUOTA

    def test_transport_and_unknown(self):
        from locassist.services.ai import TRANSPORT, UNKNOWN, classify_error
        assert classify_error(requests.ConnectionError("refused")).kind == TRANSPORT
        err = classify_error(RuntimeError("weird"), action="AI translation")
        assert err.kind == UNKNOWN
        assert str(err).startswith("AI translation failed")

    def test_already_classified(self):
        from locassist.services.ai import QUOTA, AIServiceError, classify_error
        original = AIServiceError("x", QUOTA)
        assert classify_error(original) is original


class TestParseJsonResponse:
    def test_plain_and_fenced(self):
        from locassist.services.ai import parse_json_response
        assert parse_json_response('{"a": 1}') == {"a": 1}
        assert parse_json_response('```json\n{"a": 1}\n```') == {"a": 1}
        assert parse_json_response('Here you go:\n{"a": 1}\nThanks') == {"a": 1}

    def test_invalid(self):
        from locassist.services.ai import MALFORMED, AIServiceError, parse_json_response
        with pytest.raises(AIServiceError) as exc:
            parse_json_response("no json here")
        assert exc.value.kind == MALFORMED


# ── Results ──────────────────────────────────────────────────────────

class TestAnalysisResult:
    def test_from_payload(self):
        from locassist.services.ai import AnalysisResult, Evaluation
        result = AnalysisResult.from_payload(json.loads(_analysis(
            ("pl", "Good", None), ("de", "Incorrect", "Abbrechen"), ("en", "Good", "  "))))
        assert result.item_for("de").evaluation is Evaluation.INCORRECT
        assert result.item_for("de").suggestion == "Abbrechen"
        assert result.item_for("en").suggestion is None
        assert result.item_for("fr") is None
        assert result.summary() == {
            Evaluation.GOOD: 2, Evaluation.NEEDS_IMPROVEMENT: 0, Evaluation.INCORRECT: 1,
        }

    @pytest.mark.parametrize("payload", [
        [],
        {"analysis": "nope"},
        {"analysis": [{"language": "de", "evaluation": "Great", "feedback": ""}]},
        {"analysis": [{"evaluation": "Good", "feedback": ""}]},
        {"analysis": ["text"]},
    ])
    def test_malformed_payload(self, payload):
        from locassist.services.ai import MALFORMED, AIServiceError, AnalysisResult
        with pytest.raises(AIServiceError) as exc:
            AnalysisResult.from_payload(payload)
        assert exc.value.kind == MALFORMED

    def test_unapplied_and_mark_applied(self, project):
        from locassist.services.ai import AnalysisResult, Evaluation
        result = AnalysisResult.from_payload(json.loads(_analysis(
            ("de", "Incorrect", "Abbrechen"),
            ("en", "Needs Improvement", "Submit"),
            ("fr", "Incorrect", "Annuler"),
        )))
        # en already holds "Submit"; fr is not loaded
        assert [i.language for i in result.unapplied(project, "buttons.submit")] == ["de"]
        result.mark_applied("de")
        assert result.item_for("de").evaluation is Evaluation.GOOD
        assert result.item_for("de").suggestion is None


# ── Client ───────────────────────────────────────────────────────────

class TestAIClient:
    def test_unknown_provider(self):
        from locassist.services.ai import AIClient
        with pytest.raises(ValueError):
            AIClient("skynet")

    def test_default_model(self):
        from locassist.services.ai import PROVIDERS, AIClient
        assert AIClient("openai").model == PROVIDERS["openai"]["model"]
        assert AIClient("openai", model="custom").model == "custom"

    def test_missing_key(self):
        from locassist.services.ai import INVALID_KEY, AIClient, AIServiceError
        with pytest.raises(AIServiceError) as exc:
            AIClient("gemini", api_key=None).complete("hi")
        assert exc.value.kind == INVALID_KEY

    def test_provider_failure_is_classified(self, monkeypatch):
        from locassist.services.ai import PROVIDERS, QUOTA, AIClient, AIServiceError

        def boom(prompt, **kwargs):
            raise RuntimeError("429 RESOURCE_EXHAUSTED")

        monkeypatch.setitem(PROVIDERS["openai"], "fn", boom)
        with pytest.raises(AIServiceError) as exc:
            AIClient("openai", api_key="k").complete("hi")
        assert exc.value.kind == QUOTA
        assert isinstance(exc.value.__cause__, RuntimeError)

    def test_from_settings(self, monkeypatch):
        from locassist.services.ai import AIClient
        from locassist.services.settings import Settings
        monkeypatch.setattr("locassist.services.keystore.get_secret", lambda service: f"key-{service}")
        s = Settings.get()
        s["ai_provider"] = "anthropic"
        client = AIClient.from_settings(s)
        assert client.provider == "anthropic"
        assert client.api_key == "key-anthropic"


class _FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload
        self.text = json.dumps(payload)

    def json(self):
        return self._payload


class TestGemini:
    def test_success(self, monkeypatch):
        from locassist.services.ai import AIClient
        calls = []

        def fake_post(url, params=None, json=None, timeout=None):
            calls.append((url, params, json))
            return _FakeResponse(200, {"candidates": [{"content": {"parts": [{"text": '{"a": 1}'}]}}]})

        monkeypatch.setattr("locassist.services.ai.requests.post", fake_post)
        text = AIClient("gemini", model="gemini-x", api_key="secret").complete("hi", schema={"type": "OBJECT"})
        assert text == '{"a": 1}'
        url, params, body = calls[0]
        assert url.endswith("/models/gemini-x:generateContent")
        assert params == {"key": "secret"}
        assert body["generationConfig"]["responseMimeType"] == "application/json"

    def test_permission_denied(self, monkeypatch):
        from locassist.services.ai import PERMISSION, AIClient, AIServiceError
        monkeypatch.setattr(
            "locassist.services.ai.requests.post",
            lambda *a, **kw: _FakeResponse(403, {"error": {"status": "PERMISSION_DENIED", "message": "no"}}),
        )
        with pytest.raises(AIServiceError) as exc:
            AIClient("gemini", api_key="k").complete("hi")
        assert exc.value.kind == PERMISSION

    def test_unexpected_body(self, monkeypatch):
        from locassist.services.ai import MALFORMED, AIClient, AIServiceError
        monkeypatch.setattr("locassist.services.ai.requests.post",
                            lambda *a, **kw: _FakeResponse(200, {"candidates": []}))
        with pytest.raises(AIServiceError) as exc:
            AIClient("gemini", api_key="k").complete("hi")
        assert exc.value.kind == MALFORMED


# ── Single key and fan-out ───────────────────────────────────────────

class TestAnalyzeKeys:
    def test_all_keys_analysed(self, project):
        from locassist.services.ai import analyze_keys
        client = FakeClient(lambda p: _analysis(("de", "Incorrect", "X")))
        outcomes = analyze_keys(client, project, ["title", "count"], max_workers=2)
        assert set(outcomes) == {"title", "count"}
        assert all(o.ok for o in outcomes.values())
        assert outcomes["title"].result.item_for("de").suggestion == "X"

    def test_one_failure_does_not_cancel_others(self, project):
        from locassist.services.ai import QUOTA, AIServiceError, analyze_keys

        def handler(prompt):
            if _KEY_RE.search(prompt).group(1) == "buttons.cancel":
                raise AIServiceError("quota exceeded", QUOTA)
            return _analysis(("de", "Good", None))

        outcomes = analyze_keys(FakeClient(handler), project, project.keys)
        assert set(outcomes) == set(project.keys)
        failed = [k for k, o in outcomes.items() if not o.ok]
        assert failed == ["buttons.cancel"]
        assert outcomes["buttons.cancel"].error == "quota exceeded"
        assert outcomes["buttons.cancel"].kind == QUOTA

    def test_malformed_answer_is_captured(self, project):
        from locassist.services.ai import MALFORMED, analyze_keys
        outcomes = analyze_keys(FakeClient(lambda p: "garbage"), project, ["title"])
        assert not outcomes["title"].ok
        assert outcomes["title"].kind == MALFORMED

    def test_requests_run_concurrently(self, project):
        from locassist.services.ai import analyze_keys
        barrier = threading.Barrier(3, timeout=5)

        def handler(prompt):
            barrier.wait()
            return _analysis(("de", "Good", None))

        keys = ["title", "count", "tags"]
        outcomes = analyze_keys(FakeClient(handler), project, keys, max_workers=3)
        assert all(outcomes[k].ok for k in keys)

    def test_prompt_material(self, project):
        from locassist.services.ai import analyze_keys
        client = FakeClient(lambda p: _analysis(("de", "Good", None)))
        analyze_keys(client, project, ["title"], languages=["de"])
        prompt = client.prompts[0]
        assert "**SOURCE OF TRUTH (pl):**\n\"Aplikacja\"" in prompt
        assert "**ADDITIONAL REFERENCE (en):**\n\"Application\"" in prompt
        assert '**General Context:** "Window title"' in prompt
        assert "- Language: de," in prompt

    def test_requires_reference_language(self, sample_files):
        from locassist.services.ai import MissingReferenceError, analyze_keys
        from locassist.services.project import Project
        client = FakeClient(lambda p: "{}")
        with pytest.raises(MissingReferenceError):
            analyze_keys(client, Project(files=sample_files), ["title"])
        assert client.prompts == []

    def test_no_keys(self, project):
        from locassist.services.ai import analyze_keys
        assert analyze_keys(FakeClient(lambda p: "{}"), project, []) == {}


class TestAnalyzeGroup:
    def test_group_context_and_references(self, project):
        from locassist.services.ai import analyze_group
        group = project.add_group("Buttons", "Dialog buttons", ["buttons.submit", "buttons.cancel"],
                                  reference_keys=["buttons.submit"])
        client = FakeClient(lambda p: _analysis(("de", "Good", None)))
        outcomes = analyze_group(client, project, group)
        assert set(outcomes) == {"buttons.submit", "buttons.cancel"}
        for prompt in client.prompts:
            assert '**General Context:** "Dialog buttons"' in prompt
            assert "Key 'buttons.submit' (pl value: \"Wyślij\")" in prompt


class TestApplySuggestions:
    def test_apply(self, project):
        from locassist.services.ai import AnalysisResult, KeyOutcome, apply_suggestions
        result = AnalysisResult.from_payload(json.loads(_analysis(
            ("de", "Incorrect", "Abbrechen"), ("en", "Needs Improvement", "Cancel"))))
        outcomes = {
            "buttons.cancel": KeyOutcome(result=result),
            "title": KeyOutcome(error="failed"),
        }
        assert apply_suggestions(project, outcomes) == 2
        assert project.value("de", "buttons.cancel") == "Abbrechen"
        assert project.value("en", "buttons.cancel") == "Cancel"
        assert project.history["buttons.cancel"] == {"de": "Abbrechen", "en": "Cancel"}
        assert apply_suggestions(project, outcomes) == 0


class TestGenerateContext:
    def test_context(self, project):
        from locassist.services.ai import generate_context
        client = FakeClient(lambda p: '  "Title of the main window."\n')
        text = generate_context(client, "title", project.translations_for("title"))
        assert text == "Title of the main window."

    def test_empty_answer(self, project):
        from locassist.services.ai import MALFORMED, AIServiceError, generate_context
        with pytest.raises(AIServiceError) as exc:
            generate_context(FakeClient(lambda p: "   "), "title", [])
        assert exc.value.kind == MALFORMED


# ── Bulk translation ─────────────────────────────────────────────────

def _bulk_answer(prompt):
    keys = _BULK_KEY_RE.findall(prompt)
    return json.dumps({"translations": [{"key": k, "suggestion": f"de-{k}"} for k in keys]})


class TestBulkTranslate:
    def test_partial_failure(self, bulk_project):
        from locassist.services.ai import QUOTA, AIServiceError, bulk_translate

        def handler(prompt):
            if "k05" in _BULK_KEY_RE.findall(prompt):
                raise AIServiceError("quota exceeded", QUOTA)
            return _bulk_answer(prompt)

        sleeps, progress = [], []
        result = bulk_translate(
            FakeClient(handler), bulk_project, bulk_project.keys, "de",
            chunk_size=2, delay=1.5, on_progress=lambda done, total: progress.append((done, total)),
            sleep=sleeps.append,
        )
        expected = [f"k{i:02d}" for i in (1, 2, 3, 4, 7, 8, 9, 10)]
        assert sorted(result.suggestions) == expected
        assert result.suggestions["k01"] == "de-k01"
        assert len(result.failures) == 1
        assert result.failures[0].keys == ["k05", "k06"]
        assert result.failures[0].kind == QUOTA
        assert result.failed_keys == ["k05", "k06"]
        assert sleeps == [1.5] * 4
        assert progress == [(2, 10), (4, 10), (6, 10), (8, 10), (10, 10)]

    def test_chunks_are_serial_and_sized(self, bulk_project):
        from locassist.services.ai import bulk_translate
        client = FakeClient(_bulk_answer)
        bulk_translate(client, bulk_project, bulk_project.keys, "de",
                       chunk_size=4, delay=0, sleep=lambda s: None)
        assert [len(_BULK_KEY_RE.findall(p)) for p in client.prompts] == [4, 4, 2]

    def test_unrequested_and_invalid_entries_dropped(self, bulk_project):
        from locassist.services.ai import bulk_translate
        answer = json.dumps({"translations": [
            {"key": "k01", "suggestion": "eins"},
            {"key": "k99", "suggestion": "extra"},
            {"key": "k02", "suggestion": 2},
            "junk",
        ]})
        result = bulk_translate(FakeClient(lambda p: answer), bulk_project, ["k01", "k02"], "de",
                                sleep=lambda s: None)
        assert result.suggestions == {"k01": "eins"}
        assert result.failures == []

    def test_unhashable_key_does_not_stop_the_batch(self, bulk_project):
        from locassist.services.ai import bulk_translate

        def handler(prompt):
            if "k01" in _BULK_KEY_RE.findall(prompt):
                return json.dumps({"translations": [{"key": ["k01"], "suggestion": "x"},
                                                    {"key": {"k": 1}, "suggestion": "y"}]})
            return _bulk_answer(prompt)

        result = bulk_translate(FakeClient(handler), bulk_project, ["k01", "k02"], "de",
                                chunk_size=1, sleep=lambda s: None)
        assert "k01" not in result.suggestions
        assert "k02" in result.suggestions
        assert result.failures == []

    def test_accepted_applies_edits(self):
        from locassist.services.ai import BulkResult
        result = BulkResult(suggestions={"a": "Eins", "b": "Zwei", "c": "Drei"})
        accepted = result.accepted({"a": "Erstens", "b": "  ", "d": "Vier"})
        assert accepted == {"a": "Erstens", "c": "Drei", "d": "Vier"}
        assert result.accepted() == result.suggestions

    def test_malformed_chunk_recorded(self, bulk_project):
        from locassist.services.ai import MALFORMED, bulk_translate
        result = bulk_translate(FakeClient(lambda p: '{"other": []}'), bulk_project, ["k01"], "de",
                                sleep=lambda s: None)
        assert result.suggestions == {}
        assert result.failures[0].kind == MALFORMED

    def test_nothing_written_to_project(self, bulk_project):
        from locassist.services.ai import bulk_translate
        bulk_translate(FakeClient(_bulk_answer), bulk_project, bulk_project.keys, "de",
                       sleep=lambda s: None)
        assert bulk_project.untranslated_keys("de") == bulk_project.keys
