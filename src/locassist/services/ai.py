"""AI analysis and bulk translation through a chat-completion service.

Providers: Google Gemini (REST), OpenAI and Anthropic (official SDKs).
Every failure of a remote call is converted to :class:`AIServiceError`
with a readable message and a ``kind`` so callers can tell permission,
quota, key and format problems apart. Nothing here retries; the user
re-runs the action.

SPDX-License-Identifier: GPL-3.0-or-later
"""

from __future__ import annotations

import json
import logging
import re
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Optional

import requests

from locassist.services.glossary import Glossary
from locassist.services.project import LanguageValue, Project, TranslationGroup, TranslationHistory
from locassist.services.prompts import (
    BulkItem, GroupReference, build_analysis_prompt, build_bulk_prompt, build_context_prompt,
)

log = logging.getLogger(__name__)


# ── Errors ────────────────────────────────────────────────────────────

PERMISSION = "permission"
QUOTA = "quota"
INVALID_KEY = "invalid_key"
MALFORMED = "malformed"
TRANSPORT = "transport"
UNKNOWN = "unknown"


class AIServiceError(Exception):
    """A call to the AI service failed or returned something unusable."""

    def __init__(self, message: str, kind: str = UNKNOWN):
        super().__init__(message)
        self.kind = kind


class MissingReferenceError(ValueError):
    """The project has no reference language selected."""


def _status_code(exc: BaseException) -> Optional[int]:
    code = getattr(exc, "status_code", None)
    if code is None:
        response = getattr(exc, "response", None)
        code = getattr(response, "status_code", None)
    return code if isinstance(code, int) else None


def classify_error(exc: BaseException, action: str = "AI analysis") -> AIServiceError:
    """Turn a raw provider / transport exception into an :class:`AIServiceError`."""
    if isinstance(exc, AIServiceError):
        return exc
    text = str(exc)
    lowered = text.lower()
    code = _status_code(exc)
    if "api key not valid" in lowered or "invalid api key" in lowered or "invalid x-api-key" in lowered or code == 401:
        return AIServiceError(
            f"{action} failed: The provided API key is not valid. "
            "Please check your API key and try again.", INVALID_KEY)
    if "PERMISSION_DENIED" in text or code == 403:
        return AIServiceError(
            f"{action} failed due to a permission error. Please ensure the API key "
            "is valid and has the necessary permissions enabled.", PERMISSION)
    if "RESOURCE_EXHAUSTED" in text or code == 429:
        return AIServiceError(
            f"{action} failed: You have exceeded your request quota. Please wait a moment "
            "and try again, or check your API plan and billing details.", QUOTA)
    if isinstance(exc, (requests.ConnectionError, requests.Timeout)) or "connection" in lowered or "timed out" in lowered:
        return AIServiceError(f"{action} failed: could not reach the AI service ({text}).", TRANSPORT)
    return AIServiceError(f"{action} failed: an unknown error occurred ({text}).", UNKNOWN)


# ── Response parsing ──────────────────────────────────────────────────

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")


def parse_json_response(text: str) -> Any:
    """Parse a JSON answer, tolerating Markdown code fences around it."""
    cleaned = _FENCE_RE.sub("", text.strip())
    try:
        return json.loads(cleaned)
    except ValueError:
        pass
    match = re.search(r"\{.*\}", cleaned, re.DOTALL)
    if match:
        try:
            return json.loads(match.group())
        except ValueError:
            pass
    raise AIServiceError("The AI service returned a response that is not valid JSON.", MALFORMED)


class Evaluation(str, Enum):
    GOOD = "Good"
    NEEDS_IMPROVEMENT = "Needs Improvement"
    INCORRECT = "Incorrect"


@dataclass
class AnalysisItem:
    language: str
    evaluation: Evaluation
    feedback: str
    suggestion: Optional[str] = None


@dataclass
class AnalysisResult:
    items: list[AnalysisItem] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Any) -> AnalysisResult:
        if not isinstance(payload, dict) or not isinstance(payload.get("analysis"), list):
            raise AIServiceError("The AI response has no 'analysis' list.", MALFORMED)
        items = []
        for raw in payload["analysis"]:
            try:
                evaluation = Evaluation(raw["evaluation"])
                language = raw["language"]
                feedback = raw.get("feedback", "")
            except (TypeError, KeyError, ValueError, AttributeError):
                raise AIServiceError(f"Unexpected analysis entry: {raw!r}", MALFORMED) from None
            if not isinstance(language, str) or not isinstance(feedback, str):
                raise AIServiceError(f"Unexpected analysis entry: {raw!r}", MALFORMED)
            suggestion = raw.get("suggestion")
            if not isinstance(suggestion, str) or not suggestion.strip():
                suggestion = None
            items.append(AnalysisItem(language, evaluation, feedback, suggestion))
        return cls(items)

    def item_for(self, lang: str) -> Optional[AnalysisItem]:
        for item in self.items:
            if item.language == lang:
                return item
        return None

    def summary(self) -> dict[Evaluation, int]:
        counts = {e: 0 for e in Evaluation}
        for item in self.items:
            counts[item.evaluation] += 1
        return counts

    def unapplied(self, project: Project, key: str) -> list[AnalysisItem]:
        """Suggestions for loaded languages that differ from the current value."""
        return [
            item for item in self.items
            if item.suggestion and project.has_file(item.language)
            and project.value(item.language, key) != item.suggestion
        ]

    def mark_applied(self, lang: str) -> None:
        for item in self.items:
            if item.language == lang:
                item.evaluation = Evaluation.GOOD
                item.suggestion = None


ANALYSIS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "analysis": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "language": {"type": "STRING"},
                    "evaluation": {"type": "STRING", "enum": [e.value for e in Evaluation]},
                    "feedback": {"type": "STRING"},
                    "suggestion": {"type": "STRING"},
                },
                "required": ["language", "evaluation", "feedback"],
            },
        },
    },
    "required": ["analysis"],
}

BULK_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "translations": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "key": {"type": "STRING"},
                    "suggestion": {"type": "STRING"},
                },
                "required": ["key", "suggestion"],
            },
        },
    },
    "required": ["translations"],
}


# ── Providers ─────────────────────────────────────────────────────────

_GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


def _complete_gemini(prompt: str, *, api_key: str, model: str,
                     schema: Optional[dict] = None, timeout: Optional[float] = None) -> str:
    payload: dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
    if schema is not None:
        payload["generationConfig"] = {
            "responseMimeType": "application/json",
            "responseSchema": schema,
        }
    r = requests.post(
        _GEMINI_URL.format(model=model), params={"key": api_key},
        json=payload, timeout=timeout,
    )
    if r.status_code >= 400:
        try:
            err = r.json().get("error", {})
            detail = f"{err.get('status', '')} {err.get('message', '')}".strip()
        except ValueError:
            detail = r.text[:200]
        raise requests.HTTPError(f"{r.status_code} {detail}", response=r)
    try:
        parts = r.json()["candidates"][0]["content"]["parts"]
        return "".join(p.get("text", "") for p in parts)
    except (ValueError, KeyError, IndexError, TypeError):
        raise AIServiceError("Gemini returned an unexpected response.", MALFORMED) from None


def _complete_openai(prompt: str, *, api_key: str, model: str,
                     schema: Optional[dict] = None, timeout: Optional[float] = None) -> str:
    try:
        import openai
    except ImportError:
        raise AIServiceError("Install openai: pip install openai")
    client = openai.OpenAI(api_key=api_key, timeout=timeout)
    kwargs: dict[str, Any] = {}
    if schema is not None:
        kwargs["response_format"] = {"type": "json_object"}
    resp = client.chat.completions.create(
        model=model,
        messages=[{"role": "user", "content": prompt}],
        temperature=0.2,
        **kwargs,
    )
    return (resp.choices[0].message.content or "").strip()


def _complete_anthropic(prompt: str, *, api_key: str, model: str,
                        schema: Optional[dict] = None, timeout: Optional[float] = None) -> str:
    try:
        import anthropic
    except ImportError:
        raise AIServiceError("Install anthropic: pip install anthropic")
    client = anthropic.Anthropic(api_key=api_key, timeout=timeout)
    resp = client.messages.create(
        model=model,
        max_tokens=4096,
        messages=[{"role": "user", "content": prompt}],
    )
    return "".join(getattr(block, "text", "") for block in resp.content).strip()


PROVIDERS = {
    "gemini":    {"fn": _complete_gemini,    "name": "Google Gemini", "model": "gemini-2.5-flash"},
    "openai":    {"fn": _complete_openai,    "name": "OpenAI",        "model": "gpt-4o-mini"},
    "anthropic": {"fn": _complete_anthropic, "name": "Anthropic",     "model": "claude-3-5-haiku-latest"},
}


class AIClient:
    """One configured connection to an AI provider."""

    def __init__(self, provider: str = "gemini", model: str = "",
                 api_key: Optional[str] = None, timeout: Optional[float] = None):
        if provider not in PROVIDERS:
            raise ValueError(f"Unknown AI provider: {provider}")
        self.provider = provider
        self.model = model or PROVIDERS[provider]["model"]
        self.api_key = api_key
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings=None) -> AIClient:
        from locassist.services.keystore import get_secret
        from locassist.services.settings import Settings

        settings = settings or Settings.get()
        provider = settings.ai_provider
        return cls(provider=provider, model=settings["ai_model"] or "",
                   api_key=get_secret(provider))

    def complete(self, prompt: str, schema: Optional[dict] = None,
                 action: str = "AI analysis") -> str:
        """Send *prompt* and return the raw answer text."""
        if not self.api_key:
            raise AIServiceError(
                f"{action} failed: no API key configured for {PROVIDERS[self.provider]['name']}.",
                INVALID_KEY)
        fn = PROVIDERS[self.provider]["fn"]
        try:
            return fn(prompt, api_key=self.api_key, model=self.model,
                      schema=schema, timeout=self.timeout)
        except AIServiceError:
            raise
        except Exception as e:
            log.error("%s via %s failed: %s", action, self.provider, e)
            raise classify_error(e, action) from e


# ── Single-key operations ────────────────────────────────────────────

def analyze_translations(
    client: AIClient,
    key: str,
    context: str,
    reference: LanguageValue,
    secondary: Optional[LanguageValue],
    to_review: list[LanguageValue],
    history: TranslationHistory,
    glossary: Optional[Glossary] = None,
    group_references: Optional[list[GroupReference]] = None,
    global_context: str = "",
    feedback_language: str = "Polish",
) -> AnalysisResult:
    """Ask the service to evaluate every translation of *key*."""
    prompt = build_analysis_prompt(
        key, context, reference, secondary, to_review, history,
        glossary=glossary, group_references=group_references,
        global_context=global_context, feedback_language=feedback_language,
    )
    text = client.complete(prompt, schema=ANALYSIS_SCHEMA, action="AI analysis")
    return AnalysisResult.from_payload(parse_json_response(text))


def generate_context(client: AIClient, key: str, translations: list[LanguageValue],
                     global_context: str = "", feedback_language: str = "Polish") -> str:
    """Ask the service for a short description of where *key* is used."""
    prompt = build_context_prompt(key, translations, global_context, feedback_language)
    text = client.complete(prompt, action="AI context suggestion").strip().strip('"')
    if not text:
        raise AIServiceError("AI context suggestion failed: the answer was empty.", MALFORMED)
    return text


def _require_reference(project: Project) -> str:
    if project.reference_language is None:
        raise MissingReferenceError(
            "A reference language must be selected before using the AI service.")
    return project.reference_language


def analysis_inputs(project: Project, key: str, languages: Optional[Iterable[str]] = None
                    ) -> tuple[LanguageValue, Optional[LanguageValue], list[LanguageValue]]:
    """Reference value, secondary value and the values to review for *key*."""
    ref = _require_reference(project)
    reference = LanguageValue(ref, project.text(ref, key))
    secondary = None
    if project.secondary_language is not None:
        secondary = LanguageValue(project.secondary_language,
                                  project.text(project.secondary_language, key))
    review = project.review_languages
    if languages is not None:
        wanted = set(languages)
        review = [lang for lang in review if lang in wanted]
    return reference, secondary, [LanguageValue(lang, project.text(lang, key)) for lang in review]


def group_references(project: Project, group: TranslationGroup) -> list[GroupReference]:
    return [GroupReference(key, project.translations_for(key)) for key in group.reference_keys]


# ── Fan-out ───────────────────────────────────────────────────────────

@dataclass
class KeyOutcome:
    """Result of analysing one key: either a result or an error message."""
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None
    kind: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.result is not None


def analyze_keys(
    client: AIClient,
    project: Project,
    keys: Iterable[str],
    group: Optional[TranslationGroup] = None,
    glossary: Optional[Glossary] = None,
    languages: Optional[Iterable[str]] = None,
    max_workers: int = 4,
    feedback_language: str = "Polish",
) -> dict[str, KeyOutcome]:
    """Analyse many keys concurrently and wait for all of them.

    Each key succeeds or fails on its own; a failed request never cancels the
    others and its error is stored in that key's :class:`KeyOutcome`.
    """
    _require_reference(project)
    keys = list(dict.fromkeys(keys))
    languages = list(languages) if languages is not None else None
    refs = group_references(project, group) if group is not None and group.reference_keys else None

    def run(key: str) -> KeyOutcome:
        reference, secondary, review = analysis_inputs(project, key, languages)
        context = group.context if group is not None else project.context_for(key)
        try:
            result = analyze_translations(
                client, key, context, reference, secondary, review, project.history,
                glossary=glossary, group_references=refs,
                global_context=project.global_context, feedback_language=feedback_language,
            )
        except AIServiceError as e:
            log.warning("Analysis of %s failed: %s", key, e)
            return KeyOutcome(error=str(e), kind=e.kind)
        return KeyOutcome(result=result)

    if not keys:
        return {}
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(keys)))) as pool:
        outcomes = list(pool.map(run, keys))
    return dict(zip(keys, outcomes))


def analyze_group(client: AIClient, project: Project, group: TranslationGroup,
                  **kwargs: Any) -> dict[str, KeyOutcome]:
    """Analyse every key of *group* with the group's context and reference keys."""
    return analyze_keys(client, project, group.keys, group=group, **kwargs)


def apply_suggestions(project: Project, outcomes: dict[str, KeyOutcome]) -> int:
    """Write every suggestion that differs from the current value."""
    applied = 0
    for key, outcome in outcomes.items():
        if outcome.result is None:
            continue
        for item in outcome.result.unapplied(project, key):
            project.update_value(item.language, key, item.suggestion)
            outcome.result.mark_applied(item.language)
            applied += 1
    return applied


# ── Bulk translation ─────────────────────────────────────────────────

@dataclass
class ChunkFailure:
    keys: list[str]
    error: str
    kind: str = UNKNOWN


@dataclass
class BulkResult:
    suggestions: dict[str, str] = field(default_factory=dict)
    failures: list[ChunkFailure] = field(default_factory=list)

    @property
    def failed_keys(self) -> list[str]:
        return [k for f in self.failures for k in f.keys]

    def accepted(self, edited: Optional[dict[str, str]] = None) -> dict[str, str]:
        """Suggestions with the user's *edited* texts laid over them.

        Edits may also fill keys that got no suggestion. Blank texts are
        dropped so that nothing empty gets written.
        """
        edited = edited or {}
        out = {}
        for key in dict.fromkeys([*self.suggestions, *edited]):
            text = edited.get(key, self.suggestions.get(key, ""))
            if text.strip():
                out[key] = text
        return out


def bulk_items(project: Project, keys: Iterable[str], target_lang: str) -> list[BulkItem]:
    ref = _require_reference(project)
    sec = project.secondary_language
    return [
        BulkItem(
            key=key,
            reference=project.text(ref, key),
            secondary=project.text(sec, key) if sec else "",
            context=project.context_for(key),
            current=project.text(target_lang, key),
        )
        for key in keys
    ]


def bulk_translate(
    client: AIClient,
    project: Project,
    keys: Iterable[str],
    target_lang: str,
    chunk_size: int = 10,
    delay: float = 1.0,
    glossary: Optional[Glossary] = None,
    on_progress: Optional[Callable[[int, int], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> BulkResult:
    """Translate *keys* into *target_lang* in serial chunks.

    Chunks are separated by a fixed *delay*. A chunk that fails is recorded
    in ``failures`` and its keys get no suggestion; the remaining chunks
    still run. Suggestions for keys that were not asked for are dropped.
    """
    items = bulk_items(project, keys, target_lang)
    chunk_size = max(1, chunk_size)
    total = len(items)
    result = BulkResult()
    processed = 0

    for start in range(0, total, chunk_size):
        chunk = items[start:start + chunk_size]
        chunk_keys = [item.key for item in chunk]
        prompt = build_bulk_prompt(
            chunk, target_lang, project.history, glossary, project.global_context,
            reference_lang=project.reference_language,
            secondary_lang=project.secondary_language,
        )
        try:
            text = client.complete(prompt, schema=BULK_SCHEMA, action="AI translation")
            payload = parse_json_response(text)
            translations = payload.get("translations") if isinstance(payload, dict) else None
            if not isinstance(translations, list):
                raise AIServiceError("The AI response has no 'translations' list.", MALFORMED)
            wanted = set(chunk_keys)
            for entry in translations:
                if not isinstance(entry, dict):
                    continue
                key, suggestion = entry.get("key"), entry.get("suggestion")
                if isinstance(key, str) and key in wanted and isinstance(suggestion, str):
                    result.suggestions[key] = suggestion
        except AIServiceError as e:
            log.warning("Bulk chunk %d failed (%d keys): %s",
                        start // chunk_size + 1, len(chunk_keys), e)
            result.failures.append(ChunkFailure(chunk_keys, str(e), e.kind))

        processed += len(chunk)
        if on_progress is not None:
            on_progress(processed, total)
        if start + chunk_size < total and delay > 0:
            sleep(delay)

    return result
