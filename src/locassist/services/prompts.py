"""Prompt builders for translation analysis, context suggestion and bulk translation.

The builders are pure string templating; they are also used to show the user
the exact prompt before anything is sent.

SPDX-License-Identifier: GPL-3.0-or-later
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from locassist.services.glossary import Glossary
from locassist.services.project import LanguageValue, TranslationHistory

EVALUATIONS = ("Good", "Needs Improvement", "Incorrect")


@dataclass
class GroupReference:
    """A reference key of a group with its value in every language."""
    key: str
    translations: list[LanguageValue]

    def value_in(self, lang: str) -> str:
        for t in self.translations:
            if t.lang == lang:
                return t.value
        return ""


@dataclass
class BulkItem:
    """One key to translate in a bulk request."""
    key: str
    reference: str
    secondary: str = ""
    context: str = ""
    current: str = ""


def _translation_lines(values: list[LanguageValue]) -> str:
    return "\n".join(f'- Language: {t.lang}, Translation: "{t.value}"' for t in values)


def _glossary_section(glossary: Optional[Glossary], reference_lang: str) -> str:
    if not glossary:
        return ""
    lines = []
    for term, translations in glossary.items():
        rendered = ", ".join(f'{lang}: "{text}"' for lang, text in translations.items())
        lines.append(f"- The term '{term}' ({reference_lang}) must always be translated as: "
                     f"{rendered}. This rule has the highest priority.")
    return (
        "\n**Glossary (CRITICAL PRIORITY):**\n"
        "The terms below have fixed translations. Using them is mandatory and overrides "
        "every other rule. Any deviation is a critical error.\n"
        + "\n".join(lines) + "\n"
    )


def _group_section(group_references: Optional[list[GroupReference]], reference_lang: str) -> str:
    if not group_references:
        return ""
    lines = [
        f"- Key '{ref.key}' ({reference_lang} value: \"{ref.value_in(reference_lang) or 'N/A'}\") "
        f"is the model for this task. Follow its terminology and phrasing strictly."
        for ref in group_references
    ]
    return (
        "\n**Group Reference Keys (HIGH PRIORITY):**\n"
        "The user marked the keys below as the model for this group.\n"
        + "\n".join(lines) + "\n"
    )


def _history_section(key: str, history: TranslationHistory) -> str:
    approved = history.get(key) or {}
    if not approved:
        return ""
    lines = [f'- For language \'{lang}\' the final, user-approved version is: "{value}".'
             for lang, value in approved.items()]
    return (
        "\n**Change History (HIGH PRIORITY):**\n"
        f"For key '{key}' the user saved the versions below by hand. "
        "They are final and correct translations.\n"
        + "\n".join(lines) + "\n"
    )


def build_analysis_prompt(
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
) -> str:
    """Prompt asking for an evaluation of every translation of *key*."""
    analysed = [reference, *([secondary] if secondary else []), *to_review]
    secondary_lang = secondary.lang if secondary else "N/A"
    secondary_value = secondary.value if secondary else "N/A"
    ref = reference.lang

    return f"""You are a world-class linguist specialising in software localization. Your work demands absolute precision. Your answers (the 'feedback' and 'suggestion' fields) MUST be written in {feedback_language}.

**CRITICAL TASK INSTRUCTIONS (HIGHEST PRIORITY):**
1.  **SOURCE OF TRUTH:** The {ref} translation is the only and final point of reference. Judge every other translation SOLELY on how well it matches the {ref} version in meaning, tone and context.
2.  **ROLE OF THE SECONDARY LANGUAGE:** The {secondary_lang} translation is only additional context and must NEVER be used as the model where it disagrees with {ref}.
3.  **NO OTHER REFERENCES:** Never use any other language as a point of reference. Doing so is a critical error.
4.  **CHECK THE SOURCE:** Also check the {ref} and {secondary_lang} translations for grammar mistakes, typos or awkward style. Report any problem in the evaluation for that language and suggest a fix.

Information priority, from most to least important:
1.  **Glossary**
2.  **Group Reference Keys**
3.  **Change History**
4.  **Source of Truth ({ref})**
5.  **General Context**
{_glossary_section(glossary, ref)}{_group_section(group_references, ref)}{_history_section(key, history)}
**SOURCE OF TRUTH ({ref}):**
"{reference.value}"

**ADDITIONAL REFERENCE ({secondary_lang}):**
"{secondary_value}"

**Key:** "{key}"

**Application Context:** "{global_context or 'N/A'}"

**General Context:** "{context}"

**Task:**
Rigorously evaluate every translation listed below, following the instructions above.

**For each language return:**
1.  **'language'**: the language identifier exactly as listed.
2.  **'evaluation'**: one of {', '.join(repr(e) for e in EVALUATIONS)}.
3.  **'feedback'**: concise, specific reasoning in {feedback_language} that justifies the evaluation. Basic Markdown is allowed.
4.  **'suggestion'**: if the evaluation is 'Needs Improvement' or 'Incorrect', ONLY the suggested translation text. Omit the field when the translation is 'Good'.

**Translations to evaluate:**
{_translation_lines(analysed)}

Respond with a JSON object of the form {{"analysis": [{{"language": "...", "evaluation": "...", "feedback": "...", "suggestion": "..."}}]}}."""


def build_context_prompt(key: str, translations: list[LanguageValue],
                         global_context: str = "", feedback_language: str = "Polish") -> str:
    """Prompt asking for a short description of where *key* is used."""
    app = f"\nApplication Context: \"{global_context}\"\n" if global_context else ""
    return f"""You are a UX and localization specialist. Write a short but precise context description for a translation key in an application. The description must be in {feedback_language}. Based on the key name and its existing values, describe where and for what purpose this text is likely used in the user interface.
{app}
Key: "{key}"

Existing Translations:
{_translation_lines(translations)}

Suggested Context (answer ONLY with the suggested description, without any preamble, Markdown, quotes or headings such as "Suggested Context:"):"""


def build_bulk_prompt(
    items: list[BulkItem],
    target_lang: str,
    history: TranslationHistory,
    glossary: Optional[Glossary],
    global_context: str,
    reference_lang: str,
    secondary_lang: Optional[str] = None,
) -> str:
    """Prompt asking for translations of many keys into *target_lang*."""
    history_lines = "\n".join(
        f'- Key \'{key}\': the approved version is "{per_lang[target_lang]}".'
        for key, per_lang in history.items() if per_lang.get(target_lang)
    )
    glossary_lines = "\n".join(
        f'- The {reference_lang} term \'{term}\' must be translated as "{per_lang[target_lang]}".'
        for term, per_lang in (glossary or {}).items() if per_lang.get(target_lang)
    )
    secondary_label = secondary_lang or "secondary"
    keys_text = "".join(
        f'\n- Key: "{item.key}"\n'
        f'  {reference_lang} (Source of Truth): "{item.reference}"\n'
        f'  {secondary_label} (Reference): "{item.secondary}"\n'
        f'  Context for this key: "{item.context or "None"}"\n'
        f'  Current Value: "{item.current or "(empty)"}"\n'
        for item in items
    )

    return f"""You are a software localization expert. Your task is to translate a group of keys into the target language: **{target_lang}**.

**Global Application Context:**
{global_context or "No global context. Focus on the individual keys."}

**CRITICAL RULES (HIGHEST PRIORITY):**
1.  **Glossary:** The terms below MUST be translated exactly as given. This rule overrides everything else.
2.  **Source of Truth:** **{reference_lang}** is the absolute source of truth for meaning.
3.  **Supporting Context:** **{secondary_label}** and the per-key context are additional context only.
4.  **Consistency:** Keep terminology and style consistent across every translation in this group. If a word is translated one way in one key, it must not be translated differently in another.
5.  **History:** Below are translations previously approved by a human. They have high priority.
6.  **Output Format:** Return ONLY a JSON object. Do not add any other text or Markdown.

**Glossary for {target_lang} (CRITICAL PRIORITY):**
{glossary_lines or "No glossary for this language."}

**Approved history for {target_lang} (HIGH PRIORITY):**
{history_lines or "No history for this language."}

**Keys to translate:**
{keys_text}
Translate every key above into **{target_lang}** and return a JSON object of the form {{"translations": [{{"key": "...", "suggestion": "..."}}]}}.
"""
