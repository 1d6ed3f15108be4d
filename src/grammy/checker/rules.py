"""Offline rule-based checker.

A handful of deterministic regex rules. Useful without an API key and as a
predictable checker in tests.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass

from grammy.checker.base import raise_if_cancelled
from grammy.types import RawMatch

logger = logging.getLogger(__name__)

# Vowel-letter words that take "a", and consonant-letter words that take "an".
_A_EXCEPTIONS = frozenset({"one", "once", "unit", "union", "unique", "university", "unicorn", "use", "used", "user",
                           "useful", "usual", "european", "uniform", "utility"})
_AN_EXCEPTIONS = frozenset({"hour", "hours", "honest", "honor", "honour", "heir", "herb"})
_REPEAT_ALLOWED = frozenset({"had", "that"})


@dataclass(frozen=True)
class Rule:
    name: str
    pattern: re.Pattern[str]
    build: Callable[[re.Match[str]], RawMatch | None]


def _match_case(word: str, template: str) -> str:
    return word[:1].upper() + word[1:] if template[:1].isupper() else word


def _article(m: re.Match[str]) -> RawMatch | None:
    article, word = m.group(1), m.group(2)
    lower = word.lower()
    wants_an = (lower[0] in "aeiou" and lower not in _A_EXCEPTIONS) or lower in _AN_EXCEPTIONS
    if wants_an and article.lower() == "a":
        replacement = _match_case("an", article)
    elif not wants_an and article.lower() == "an" and lower[0].isalpha():
        replacement = _match_case("a", article)
    else:
        return None
    return RawMatch(
        message=f'Use "{replacement.lower()}" before "{word}".',
        start=m.start(1),
        end=m.end(1),
        replacement=replacement,
        severity="error",
    )


def _repeated_word(m: re.Match[str]) -> RawMatch | None:
    word = m.group(1)
    if word.lower() in _REPEAT_ALLOWED:
        return None
    return RawMatch(
        message=f'Repeated word "{word}".',
        start=m.start(),
        end=m.end(),
        replacement=word,
        severity="error",
    )


def _first_person_verb(m: re.Match[str]) -> RawMatch | None:
    verb = m.group(1)
    replacement = {"has": "have", "is": "am"}[verb.lower()]
    return RawMatch(
        message=f'Use "I {replacement}" instead of "I {verb}".',
        start=m.start(1),
        end=m.end(1),
        replacement=replacement,
        severity="error",
    )


def _lowercase_i(m: re.Match[str]) -> RawMatch:
    return RawMatch(
        message='The pronoun "I" is always capitalized.',
        start=m.start(),
        end=m.end(),
        replacement="I",
        severity="error",
    )


def _doubled_space(m: re.Match[str]) -> RawMatch:
    return RawMatch(
        message="Use a single space between words.",
        start=m.start(),
        end=m.end(),
        replacement=" ",
        severity="suggestion",
    )


def _space_before_punctuation(m: re.Match[str]) -> RawMatch:
    return RawMatch(
        message=f'Remove the space before "{m.group(1)}".',
        start=m.start(),
        end=m.end(),
        replacement=m.group(1),
        severity="warning",
    )


DEFAULT_RULES: tuple[Rule, ...] = (
    Rule("article", re.compile(r"\b(an?)[ \t]+([A-Za-z]\w*)", re.IGNORECASE), _article),
    Rule("repeated-word", re.compile(r"\b(\w+)[ \t]+\1\b", re.IGNORECASE), _repeated_word),
    Rule("first-person-verb", re.compile(r"\bI[ \t]+(has|is)\b"), _first_person_verb),
    Rule("lowercase-i", re.compile(r"(?<![\w'.])i(?![\w']|\.\w)"), _lowercase_i),
    Rule("doubled-space", re.compile(r"(?<=\S) {2,}(?=\S)"), _doubled_space),
    Rule("space-before-punctuation", re.compile(r"(?<=\w)[ \t]+([,.;:!?])(?!\w)"), _space_before_punctuation),
)


class RuleChecker:
    """Runs regex rules over the text and reports code point matches."""

    name = "rules"

    def __init__(self, rules: tuple[Rule, ...] = DEFAULT_RULES) -> None:
        self.rules = rules

    def check_sync(self, text: str, signal: asyncio.Event | None = None) -> list[RawMatch]:
        matches: list[RawMatch] = []
        for rule in self.rules:
            raise_if_cancelled(signal)
            for m in rule.pattern.finditer(text):
                match = rule.build(m)
                if match is not None:
                    matches.append(match)
        matches.sort(key=lambda r: (r.start or 0, r.end or 0))
        logger.debug("Rules found %d match(es) in %d chars", len(matches), len(text))
        return matches

    async def check(self, text: str, signal: asyncio.Event | None = None) -> list[RawMatch]:
        # Yield once so a superseding edit can cancel before any work is done.
        await asyncio.sleep(0)
        return self.check_sync(text, signal)
