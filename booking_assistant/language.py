"""Character-class language detection for chat messages.

The detector is a single pass over the message: every non-whitespace
character is tested against four Unicode ranges and the weighted winner is
picked, then a few override rules are applied in order.

>>> detect_language("Hello World").language
'en'
>>> detect_language("안녕하세요").language
'ko'
"""

from __future__ import annotations

import re
from dataclasses import dataclass

SUPPORTED_LANGUAGES: tuple[str, ...] = ("zh-TW", "en", "ja", "ko")

# Internal ids are pasted into follow-up messages by the UI; they carry no
# language signal.
_UUID_RE = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
    re.IGNORECASE,
)

_PATTERNS: dict[str, re.Pattern[str]] = {
    # CJK ideographs, CJK punctuation, full-width forms
    "zh-TW": re.compile(r"[\u4e00-\u9fa5\u3000-\u303f\uff00-\uffef]"),
    # Hiragana, katakana, full-width forms, kanji
    "ja": re.compile(r"[\u3040-\u309f\u30a0-\u30ff\uff00-\uffef\u4e00-\u9faf]"),
    # Hangul syllables, Jamo, compatibility Jamo, full-width forms
    "ko": re.compile(r"[\uac00-\ud7af\u1100-\u11ff\u3130-\u318f\uff00-\uffef]"),
    "en": re.compile(r"[a-zA-Z]"),
}

_WEIGHTS: dict[str, float] = {
    "zh-TW": 1.5,
    "ja": 1.1,
    "ko": 1.1,
    "en": 1.0,
}

_KANA_RE = re.compile(r"[\u3040-\u309f\u30a0-\u30ff]")
_HANGUL_SYLLABLE_RE = re.compile(r"[\uac00-\ud7af]")

# Share of Chinese characters above which Chinese wins outright
_CHINESE_MAJORITY = 0.2


@dataclass(frozen=True)
class LanguageDetectionResult:
    language: str
    confidence: float


def detect_language(
    text: str,
    *,
    default_language: str = "en",
    no_signal_language: str = "zh-TW",
) -> LanguageDetectionResult:
    """Classify *text* into one of ``SUPPORTED_LANGUAGES``.

    ``default_language`` is returned when nothing is left after stripping
    UUIDs; ``no_signal_language`` when the remainder has no countable
    characters.  Both come back with confidence 1.
    """
    clean = _UUID_RE.sub("", text or "").strip()
    if not clean:
        return LanguageDetectionResult(default_language, 1.0)

    counts = {lang: 0 for lang in _PATTERNS}
    total = 0
    for char in clean:
        if char.isspace():
            continue
        total += 1
        for lang, pattern in _PATTERNS.items():
            if pattern.match(char):
                counts[lang] += 1

    if total == 0:
        return LanguageDetectionResult(no_signal_language, 1.0)

    detected = "en"
    best_weighted = 0.0
    ratio = 0.0
    for lang, count in counts.items():
        weighted = count * _WEIGHTS[lang]
        if weighted > best_weighted:
            best_weighted = weighted
            detected = lang
            ratio = count / total

    zh_ratio = counts["zh-TW"] / total
    if counts["zh-TW"] > 0 and zh_ratio > _CHINESE_MAJORITY:
        detected = "zh-TW"
        ratio = zh_ratio

    # Kana means Japanese even when kanji dominate
    if detected == "zh-TW" and _KANA_RE.search(text):
        detected = "ja"

    # Any Hangul syllable at all wins
    if _HANGUL_SYLLABLE_RE.search(text):
        detected = "ko"

    return LanguageDetectionResult(detected, min(ratio * _WEIGHTS[detected], 1.0))


def normalize_language(tag: str | None, fallback: str = "en") -> str:
    """Map a loose language tag (``"zh"``, ``"en-US"``, ``"Japanese"``) onto a supported one."""
    if not tag:
        return fallback
    lowered = tag.strip().lower()
    if lowered.startswith("zh") or lowered in ("chinese", "中文"):
        return "zh-TW"
    if lowered.startswith("ja") or lowered == "japanese":
        return "ja"
    if lowered.startswith("ko") or lowered == "korean":
        return "ko"
    if lowered.startswith("en") or lowered == "english":
        return "en"
    return fallback
