"""LLM-backed translation of canonical answers into the user's language."""

from __future__ import annotations

import logging

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import HumanMessage, SystemMessage

from booking_assistant.config import (
    ANTHROPIC_API_KEY,
    CHINESE_SCRIPT,
    FAST_MODEL_NAME,
    GENERATION_TIMEOUT_SECONDS,
)
from booking_assistant.language import detect_language
from booking_assistant.services.cache import LRUCache
from booking_assistant.services.metrics import metrics
from booking_assistant.services.result import Result

logger = logging.getLogger(__name__)

_TARGET_NAMES = {
    "en": "English",
    "ja": "Japanese",
    "ko": "Korean",
}

TRANSLATOR_PROMPT = """You are a professional translator. Translate the user's text into {target}.

Rules:
1. Keep every Markdown construct, HTML tag, code block, URL and line break exactly where it is.
2. Copy placeholders such as {{variable_name}} and any code unchanged.
3. Leave proper nouns and brand names in their original form.
4. Keep the original tone and register.
5. {script_rule}
6. Reply with the translation only: no notes, no quotes, no preamble."""


def _target_name(language: str, chinese_script: str) -> str:
    if language.startswith("zh"):
        if chinese_script == "simplified":
            return "Simplified Chinese"
        return "Traditional Chinese (Taiwan)"
    return _TARGET_NAMES.get(language, language)


def _script_rule(language: str, chinese_script: str) -> str:
    if not language.startswith("zh"):
        return "Use the standard writing system of the target language."
    if chinese_script == "simplified":
        return "Use Simplified Chinese characters and mainland vocabulary (e.g. 软件, 光盘)."
    return "Use Traditional Chinese characters and Taiwanese vocabulary (e.g. 軟體, 光碟)."


def _build_translation_llm() -> ChatAnthropic:
    return ChatAnthropic(
        model=FAST_MODEL_NAME,
        api_key=ANTHROPIC_API_KEY,
        temperature=0.2,
        max_tokens=2048,
        timeout=GENERATION_TIMEOUT_SECONDS,
    )


class Translator:
    """Translate text, passing it through untouched when already in the target language."""

    def __init__(
        self,
        llm=None,
        *,
        cache: LRUCache | None = None,
        chinese_script: str = CHINESE_SCRIPT,
    ) -> None:
        self._llm = llm or _build_translation_llm()
        self._cache = cache or LRUCache()
        self._chinese_script = chinese_script

    def translate(self, text: str, target_language: str) -> Result[str]:
        if not text.strip():
            return Result.success(text)

        source = detect_language(text).language
        if source == target_language:
            return Result.success(text)

        key = f"{target_language}:{self._chinese_script}:{text}"
        cached = self._cache.get(key)
        if cached is not None:
            return Result.success(cached)

        system = TRANSLATOR_PROMPT.format(
            target=_target_name(target_language, self._chinese_script),
            script_rule=_script_rule(target_language, self._chinese_script),
        )
        try:
            with metrics.timed("anthropic", "translate"):
                response = self._llm.invoke([SystemMessage(content=system), HumanMessage(content=text)])
        except Exception as exc:
            logger.warning("Translation to %s failed: %s", target_language, exc)
            return Result.failure(f"translation failed: {type(exc).__name__}")

        translated = (response.content if isinstance(response.content, str) else "").strip()
        if not translated:
            return Result.failure("translation was empty")
        self._cache.put(key, translated)
        return Result.success(translated)
