from __future__ import annotations

import asyncio
import logging
import re
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import requests

from . import config, dictionary

logger = logging.getLogger(__name__)

_QUOTES_RE = re.compile(r"^[\"']|[\"']$")
_SPACES_RE = re.compile(r"\s+")
_MAX_TRANSLATION_LENGTH = 50
UNKNOWN_LOCATION = "未知位置"


class TranslationService(ABC):
    """One external translation endpoint (English to Chinese)."""

    name: str
    timeout: float

    def __init__(self, session: requests.Session | None = None) -> None:
        self.session = session or requests.Session()

    @abstractmethod
    def translate(self, text: str) -> Optional[str]:
        """Return the translation, or None when the service had no answer."""


class MyMemoryService(TranslationService):
    name = "mymemory"
    timeout = 5.0
    url = "https://api.mymemory.translated.net/get"

    def translate(self, text: str) -> Optional[str]:
        response = self.session.get(self.url, params={"q": text, "langpair": "en|zh"}, timeout=self.timeout)
        response.raise_for_status()
        data: Dict[str, Any] = response.json()
        if not isinstance(data, dict) or data.get("responseStatus") != 200:
            return None
        result = data.get("responseData")
        if not isinstance(result, dict):
            return None
        return _text_or_none(result.get("translatedText"))


class LibreTranslateService(TranslationService):
    name = "libretranslate"
    timeout = 8.0
    url = "https://libretranslate.de/translate"

    def translate(self, text: str) -> Optional[str]:
        response = self.session.post(
            self.url,
            json={"q": text, "source": "en", "target": "zh", "format": "text"},
            timeout=self.timeout,
        )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            return None
        return _text_or_none(data.get("translatedText"))


def _text_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def clean_translation(text: str) -> str:
    cleaned = _QUOTES_RE.sub("", text.strip())
    cleaned = _SPACES_RE.sub(" ", cleaned)
    return cleaned.strip()[:_MAX_TRANSLATION_LENGTH]


def format_location_name(*parts: Optional[str]) -> str:
    valid = [part.strip() for part in parts if isinstance(part, str) and part.strip()]
    if not valid:
        return UNKNOWN_LOCATION
    return ", ".join(valid)


class Translator:
    """Best-effort translation: local dictionary, then external services.

    ``translate_now`` blocks on the network and is meant for code that already
    runs in a worker thread (provider adapters); ``translate`` is the
    event-loop friendly variant. Neither raises: when every step fails the
    input comes back unchanged.
    """

    def __init__(
        self,
        services: Sequence[TranslationService] | None = None,
        *,
        ttl: float = config.TRANSLATION_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.services: List[TranslationService] = (
            list(services) if services is not None else [MyMemoryService(), LibreTranslateService()]
        )
        self.ttl = ttl
        self._clock = clock
        self._cache: Dict[str, Tuple[str, float]] = {}

    def translate_now(self, text: str, domain: str = "location") -> str:
        if not text or not text.strip():
            return text
        local = dictionary.lookup(text, domain)
        if local:
            return local
        cached = self._cache.get(text)
        if cached and self._clock() - cached[1] < self.ttl:
            return cached[0]
        for service in self.services:
            try:
                translated = service.translate(text)
            except (requests.RequestException, ValueError, AttributeError, KeyError, TypeError) as exc:
                logger.debug("translation via %s failed for %r: %s", service.name, text, exc)
                continue
            if translated and translated != text:
                result = clean_translation(translated)
                self._cache[text] = (result, self._clock())
                return result
        return text

    async def translate(self, text: str, domain: str = "location") -> str:
        return await asyncio.to_thread(self.translate_now, text, domain)

    def clear_cache(self) -> None:
        self._cache.clear()


__all__ = [
    "LibreTranslateService",
    "MyMemoryService",
    "TranslationService",
    "Translator",
    "clean_translation",
    "format_location_name",
]
