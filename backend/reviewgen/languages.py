from __future__ import annotations

from .settings import settings

SUPPORTED_LANGUAGES: tuple[str, ...] = ("ja", "en", "zh", "ko", "es")

LANGUAGE_NAMES = {
    "ja": "日本語",
    "en": "English",
    "zh": "中文",
    "ko": "한국어",
    "es": "Español",
}

_ALIASES = {
    "jp": "ja",
    "jpn": "ja",
    "japanese": "ja",
    "eng": "en",
    "english": "en",
    "cn": "zh",
    "chinese": "zh",
    "kr": "ko",
    "kor": "ko",
    "korean": "ko",
    "spa": "es",
    "spanish": "es",
}


def base_language() -> str:
    configured = normalize_language(settings.REVIEW_BASE_LANGUAGE)
    return configured or "ja"


def normalize_language(lang: str | None) -> str | None:
    """Map a user-supplied code onto a supported language, or None.

    Region and script subtags are ignored: ``en-US`` -> ``en``, ``zh_Hans`` -> ``zh``.
    """
    if not lang:
        return None
    lowered = lang.strip().lower().replace("_", "-")
    primary = lowered.split("-", 1)[0]
    primary = _ALIASES.get(primary, primary)
    if primary in SUPPORTED_LANGUAGES:
        return primary
    return None


def resolve_language(lang: str | None) -> str:
    return normalize_language(lang) or base_language()
