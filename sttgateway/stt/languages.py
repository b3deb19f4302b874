from typing import List, Tuple

LOCALES: List[Tuple[str, str]] = [
    ("zh-TW", "zh-TW"),
    ("zh-HK", "zh-HK"),
    ("zh", "zh-CN"),
    ("en", "en-US"),
    ("ja", "ja-JP"),
    ("ko", "ko-KR"),
    ("fr", "fr-FR"),
    ("de", "de-DE"),
    ("es", "es-ES"),
    ("it", "it-IT"),
    ("ru", "ru-RU"),
    ("th", "th-TH"),
    ("vi", "vi-VN"),
    ("ar", "ar-SA"),
]

DISPLAY_NAMES: List[Tuple[str, str]] = [
    ("zh-TW", "Traditional Chinese (繁體中文)"),
    ("zh-Hant", "Traditional Chinese (繁體中文)"),
    ("zh", "Simplified Chinese (简体中文)"),
    ("ja", "Japanese (日本語)"),
    ("ko", "Korean (한국어)"),
    ("en", "English"),
    ("fr", "French (Français)"),
    ("es", "Spanish (Español)"),
    ("it", "Italian (Italiano)"),
    ("ru", "Russian (Русский)"),
    ("uk", "Ukrainian (Українська)"),
    ("th", "Thai (ไทย)"),
    ("vi", "Vietnamese (Tiếng Việt)"),
    ("ar", "Arabic (العربية)"),
]


def base_language(language: str) -> str:
    return (language or "").replace("_", "-").split("-")[0].lower()


def to_locale(language: str, default: str = "en-US") -> str:
    """Normalizes a language code to a BCP-47 locale, e.g. 'zh' -> 'zh-CN'."""
    language = (language or "").replace("_", "-")
    for prefix, locale in LOCALES:
        if language.startswith(prefix):
            return locale
    return language or default


def display_name(language: str) -> str:
    for prefix, name in DISPLAY_NAMES:
        if (language or "").startswith(prefix):
            return name
    return f"the language with code '{language}'"
