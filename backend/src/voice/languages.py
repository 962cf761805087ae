from typing import Dict, List, Optional

from src.voice.exceptions import InputError


SUPPORTED_LANGUAGES: Dict[str, Dict[str, str]] = {
    "hi": {"name": "Hindi", "native_name": "हिन्दी"},
    "en": {"name": "English", "native_name": "English"},
    "mr": {"name": "Marathi", "native_name": "मराठी"},
    "gu": {"name": "Gujarati", "native_name": "ગુજરાતી"},
    "ta": {"name": "Tamil", "native_name": "தமிழ்"},
    "te": {"name": "Telugu", "native_name": "తెలుగు"},
    "kn": {"name": "Kannada", "native_name": "ಕನ್ನಡ"},
    "ml": {"name": "Malayalam", "native_name": "മലയാളം"},
    "pa": {"name": "Punjabi", "native_name": "ਪੰਜਾਬੀ"},
    "bn": {"name": "Bengali", "native_name": "বাংলা"},
}


def base_language(language_code: Optional[str]) -> str:
    """'hi-IN' -> 'hi'"""
    return (language_code or "").strip().replace("_", "-").split("-")[0].lower()


def validate_language(language_code: Optional[str]) -> str:
    """
    Returns the language code unchanged if its base subtag is supported.

    Raises:
        InputError: If the language is missing or not supported
    """
    base = base_language(language_code)
    if base not in SUPPORTED_LANGUAGES:
        raise InputError(
            f"Unsupported language '{language_code}'. "
            f"Supported: {', '.join(SUPPORTED_LANGUAGES)}"
        )
    return language_code.strip()


def list_languages() -> List[Dict[str, str]]:
    return [{"code": code, **names} for code, names in SUPPORTED_LANGUAGES.items()]


def language_name(language_code: str) -> str:
    return SUPPORTED_LANGUAGES.get(base_language(language_code), {}).get("name", language_code)
