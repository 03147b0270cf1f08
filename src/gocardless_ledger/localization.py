"""English/German text selection for transaction labels and prompts."""

from typing import Optional

from .config import get_language


def localize_text(en: str, de: str, language: Optional[str] = None) -> str:
    """Return the text in the requested language.

    Args:
        en: English text.
        de: German text.
        language: 'en' or 'de'. Falls back to GOCARDLESS_LEDGER_LANGUAGE.

    Returns:
        The German text if the language is German, the English one otherwise.
    """
    language = language or get_language()
    return de if language == "de" else en
