"""Haiku domain entities."""

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_LANG = "en"
MAX_HAIKU_LINES = 3

LANG_DISPLAY_NAME: dict[str, str] = {
    "en": "English",
    "lt": "Lithuanian",
    "lv": "Latvian",
    "et": "Estonian",
    "pl": "Polish",
    "de": "German",
    "fr": "French",
    "es": "Spanish",
    "it": "Italian",
    "pt": "Portuguese",
    "nl": "Dutch",
    "no": "Norwegian",
    "sv": "Swedish",
    "da": "Danish",
    "fi": "Finnish",
    "cs": "Czech",
    "sk": "Slovak",
    "hu": "Hungarian",
    "ro": "Romanian",
    "bg": "Bulgarian",
    "el": "Greek",
    "hr": "Croatian",
    "sl": "Slovene",
    "sr": "Serbian",
    "uk": "Ukrainian",
    "tr": "Turkish",
    "ja": "Japanese",
    "ko": "Korean",
    "zh-CN": "Chinese (Simplified)",
    "zh-TW": "Chinese (Traditional)",
    "zh-HK": "Chinese (Hong Kong)",
}


def resolve_lang(lang: str | None) -> str:
    """``auto`` / 空 / 未知语言 -> ``en``。"""
    if not lang or lang == "auto" or lang not in LANG_DISPLAY_NAME:
        return DEFAULT_LANG
    return lang


class Haiku(BaseModel):
    """A generated haiku: at most three non-empty lines."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(..., min_length=1)
    lang: str = DEFAULT_LANG
    headline: str

    @property
    def lines(self) -> list[str]:
        return self.text.split("\n")
