"""Haiku API schemas."""

from pydantic import BaseModel, Field

from src.modules.haiku.domain.entities import Haiku


class HaikuRequest(BaseModel):
    headline: str = Field(..., min_length=1, max_length=500)
    lang: str = Field(default="auto", description='Language code or "auto"')


class HaikuResponse(BaseModel):
    haiku: str
    lang: str

    @classmethod
    def from_haiku(cls, haiku: Haiku) -> "HaikuResponse":
        return cls(haiku=haiku.text, lang=haiku.lang)


class DailyHaikuResponse(BaseModel):
    headline: str
    haiku: str
    source: str
    url: str
    lang: str
    response_time_ms: int
