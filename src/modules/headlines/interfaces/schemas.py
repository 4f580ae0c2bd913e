"""Headline API schemas."""

from pydantic import BaseModel, Field

from src.modules.headlines.domain.entities import Headline


class HeadlineResponse(BaseModel):
    title: str = Field(..., description="清洗后的标题")
    source: str = Field(..., description="来源名称")
    url: str = Field(..., description='绝对 http(s) 链接，或占位符 "#"')

    @classmethod
    def from_headline(cls, headline: Headline) -> "HeadlineResponse":
        return cls(title=headline.title, source=headline.source, url=headline.url)
