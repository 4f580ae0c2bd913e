"""Headline domain entities."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

# url 无法解析为绝对链接时使用的占位符
PLACEHOLDER_URL = "#"


class FeedFormat(str, Enum):
    """上游内容格式。"""

    RSS = "rss"
    ATOM = "atom"
    AUTO = "auto"  # RSS 或 Atom，按文档根元素判断
    HTML = "html"


class Headline(BaseModel):
    """归一化后的标题。创建后只读。"""

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., min_length=1, description="标题")
    source: str = Field(..., description="来源名称")
    url: str = Field(default=PLACEHOLDER_URL, description="原文链接或占位符")

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("title must not be blank")
        return v


class HtmlSelectors(BaseModel):
    """HTML 列表页选择器（相对于 item 容器）。"""

    model_config = ConfigDict(frozen=True)

    item: str = "article"
    title: str | None = None
    link: str | None = None


class FetchMethod(BaseModel):
    """一个源的一种抓取方式：URL + 解析格式。"""

    model_config = ConfigDict(frozen=True)

    url: str
    format: FeedFormat = FeedFormat.AUTO
    selectors: HtmlSelectors | None = None


class Source(BaseModel):
    """上游新闻源（静态配置）。

    methods 按顺序尝试：主 feed 在前，备用 feed 在后。
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    methods: tuple[FetchMethod, ...] = Field(..., min_length=1)
    timeout_sec: float = Field(default=7.0, gt=0)
