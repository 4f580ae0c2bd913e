"""统一的健康检查类型定义。"""

from enum import Enum

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    """健康检查状态枚举。"""

    OK = "ok"
    SKIPPED = "skipped"
    DEGRADED = "degraded"


class HeadlineEngineHealth(BaseModel):
    """标题引擎状态（内存统计）。"""

    status: HealthStatus = Field(..., description="健康状态")
    headline_cache: int = Field(..., description="缓存中的源条目数")
    used_headlines: int = Field(..., description="已下发标题数")
    open_circuits: dict[str, float] = Field(
        default_factory=dict, description="熔断中的源 -> 剩余冷却秒数"
    )

    @classmethod
    def from_stats(cls, stats: dict) -> "HeadlineEngineHealth":
        open_circuits = stats.get("open_circuits") or {}
        return cls(
            status=HealthStatus.DEGRADED if open_circuits else HealthStatus.OK,
            headline_cache=stats.get("headline_cache", 0),
            used_headlines=stats.get("used_headlines", 0),
            open_circuits=open_circuits,
        )


class HaikuServiceHealth(BaseModel):
    """俳句服务状态。"""

    status: HealthStatus = Field(..., description="健康状态")
    haiku_cache: int = Field(..., description="缓存中的俳句数")

    @classmethod
    def from_stats(cls, stats: dict) -> "HaikuServiceHealth":
        return cls(
            status=HealthStatus.OK if stats.get("enabled") else HealthStatus.SKIPPED,
            haiku_cache=stats.get("haiku_cache", 0),
        )
