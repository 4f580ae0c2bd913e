#!/usr/bin/env python3
"""从命令行取一个标题（可选生成俳句）。

用于排查源配置、熔断和解析问题，不需要启动 HTTP 服务。

使用方式：
    # 默认 general / US
    python scripts/fetch_headline.py

    # 指定分类和国家，连续取 3 个
    python scripts/fetch_headline.py --category sports --country GB --count 3

    # 同时生成俳句（需要 LLM_API_KEY）
    python scripts/fetch_headline.py --country LT --haiku

    # 先并发预取该查询下的所有源，再取标题
    python scripts/fetch_headline.py --country LT --warm-up --count 5
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from loguru import logger

# 添加项目根目录到 Python 路径
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.core.domain.exceptions import DomainException  # noqa: E402
from src.core.infrastructure.logging import setup_logging  # noqa: E402
from src.modules.haiku.application.dependencies import build_haiku_service  # noqa: E402
from src.modules.headlines.application.dependencies import (  # noqa: E402
    build_rotation_engine,
)
from src.modules.headlines.domain.catalog import SourceQuery  # noqa: E402


async def run(
    category: str | None,
    country: str | None,
    count: int,
    haiku: bool,
    warm_up: bool = False,
) -> list[dict]:
    engine = build_rotation_engine()
    haiku_service = build_haiku_service() if haiku else None
    results: list[dict] = []
    try:
        if warm_up:
            loaded = await engine.warm_up(category, country)
            logger.info(f"Warm-up loaded {loaded} sources")
        for _ in range(count):
            headline = await engine.get_headline(category, country)
            result = headline.model_dump()
            if haiku_service is not None:
                lang = SourceQuery.create(category, country).lang
                result["haiku"] = (await haiku_service.generate(headline.title, lang)).text
            results.append(result)
    finally:
        await engine.stop()
        if haiku_service is not None:
            await haiku_service.stop()
    return results


def main():
    """主函数。"""
    parser = argparse.ArgumentParser(description="取一个新闻标题并输出 JSON")
    parser.add_argument("--category", type=str, default=None, help="标题分类")
    parser.add_argument("--country", type=str, default=None, help="国家代码（ISO alpha-2）")
    parser.add_argument("--count", "-n", type=int, default=1, help="连续获取的标题数量")
    parser.add_argument("--haiku", action="store_true", help="同时生成俳句")
    parser.add_argument("--warm-up", action="store_true", help="取标题前先预取所有源")

    args = parser.parse_args()
    setup_logging()

    try:
        results = asyncio.run(
            run(args.category, args.country, args.count, args.haiku, args.warm_up)
        )
    except DomainException as e:
        print(json.dumps({"error": {"code": e.error_code, "message": e.message}}, indent=2))
        sys.exit(1)

    print(json.dumps(results, indent=2, ensure_ascii=False))
    sys.exit(0)


if __name__ == "__main__":
    main()
