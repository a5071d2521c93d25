"""
Outbox Relay Lambda

スケジュール実行で PENDING のアウトボックスレコードを EventBridge に中継する。
"""
import asyncio
from typing import Any

import structlog

from .processor_factory import get_outbox_processor

logger = structlog.get_logger()

# 1 回の起動で処理する最大バッチ数（Lambda タイムアウト対策）
DEFAULT_MAX_BATCHES = 10


def lambda_handler(event: dict, context: Any) -> dict:
    """スケジュールイベントを受けてアウトボックスを処理"""
    max_batches = int((event or {}).get("max_batches", DEFAULT_MAX_BATCHES))
    processor = get_outbox_processor()

    batches = asyncio.run(processor.start_processing(max_batches=max_batches))

    summary = {
        "batches": len(batches),
        "total_events": sum(b.total_events for b in batches),
        "successful_events": sum(b.successful_events for b in batches),
        "failed_events": sum(b.failed_events for b in batches),
    }
    logger.info("outbox_relay_completed", **summary)
    return {"statusCode": 200, "body": summary}
