"""
线程读取 - 分页拉取 conversations.replies

next_cursor 重复出现时停止翻页；按 ts 去重。
"""

from __future__ import annotations

import logging

from ..config import get_config
from ..interfaces import IChatClient
from ..models import ThreadMessage

logger = logging.getLogger(__name__)


def read_thread(
    client: IChatClient,
    channel: str,
    thread_ts: str,
    page_limit: int | None = None,
) -> list[ThreadMessage]:
    """读取整条线程（跟随 next_cursor 直到结束）"""
    limit = page_limit or get_config().slack.replies_page_limit
    messages: list[ThreadMessage] = []
    seen_ts: set[str] = set()
    seen_cursors: set[str] = set()
    cursor: str | None = None

    while True:
        resp = client.conversations_replies(channel, thread_ts, limit=limit, cursor=cursor)
        for raw in resp.get("messages") or []:
            message = ThreadMessage.from_api(raw)
            if message.ts in seen_ts:
                continue
            seen_ts.add(message.ts)
            messages.append(message)

        cursor = (resp.get("response_metadata") or {}).get("next_cursor") or None
        if not cursor:
            break
        if cursor in seen_cursors:
            logger.warning(f"分页游标重复，停止翻页: {channel}/{thread_ts} cursor={cursor}")
            break
        seen_cursors.add(cursor)

    logger.info(f"线程读取完成: {channel}/{thread_ts}, 共{len(messages)}条消息")
    return messages
