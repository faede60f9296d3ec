"""
进度通知 - 在目标线程中发送一条消息并原地更新

通知失败只记录日志，不中断导出流程。
"""

from __future__ import annotations

import logging

import requests

from ..interfaces import CollateError, IChatClient, IProgressNotifier

logger = logging.getLogger(__name__)


class ProgressReporter(IProgressNotifier):
    """进度通知实现"""

    def __init__(self, client: IChatClient, channel_id: str, thread_ts: str):
        self.client = client
        self.channel_id = channel_id
        self.thread_ts = thread_ts
        self.message_ts: str | None = None
        self.history: list[str] = []

    def notify(self, text: str) -> None:
        """首次发送新消息，之后原地更新；更新失败时改为重新发送"""
        self.history.append(text)
        try:
            if self.message_ts:
                try:
                    self.client.chat_update(self.channel_id, self.message_ts, text)
                    return
                except (CollateError, requests.RequestException) as e:
                    logger.warning(f"进度更新失败，改为重新发送: {e}")
            resp = self.client.chat_post_message(self.channel_id, text, thread_ts=self.thread_ts)
            self.message_ts = resp.get("ts") or self.message_ts
        except (CollateError, requests.RequestException) as e:
            logger.warning(f"进度通知失败: {e}")
