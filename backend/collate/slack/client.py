"""
Slack Web API 客户端 - requests 封装

职责：
1. Bearer 鉴权与统一超时
2. ok=false 转为 SlackApiError，非2xx 转为 TransportError
3. 暴露导出流程用到的最小方法集

测试要点：
- 单元测试通过 IChatClient 的内存实现替换本类
"""

from __future__ import annotations

import json
import logging
from typing import Any

import requests

from ..config import get_config
from ..interfaces import IChatClient, SlackApiError, TransportError

logger = logging.getLogger(__name__)


class SlackClient(IChatClient):
    """Slack Web API 客户端实现"""

    def __init__(
        self,
        token: str | None = None,
        base_url: str | None = None,
        session: requests.Session | None = None,
    ):
        config = get_config()
        self.token = token or config.slack.bot_token
        self.base_url = (base_url or config.slack.api_base_url).rstrip("/")
        self.timeout = config.timeouts.http_sec
        self.upload_timeout = config.timeouts.upload_sec
        self.session = session or requests.Session()
        self.session.headers.update({"Authorization": f"Bearer {self.token}"})

    # ------------------------------------------------------------------
    # Web API 方法
    # ------------------------------------------------------------------

    def conversations_replies(
        self, channel: str, ts: str, *, limit: int = 200, cursor: str | None = None
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"channel": channel, "ts": ts, "limit": limit}
        if cursor:
            params["cursor"] = cursor
        return self._call("conversations.replies", http_method="GET", params=params)

    def files_info(self, file_id: str) -> dict[str, Any]:
        return self._call("files.info", http_method="GET", params={"file": file_id})

    def download(self, url: str) -> bytes:
        resp = self.session.get(url, timeout=self.timeout)
        if not resp.ok:
            raise TransportError(url, resp.status_code, resp.reason or "")
        return resp.content

    def get_upload_url_external(self, filename: str, length: int) -> dict[str, Any]:
        return self._call(
            "files.getUploadURLExternal",
            data={"filename": filename, "length": str(length)},
        )

    def upload_to_url(self, upload_url: str, data: bytes) -> int:
        resp = self.session.post(
            upload_url,
            data=data,
            headers={
                "Content-Type": "application/octet-stream",
                "Content-Length": str(len(data)),
            },
            timeout=self.upload_timeout,
        )
        if not resp.ok:
            raise TransportError(upload_url, resp.status_code, resp.reason or "")
        # 以实际发出的请求体为准
        sent = resp.request.body if resp.request is not None else None
        return len(sent or b"")

    def complete_upload_external(
        self,
        file_id: str,
        title: str,
        channel_id: str,
        thread_ts: str,
        initial_comment: str | None = None,
    ) -> dict[str, Any]:
        data = {
            "files": json.dumps([{"id": file_id, "title": title}]),
            "channel_id": channel_id,
            "thread_ts": thread_ts,
        }
        if initial_comment:
            data["initial_comment"] = initial_comment
        return self._call("files.completeUploadExternal", data=data)

    def files_upload(
        self,
        data: bytes,
        filename: str,
        title: str,
        channel_id: str,
        thread_ts: str,
        initial_comment: str | None = None,
    ) -> dict[str, Any]:
        form = {
            "channels": channel_id,
            "thread_ts": thread_ts,
            "filename": filename,
            "title": title,
        }
        if initial_comment:
            form["initial_comment"] = initial_comment
        return self._call(
            "files.upload",
            data=form,
            files={"file": (filename, data, "application/pdf")},
            timeout=self.upload_timeout,
        )

    def chat_post_message(self, channel: str, text: str, thread_ts: str | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {"channel": channel, "text": text}
        if thread_ts:
            payload["thread_ts"] = thread_ts
        return self._call("chat.postMessage", json_body=payload)

    def chat_update(self, channel: str, ts: str, text: str) -> dict[str, Any]:
        return self._call("chat.update", json_body={"channel": channel, "ts": ts, "text": text})

    # ------------------------------------------------------------------
    # 内部
    # ------------------------------------------------------------------

    def _call(
        self,
        method: str,
        *,
        http_method: str = "POST",
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        timeout: int | None = None,
    ) -> dict[str, Any]:
        """调用Web API方法并校验 ok 字段"""
        url = f"{self.base_url}/{method}"
        resp = self.session.request(
            http_method,
            url,
            params=params,
            data=data,
            json=json_body,
            files=files,
            timeout=timeout or self.timeout,
        )
        if not resp.ok:
            raise TransportError(url, resp.status_code, resp.reason or "")

        try:
            body = resp.json()
        except ValueError as e:
            raise SlackApiError(method, "invalid_json") from e

        if not body.get("ok"):
            error = body.get("error") or "unknown_error"
            logger.debug(f"{method} 返回失败: {error}")
            raise SlackApiError(method, error, body)
        return body
