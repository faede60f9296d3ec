"""
交付状态机 - 将PDF字节可靠地上传到目标线程

状态流转：
1. RESERVING: files.getUploadURLExternal 申请上传地址（声明字节长度）
2. TRANSFERRING: 向上传地址写入完整字节
3. FINALIZING: files.completeUploadExternal 挂到目标线程
4. VERIFYING: 有限次轮询，重新下载并比对字节长度
5. 校验通过 → DONE；轮询耗尽 → FALLBACK_TRANSFERRING（files.upload 单次上传）→ FALLBACK_DONE
任一致命失败 → FAILED（记录失败阶段与平台错误码）

测试要点：
- test_deliver_happy_path: 正常交付
- test_reserve_failure: 预留失败即终止
- test_verify_exhausted_fallback: 校验不通过走备用上传
- test_fallback_failure: 备用上传失败
- test_notify_failure_ignored: 通知失败不中断
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable

import requests
from tenacity import Retrying, retry_if_result, stop_after_attempt, wait_fixed

from ..config import get_config
from ..interfaces import CollateError, IChatClient, IProgressNotifier, SlackApiError, TransportError
from ..models import DeliveryStage, DeliveryState

logger = logging.getLogger(__name__)

_STAGE_LABELS: dict[DeliveryStage, str] = {
    DeliveryStage.RESERVING: "Step 4/4: Reserving upload…",
    DeliveryStage.TRANSFERRING: "Step 4/4: Uploading PDF…",
    DeliveryStage.FINALIZING: "Step 4/4: Attaching PDF to thread…",
    DeliveryStage.VERIFYING: "Step 4/4: Verifying upload…",
    DeliveryStage.DONE: "✅ Done: PDF posted in this thread.",
    DeliveryStage.FALLBACK_TRANSFERRING: "Step 4/4: Verification inconclusive, re-uploading PDF…",
    DeliveryStage.FALLBACK_DONE: (
        "✅ Done: PDF posted in this thread (direct upload). "
        "An earlier unverified copy may also appear; it can be deleted."
    ),
}


def stage_label(state: DeliveryState) -> str:
    """交付状态的可读描述"""
    if state.stage == DeliveryStage.FAILED:
        failed = state.failed_stage.value if state.failed_stage else "unknown"
        return f"⚠️ Upload failed at {failed}: {state.error or 'unknown_error'}"
    return _STAGE_LABELS[state.stage]


def _error_code(exc: Exception) -> str:
    """异常 → 平台错误码"""
    if isinstance(exc, SlackApiError):
        return exc.error
    if isinstance(exc, TransportError):
        return f"http_{exc.status}"
    return type(exc).__name__


class DeliveryMachine:
    """交付状态机（每次导出新建）"""

    def __init__(
        self,
        client: IChatClient,
        notifier: IProgressNotifier | None = None,
        *,
        max_attempts: int | None = None,
        interval_sec: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        config = get_config()
        self.client = client
        self.notifier = notifier
        self.max_attempts = max_attempts or config.retries.verify_max_attempts
        self.interval_sec = (
            interval_sec if interval_sec is not None else config.retries.verify_interval_ms / 1000
        )
        self.sleep = sleep

    def deliver(
        self,
        data: bytes,
        filename: str,
        title: str,
        channel_id: str,
        thread_ts: str,
        *,
        request_id: str | None = None,
        initial_comment: str | None = None,
    ) -> DeliveryState:
        """执行完整交付流程，返回终态"""
        state = DeliveryState(
            request_id=request_id or str(uuid.uuid4()),
            reserved_length=len(data),
        )
        self._notify(state)

        # 1. 预留
        try:
            reserved = self.client.get_upload_url_external(filename, state.reserved_length)
            upload_url = reserved["upload_url"]
            file_id = reserved["file_id"]
        except (CollateError, requests.RequestException, KeyError) as e:
            return self._fail(state, e)

        # 2. 传输
        self._advance(state, DeliveryStage.TRANSFERRING)
        try:
            state.bytes_transferred = self.client.upload_to_url(upload_url, data)
        except (CollateError, requests.RequestException) as e:
            return self._fail(state, e)
        if state.bytes_transferred != state.reserved_length:
            return self._fail(state, reason="length_mismatch")

        # 3. 完成挂载
        self._advance(state, DeliveryStage.FINALIZING)
        try:
            self.client.complete_upload_external(
                file_id, title, channel_id, thread_ts, initial_comment=initial_comment
            )
        except (CollateError, requests.RequestException) as e:
            return self._fail(state, e)
        state.file_id = file_id

        # 4. 校验
        self._advance(state, DeliveryStage.VERIFYING)
        if self._verify(file_id, state.bytes_transferred):
            state.verified = True
            self._advance(state, DeliveryStage.DONE)
            return state

        # 5. 备用上传
        logger.warning(f"[{state.request_id}] 上传校验未通过，改用备用上传: {file_id}")
        self._advance(state, DeliveryStage.FALLBACK_TRANSFERRING)
        try:
            resp = self.client.files_upload(
                data, filename, title, channel_id, thread_ts, initial_comment=initial_comment
            )
        except (CollateError, requests.RequestException) as e:
            return self._fail(state, e)
        state.bytes_transferred = len(data)
        state.file_id = (resp.get("file") or {}).get("id") or state.file_id
        self._advance(state, DeliveryStage.FALLBACK_DONE)
        return state

    # ------------------------------------------------------------------
    # 校验
    # ------------------------------------------------------------------

    def _verify(self, file_id: str, expected_length: int) -> bool:
        """有限次轮询，任一次长度一致即通过"""
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.interval_sec),
            retry=retry_if_result(lambda ok: not ok),
            retry_error_callback=lambda retry_state: False,
            sleep=self.sleep,
        )
        return retrying(self._download_matches, file_id, expected_length)

    def _download_matches(self, file_id: str, expected_length: int) -> bool:
        """单次校验：重新下载并比对长度"""
        try:
            info = self.client.files_info(file_id)
            file_obj = info.get("file") or {}
            url = file_obj.get("url_private_download") or file_obj.get("url_private")
            if not url:
                return False
            size = len(self.client.download(url))
        except (CollateError, requests.RequestException) as e:
            logger.debug(f"校验下载失败: {file_id}: {e}")
            return False
        if size != expected_length:
            logger.debug(f"校验长度不一致: {file_id}: {size} != {expected_length}")
            return False
        return True

    # ------------------------------------------------------------------
    # 状态迁移
    # ------------------------------------------------------------------

    def _advance(self, state: DeliveryState, target: DeliveryStage) -> None:
        state.advance(target)
        logger.info(f"[{state.request_id}] 交付阶段: {target.value}")
        self._notify(state)

    def _fail(
        self,
        state: DeliveryState,
        exc: Exception | None = None,
        *,
        reason: str | None = None,
    ) -> DeliveryState:
        error = reason or (_error_code(exc) if exc else "unknown_error")
        logger.error(f"[{state.request_id}] 交付失败 {state.stage.value}: {error}")
        state.fail(error)
        self._notify(state)
        return state

    def _notify(self, state: DeliveryState) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.notify(stage_label(state))
        except Exception as e:
            logger.warning(f"进度通知异常（忽略）: {e}")
