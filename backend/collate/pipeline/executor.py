"""
导出流水线执行器 - 编排各阶段执行

职责：
1. 按顺序执行各阶段（读取 → 分组 → 排版编码 → 交付）
2. 更新任务进度并在线程中回显
3. 单图失败隔离（占位渲染，记为告警），阶段失败终止导出

每次导出新建执行器内的引擎/编码器/状态机实例，导出之间不共享可变状态。

测试要点：
- test_execute_full_pipeline: 完整流水线执行
- test_execute_no_images: 无图片线程
- test_execute_missing_image: 单图失败仍成功交付
- test_execute_delivery_failure: 交付失败
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from pathlib import Path

import requests

from ..assets import AssetFetcher, AssetTranscoder
from ..config import RuntimeConfig, get_config
from ..delivery import DeliveryMachine, ProgressReporter
from ..interfaces import (
    CollateError,
    DeliveryError,
    IAssetFetcher,
    IAssetTranscoder,
    IChatClient,
)
from ..layout import LayoutEngine
from ..models import ExportJob, ImageRef, RasterAsset
from ..render import PDFEncoder
from ..thread import group_thread, read_thread
from .naming import build_filename
from .stages import EMPTY_LABEL, EXPORT_STAGES, START_LABEL, PipelineStage, StageEnum

logger = logging.getLogger(__name__)


def create_job(
    channel_id: str,
    thread_ts: str,
    title: str | None = None,
    category: str | None = None,
) -> ExportJob:
    """创建导出任务"""
    return ExportJob(
        request_id=str(uuid.uuid4()),
        channel_id=channel_id,
        thread_ts=thread_ts,
        title=title,
        category=category,
    )


class _ExportEmpty(Exception):
    """线程中没有图片（正常结束）"""


class ExportExecutor:
    """导出流水线执行器"""

    def __init__(
        self,
        client: IChatClient,
        config: RuntimeConfig | None = None,
        fetcher: IAssetFetcher | None = None,
        transcoder: IAssetTranscoder | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.config = config or get_config()
        self.fetcher = fetcher or AssetFetcher(client)
        self.transcoder = transcoder or AssetTranscoder(quality=self.config.images.jpeg_quality)
        self.sleep = sleep
        self._last_progress_write = 0.0
        self._progress_interval_sec = 1.0

    def execute(self, job: ExportJob, dry_run_path: Path | None = None) -> ExportJob:
        """执行流水线（dry_run_path 指定时只写本地PDF，不上传）"""
        reporter = ProgressReporter(self.client, job.channel_id, job.thread_ts)
        context: dict = {
            "reporter": reporter,
            "messages": [],
            "groups": [],
            "document": b"",
            "dry_run_path": dry_run_path,
        }

        job.mark_running()
        self._update_progress(job, reporter, message=START_LABEL, force=True)

        try:
            for stage in EXPORT_STAGES:
                self._execute_stage(job, stage, context)
            job.mark_succeeded()

        except _ExportEmpty:
            job.mark_empty()
            self._update_progress(job, reporter, message=EMPTY_LABEL, force=True)

        except DeliveryError as e:
            # 状态机已在线程中回显失败阶段
            job.mark_failed(str(e))

        except (CollateError, requests.RequestException) as e:
            logger.error(f"[{job.request_id}] 导出失败 {job.progress.stage}: {e}")
            job.mark_failed(str(e))
            self._update_progress(
                job,
                reporter,
                message=f"⚠️ Export failed at {job.progress.stage}: {_reason(e)}",
                force=True,
            )

        except Exception as e:
            logger.exception(f"导出执行失败: {job.request_id}")
            job.mark_failed(str(e))
            self._update_progress(
                job, reporter, message=f"⚠️ Export failed at {job.progress.stage}.", force=True
            )
            raise

        return job

    def _execute_stage(self, job: ExportJob, stage: PipelineStage, context: dict) -> None:
        """执行单个阶段"""
        job.progress.stage = stage.name
        job.progress.percent = stage.progress_start
        logger.info(f"[{job.request_id}] 开始阶段: {stage.name}")

        if stage.name == StageEnum.READ_THREAD.value:
            self._update_progress(job, context["reporter"], message=stage.label, force=True)
            self._stage_read_thread(job, context)

        elif stage.name == StageEnum.GROUP.value:
            self._update_progress(job, context["reporter"], message=stage.label, force=True)
            self._stage_group(job, context)

        elif stage.name == StageEnum.LAYOUT.value:
            self._stage_layout(job, stage, context)

        elif stage.name == StageEnum.DELIVER.value:
            self._stage_deliver(job, context)

        job.progress.percent = stage.progress_end

    def _stage_read_thread(self, job: ExportJob, context: dict) -> None:
        """读取线程"""
        context["messages"] = read_thread(
            self.client,
            job.channel_id,
            job.thread_ts,
            page_limit=self.config.slack.replies_page_limit,
        )

    def _stage_group(self, job: ExportJob, context: dict) -> None:
        """按消息分组"""
        groups = group_thread(context["messages"])
        context["groups"] = groups
        if not groups:
            raise _ExportEmpty()
        job.progress.items_total = sum(len(g.image_refs) for g in groups)
        logger.info(f"[{job.request_id}] 分组完成: {len(groups)}组, {job.progress.items_total}张图片")

    def _stage_layout(self, job: ExportJob, stage: PipelineStage, context: dict) -> None:
        """排版并编码PDF"""
        reporter = context["reporter"]
        total = job.progress.items_total
        self._update_progress(
            job, reporter, message=f"Step 3/4: Building PDF for {total} images…", force=True
        )

        job.filename = build_filename(job.title, job.category, export=self.config.export)
        title = job.title or Path(job.filename).stem

        def _on_image(done: int) -> None:
            job.progress.items_done = done
            span = stage.progress_end - stage.progress_start
            job.progress.percent = stage.progress_start + int(span * done / max(total, 1))
            self._update_progress(
                job,
                reporter,
                message=f"Step 3/4: Building PDF ({done}/{total} images)…",
                force=done == total,
            )

        engine = LayoutEngine(self.config.layout)
        encoder = PDFEncoder(self.config.layout, title=title)
        pages = engine.iter_pages(
            context["groups"],
            lambda ref: self._render_image(job, ref),
            progress_cb=_on_image,
        )
        document = encoder.encode(pages)

        job.page_count = encoder.page_count
        job.document_size = len(document)
        context["document"] = document

        dry_run_path = context["dry_run_path"]
        if dry_run_path is not None:
            dry_run_path.parent.mkdir(parents=True, exist_ok=True)
            dry_run_path.write_bytes(document)
            logger.info(f"[{job.request_id}] 试运行，PDF已写入: {dry_run_path}")

    def _render_image(self, job: ExportJob, ref: ImageRef) -> RasterAsset | None:
        """下载 + 转码（单次尝试，失败记告警）"""
        raw = self.fetcher.fetch(ref)
        if raw is None:
            job.add_flag(f"download_failed:{ref.file_id}")
            return None
        raster = self.transcoder.transcode(raw, self.config.images.max_dimension)
        if raster is None:
            job.add_flag(f"decode_failed:{ref.file_id}")
        return raster

    def _stage_deliver(self, job: ExportJob, context: dict) -> None:
        """上传交付"""
        if context["dry_run_path"] is not None:
            return

        machine = DeliveryMachine(
            self.client,
            context["reporter"],
            max_attempts=self.config.retries.verify_max_attempts,
            interval_sec=self.config.retries.verify_interval_ms / 1000,
            sleep=self.sleep,
        )
        state = machine.deliver(
            context["document"],
            job.filename,
            job.title or Path(job.filename).stem,
            job.channel_id,
            job.thread_ts,
            request_id=job.request_id,
            initial_comment=self.config.export.initial_comment,
        )
        job.delivery = state
        if not state.succeeded:
            failed = state.failed_stage.value if state.failed_stage else StageEnum.DELIVER.value
            raise DeliveryError(failed, state.error or "unknown_error")

    def _update_progress(
        self,
        job: ExportJob,
        reporter: ProgressReporter,
        *,
        message: str,
        force: bool = False,
    ) -> None:
        job.progress.message = message
        now = time.time()
        if force or (now - self._last_progress_write) >= self._progress_interval_sec:
            reporter.notify(message)
            self._last_progress_write = now


def _reason(exc: Exception) -> str:
    error = getattr(exc, "error", None)
    return error or str(exc)
