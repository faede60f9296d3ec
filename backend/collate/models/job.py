"""
导出任务模型 - 单次导出请求的状态与生命周期
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from .delivery import DeliveryState


class ExportStatus(str, Enum):
    """任务状态枚举"""
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    EMPTY = "empty"           # 线程中没有图片，不生成文档
    FAILED = "failed"


class ExportProgress(BaseModel):
    """任务进度"""
    stage: str = "INIT"
    percent: int = 0
    message: str = ""
    items_done: int = 0
    items_total: int = 0


class ExportJob(BaseModel):
    """导出任务实体"""
    request_id: str = Field(..., description="UUID")
    channel_id: str
    thread_ts: str
    title: str | None = None
    category: str | None = None

    status: ExportStatus = ExportStatus.QUEUED
    progress: ExportProgress = Field(default_factory=ExportProgress)

    # 结果
    filename: str | None = None
    document_size: int = 0
    page_count: int = 0
    delivery: DeliveryState | None = None
    flags: list[str] = Field(default_factory=list, description="告警标记")
    errors: list[str] = Field(default_factory=list, description="错误信息")

    # 时间戳
    created_at: datetime = Field(default_factory=datetime.now)
    started_at: datetime | None = None
    finished_at: datetime | None = None

    def mark_running(self, stage: str = "READ_THREAD") -> None:
        """标记为运行中"""
        self.status = ExportStatus.RUNNING
        self.started_at = datetime.now()
        self.progress.stage = stage

    def mark_succeeded(self) -> None:
        """标记为成功"""
        self.status = ExportStatus.SUCCEEDED
        self.finished_at = datetime.now()
        self.progress.percent = 100

    def mark_empty(self) -> None:
        """标记为无内容结束"""
        self.status = ExportStatus.EMPTY
        self.finished_at = datetime.now()

    def mark_failed(self, error: str) -> None:
        """标记为失败"""
        self.status = ExportStatus.FAILED
        self.finished_at = datetime.now()
        self.errors.append(error)

    def add_flag(self, flag: str) -> None:
        """添加告警标记（不中断）"""
        if flag not in self.flags:
            self.flags.append(flag)
