"""
流水线阶段定义

职责：
1. 定义各阶段的名称、进度区间与进度文案
2. 阶段顺序固定：读取 → 分组 → 排版编码 → 交付

测试要点：
- test_stage_order: 阶段顺序
- test_progress_ranges: 进度区间连续
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class StageEnum(str, Enum):
    """导出流水线阶段枚举"""
    READ_THREAD = "READ_THREAD"
    GROUP = "GROUP"
    LAYOUT = "LAYOUT"
    DELIVER = "DELIVER"


@dataclass(frozen=True)
class PipelineStage:
    """流水线阶段"""
    name: str
    progress_start: int  # 进度起点（0-100）
    progress_end: int    # 进度终点
    label: str           # 用户可见进度文案


EXPORT_STAGES: list[PipelineStage] = [
    PipelineStage(StageEnum.READ_THREAD.value, 0, 10, "Step 1/4: Reading thread…"),
    PipelineStage(StageEnum.GROUP.value, 10, 20, "Step 2/4: Grouping images by message…"),
    PipelineStage(StageEnum.LAYOUT.value, 20, 80, "Step 3/4: Building PDF…"),
    PipelineStage(StageEnum.DELIVER.value, 80, 100, "Step 4/4: Uploading PDF…"),
]

START_LABEL = "Step 0/4: Starting export…"
EMPTY_LABEL = "No images found in this thread."
