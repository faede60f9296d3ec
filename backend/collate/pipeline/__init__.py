"""
流水线模块 - 导出编排

子模块：
- stages: 流水线各阶段定义
- executor: 流水线执行器
- naming: 文件命名
"""

from .executor import ExportExecutor, create_job
from .naming import build_filename, sanitize_title
from .stages import EXPORT_STAGES, PipelineStage, StageEnum

__all__ = [
    "ExportExecutor",
    "create_job",
    "build_filename",
    "sanitize_title",
    "EXPORT_STAGES",
    "PipelineStage",
    "StageEnum",
]
