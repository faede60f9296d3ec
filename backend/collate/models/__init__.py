"""
数据模型层 - 定义系统核心数据结构

所有模块通过这些模型交互，实现解耦：
- ThreadMessage/CaptionImageGroup: 线程消息与图文分组
- RasterAsset: 转码后的位图
- Page/LayoutCursor: 版面排布结果与游标
- DeliveryState: 上传交付状态
- ExportJob: 导出任务状态与生命周期
"""

from .delivery import TERMINAL_STAGES, DeliveryStage, DeliveryState
from .job import ExportJob, ExportProgress, ExportStatus
from .page import ImagePlacement, LayoutCursor, Page, TextRun
from .raster import Codec, RasterAsset
from .thread import CaptionImageGroup, FileAttachment, ImageRef, ThreadMessage

__all__ = [
    "ThreadMessage",
    "FileAttachment",
    "ImageRef",
    "CaptionImageGroup",
    "Codec",
    "RasterAsset",
    "Page",
    "TextRun",
    "ImagePlacement",
    "LayoutCursor",
    "DeliveryStage",
    "DeliveryState",
    "TERMINAL_STAGES",
    "ExportJob",
    "ExportProgress",
    "ExportStatus",
]
