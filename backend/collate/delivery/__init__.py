"""
交付模块 - 上传状态机与进度通知

子模块：
- progress: 进度消息（首次发送，之后原地更新）
- machine: 预留 → 传输 → 完成 → 校验 → 备用上传
"""

from .machine import DeliveryMachine, stage_label
from .progress import ProgressReporter

__all__ = ["DeliveryMachine", "ProgressReporter", "stage_label"]
