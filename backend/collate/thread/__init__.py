"""
线程模块 - 读取线程并按消息分组

子模块：
- reader: 分页读取 conversations.replies
- grouper: 消息 → 图文分组（纯函数）
"""

from .grouper import group_thread, resolve_caption
from .reader import read_thread

__all__ = ["group_thread", "resolve_caption", "read_thread"]
