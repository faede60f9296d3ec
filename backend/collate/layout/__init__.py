"""
版面模块 - 图文分组 → 页面序列

子模块：
- fonts: 内嵌等宽字体注册（CJK 备用字体切分）
- text: 说明文字贪心换行
- engine: 分栏/分页排布（单遍，不回溯）
"""

from .engine import FALLBACK_TEXT, LayoutEngine
from .fonts import FontSet, load_fonts
from .text import measure_text, wrap_caption

__all__ = [
    "LayoutEngine",
    "FALLBACK_TEXT",
    "FontSet",
    "load_fonts",
    "wrap_caption",
    "measure_text",
]
