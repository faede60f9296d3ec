"""
说明文字换行 - 贪心装行

规则：
1. 按空白切词（\r 去除，多个空白视为一个）
2. 追加下一个词后宽度不超过列宽则并入当前行，否则另起一行
3. 超过 max_lines 的内容直接丢弃（不加省略号）
4. 单个超宽词独占一行（允许溢出）

测宽使用与PDF绘制相同的 FontSet（含 CJK 备用字体切分）。
"""

from __future__ import annotations

from .fonts import FontSet


def measure_text(text: str, fonts: FontSet, font_size: float) -> float:
    """文本宽度（pt）"""
    return fonts.width(text, font_size)


def wrap_caption(
    text: str,
    max_width: float,
    fonts: FontSet,
    font_size: float,
    max_lines: int,
) -> list[str]:
    """贪心换行，最多返回 max_lines 行"""
    words = (text or "").replace("\r", "").split()
    lines: list[str] = []
    current = ""

    for word in words:
        candidate = f"{current} {word}" if current else word
        if current and measure_text(candidate, fonts, font_size) > max_width:
            lines.append(current)
            if len(lines) >= max_lines:
                return lines
            current = word
        else:
            current = candidate

    if current and len(lines) < max_lines:
        lines.append(current)
    return lines
