"""
字体 - 注册内嵌等宽字体，测宽与绘制共用

职责：
1. 注册等宽 TTF 并以子集形式内嵌（默认随包附带 DejaVu Sans Mono）
2. 主字体缺字的字符（如中日韩文字）改用 CJK 字体：
   配置了 cjk_font_path 时内嵌该 TTF，否则使用 reportlab 内置的 CID 字体（STSong-Light）
3. 所有字体都无法覆盖的字符替换为 "?"
4. 按字体切分文本片段，换行测宽与PDF绘制使用同一切分结果

测试要点：
- test_segments_split_by_coverage: 按覆盖范围切分
- test_uncovered_char_replaced: 无法覆盖的字符替换
- test_width_sums_segments: 宽度 = 各片段宽度之和
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.pdfbase.ttfonts import TTFError, TTFont

from ..config import LayoutConfig
from ..interfaces import LayoutError

logger = logging.getLogger(__name__)

FONTS_DIR = Path(__file__).parent / "fonts"
DEFAULT_FONT_PATH = FONTS_DIR / "DejaVuSansMono.ttf"
MISSING_GLYPH = "?"

# CID 字体按 UCS-2 编码，只能承载基本多文种平面
_BMP_MAX = 0xFFFF


@dataclass(frozen=True)
class FontSet:
    """主字体 + 可选的 CJK 备用字体（fallback_glyphs 为 None 表示 CID 字体）"""
    primary: str
    primary_glyphs: frozenset[int]
    fallback: str | None = None
    fallback_glyphs: frozenset[int] | None = None

    def font_for(self, char: str) -> str | None:
        code = ord(char)
        if code in self.primary_glyphs:
            return self.primary
        if self.fallback is None:
            return None
        if self.fallback_glyphs is None:
            return self.fallback if code <= _BMP_MAX else None
        return self.fallback if code in self.fallback_glyphs else None

    def segments(self, text: str) -> list[tuple[str, str]]:
        """按字体切分为 [(字体名, 片段), ...]"""
        result: list[tuple[str, str]] = []
        for char in text:
            font = self.font_for(char)
            if font is None:
                font, char = self.primary, MISSING_GLYPH
            if result and result[-1][0] == font:
                result[-1] = (font, result[-1][1] + char)
            else:
                result.append((font, char))
        return result

    def width(self, text: str, size: float) -> float:
        """文本宽度（pt）"""
        return sum(pdfmetrics.stringWidth(seg, font, size) for font, seg in self.segments(text))


def load_fonts(layout: LayoutConfig) -> FontSet:
    """按版面配置注册字体（同一配置只注册一次）"""
    return _load(
        str(layout.caption_font_path or DEFAULT_FONT_PATH),
        str(layout.cjk_font_path) if layout.cjk_font_path else None,
        layout.cjk_cid_font or None,
    )


@lru_cache(maxsize=None)
def _load(font_path: str, cjk_path: str | None, cjk_cid: str | None) -> FontSet:
    primary, primary_glyphs = _register_ttf(font_path)

    if cjk_path:
        fallback, glyphs = _register_ttf(cjk_path)
        return FontSet(primary, primary_glyphs, fallback, glyphs)

    if cjk_cid:
        try:
            pdfmetrics.registerFont(UnicodeCIDFont(cjk_cid))
        except (KeyError, ValueError) as e:
            raise LayoutError(f"CJK字体注册失败: {cjk_cid}: {e}") from e
        return FontSet(primary, primary_glyphs, cjk_cid, None)

    return FontSet(primary, primary_glyphs)


def _register_ttf(path: str) -> tuple[str, frozenset[int]]:
    name = f"Collate-{Path(path).stem}"
    try:
        font = TTFont(name, path)
    except (OSError, TTFError) as e:
        raise LayoutError(f"字体加载失败: {path}: {e}") from e
    pdfmetrics.registerFont(font)
    logger.debug(f"已注册字体: {name} ({path})")
    return name, frozenset(font.face.charToGlyph)
