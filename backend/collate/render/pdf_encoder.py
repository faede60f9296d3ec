"""
PDF编码器 - Page 序列 → 单个不可变字节缓冲

职责：
1. 每页绘制页眉、文本片段（等宽字体）与位图
2. 位图逐页绘制后即释放（配合 LayoutEngine.iter_pages 流式消费）
3. invariant 模式输出，同一输入得到相同字节
4. 文本使用内嵌等宽字体（缺字片段改用 CJK 字体）

依赖：
- reportlab: PDF画布

测试要点：
- test_encode_page_count: 页数一致
- test_encode_text_extractable: 文本可提取
- test_encode_deterministic: 输出确定
"""

from __future__ import annotations

import io
import logging
from collections.abc import Iterable

from reportlab.lib.colors import Color, black
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen import canvas

from ..config import LayoutConfig, get_config
from ..interfaces import EncodeError, IDocumentEncoder
from ..layout.fonts import FontSet, load_fonts
from ..models import Page

logger = logging.getLogger(__name__)

FALLBACK_COLOR = Color(0.4, 0, 0)


class PDFEncoder(IDocumentEncoder):
    """PDF编码器实现"""

    def __init__(self, layout: LayoutConfig | None = None, title: str = ""):
        self.layout = layout or get_config().layout
        self.fonts = load_fonts(self.layout)
        self.title = title
        self.page_count = 0

    def encode(self, pages: Iterable[Page]) -> bytes:
        """编码全部页面，返回PDF字节"""
        buf = io.BytesIO()
        geo = self.layout
        pdf = canvas.Canvas(
            buf,
            pagesize=(geo.page_width, geo.page_height),
            invariant=1,
            pageCompression=1,
        )
        if self.title:
            pdf.setTitle(self.title)
        pdf.setCreator("collate")

        self.page_count = 0
        try:
            for page in pages:
                self._draw_page(pdf, page)
                pdf.showPage()
                self.page_count += 1
            if self.page_count == 0:
                raise EncodeError("没有可编码的页面")
            pdf.save()
        except EncodeError:
            raise
        except (OSError, ValueError) as e:
            raise EncodeError(f"PDF编码失败: {e}") from e

        data = buf.getvalue()
        logger.info(f"PDF编码完成: {self.page_count}页, {len(data)}字节")
        return data

    def _draw_page(self, pdf: canvas.Canvas, page: Page) -> None:
        geo = self.layout
        if page.header:
            pdf.setFillColor(black)
            _draw_text(pdf, self.fonts, geo.margin, geo.page_height - geo.margin + 6, page.header, geo.header_size)

        for run in page.text_runs:
            pdf.setFillColor(FALLBACK_COLOR if run.is_fallback else black)
            _draw_text(pdf, self.fonts, run.x, run.y, run.text, run.size)

        for placement in page.image_placements:
            reader = ImageReader(io.BytesIO(placement.raster.encoded_bytes))
            pdf.drawImage(
                reader,
                placement.x,
                placement.y,
                width=placement.width,
                height=placement.height,
                mask="auto",
            )


def _draw_text(pdf: canvas.Canvas, fonts: FontSet, x: float, y: float, text: str, size: float) -> None:
    """按字体片段依次绘制"""
    for font, segment in fonts.segments(text):
        pdf.setFont(font, size)
        pdf.drawString(x, y, segment)
        x += pdfmetrics.stringWidth(segment, font, size)
