"""
版面引擎 - 图文分组 → 页面序列

职责：
1. 说明文字换行并预留空间（含一行图片的前瞻，避免说明文字孤悬页尾）
2. 图片按列宽等比缩放、限高，单列堆叠或两列并排
3. 图片缺失/无法解码时在同一位置放置占位文字
4. 单遍排布，关闭的页面不再回改

排布模式：
- stacked:      内容沿列向下流动，满列换下一列，末列满换新页；图片逐张堆叠
- side_by_side: 两列并排，说明文字占满内容宽度，图片两两成行，行高取较高者

测试要点：
- test_single_group_single_page: 单组单页
- test_every_ref_placed_once: 每张图片恰好出现一次
- test_layout_idempotent: 重复排布结果一致
- test_caption_lookahead_advances: 说明文字前瞻换列/换页
- test_fallback_placeholder: 占位文字
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Iterable, Iterator

from ..config import LayoutConfig, get_config
from ..interfaces import LayoutError
from ..models import (
    CaptionImageGroup,
    ImagePlacement,
    ImageRef,
    LayoutCursor,
    Page,
    RasterAsset,
    TextRun,
)
from .fonts import FontSet, load_fonts
from .text import wrap_caption

logger = logging.getLogger(__name__)

FALLBACK_TEXT = "image unavailable"

RenderFn = Callable[[ImageRef], RasterAsset | None]
ProgressFn = Callable[[int], None]


class LayoutEngine:
    """版面引擎（无状态，每次排布创建独立游标）"""

    def __init__(self, layout: LayoutConfig | None = None):
        self.layout = layout or get_config().layout
        self._validate()
        self.fonts = load_fonts(self.layout)

    def _validate(self) -> None:
        geo = self.layout
        if geo.column_width <= 0:
            raise LayoutError(f"列宽无效: {geo.column_width}")
        if geo.content_top <= geo.margin:
            raise LayoutError("页面高度不足以容纳页边距与页眉")

    def layout_pages(
        self,
        groups: Iterable[CaptionImageGroup],
        render: RenderFn,
        progress_cb: ProgressFn | None = None,
    ) -> list[Page]:
        """排布全部分组，返回完整页面列表"""
        return list(self.iter_pages(groups, render, progress_cb))

    def iter_pages(
        self,
        groups: Iterable[CaptionImageGroup],
        render: RenderFn,
        progress_cb: ProgressFn | None = None,
    ) -> Iterator[Page]:
        """逐页产出（页面关闭即产出，便于编码后释放位图）"""
        run = _LayoutRun(self.layout, self.fonts, render, progress_cb)
        for group in groups:
            run.place_group(group)
            while run.closed:
                yield run.closed.popleft()
        yield run.cursor.page


class _LayoutRun:
    """单次排布的可变状态"""

    def __init__(
        self,
        layout: LayoutConfig,
        fonts: FontSet,
        render: RenderFn,
        progress_cb: ProgressFn | None,
    ):
        self.geo = layout
        self.fonts = fonts
        self.render = render
        self.progress_cb = progress_cb
        self.side_by_side = layout.mode == "side_by_side" and layout.columns == 2
        # 并排模式下一行横跨两列，流动方向只有一列
        self.flow_columns = 1 if self.side_by_side else layout.columns
        self.closed: deque[Page] = deque()
        self.images_done = 0
        self.cursor = LayoutCursor(page=self._new_page(0), column=0, y=layout.content_top)

    # ------------------------------------------------------------------
    # 游标推进
    # ------------------------------------------------------------------

    def _new_page(self, index: int) -> Page:
        return Page(index=index, header=self.geo.header_text)

    def _advance(self) -> None:
        """下一列；无剩余列时新起一页并回到首列"""
        cursor = self.cursor
        if cursor.column < self.flow_columns - 1:
            cursor.column += 1
        else:
            self.closed.append(cursor.page)
            cursor.page = self._new_page(cursor.page.index + 1)
            cursor.column = 0
        cursor.y = self.geo.content_top

    def ensure_space(self, height: float) -> None:
        """保证当前列剩余 height 空间，否则推进（只推进一次）"""
        if self.cursor.y - height < self.geo.margin:
            self._advance()

    def _column_x(self, column: int) -> float:
        return self.geo.margin + column * (self.geo.column_width + self.geo.gutter)

    # ------------------------------------------------------------------
    # 分组排布
    # ------------------------------------------------------------------

    def place_group(self, group: CaptionImageGroup) -> None:
        geo = self.geo
        text_width = geo.content_width if self.side_by_side else geo.column_width
        lines = wrap_caption(
            group.caption, text_width, self.fonts, geo.caption_size, geo.max_caption_lines
        )
        caption_h = len(lines) * geo.line_height + (geo.caption_gap if lines else 0)
        first_row_h = geo.image_max_height + geo.image_gap if group.image_refs else 0

        self.ensure_space(caption_h + first_row_h)

        x = self._column_x(self.cursor.column)
        baseline = self.cursor.y
        for line in lines:
            baseline -= geo.line_height
            self.cursor.page.text_runs.append(
                TextRun(x=x, y=baseline, text=line, size=geo.caption_size)
            )
        self.cursor.y -= caption_h

        if self.side_by_side:
            refs = list(group.image_refs)
            for i in range(0, len(refs), 2):
                self._place_row(refs[i:i + 2])
        else:
            for ref in group.image_refs:
                self._place_row([ref])

        self.cursor.y -= geo.group_gap

    def _place_row(self, refs: list[ImageRef]) -> None:
        """放置一行图片（单张或并排两张），行高取较高者"""
        geo = self.geo
        slot_w = geo.column_width
        sized = [(ref, *self._fit(self._render(ref), slot_w)) for ref in refs]
        row_h = max(h for _, _, _, h in sized)

        self.ensure_space(row_h + geo.image_gap)

        top = self.cursor.y
        for slot, (ref, raster, w, h) in enumerate(sized):
            column = slot if self.side_by_side else self.cursor.column
            x = self._column_x(column)
            if raster is None:
                self.cursor.page.text_runs.append(
                    TextRun(
                        x=x,
                        y=top - geo.line_height,
                        text=FALLBACK_TEXT,
                        size=geo.caption_size,
                        ref_id=ref.file_id,
                    )
                )
            else:
                self.cursor.page.image_placements.append(
                    ImagePlacement(x=x, y=top - h, width=w, height=h, raster=raster, ref_id=ref.file_id)
                )
            self.images_done += 1
            if self.progress_cb:
                self.progress_cb(self.images_done)

        self.cursor.y = top - (row_h + geo.image_gap)

    def _fit(self, raster: RasterAsset | None, slot_w: float) -> tuple[RasterAsset | None, float, float]:
        """等比缩放到列宽内并限高；占位文字占一行高"""
        if raster is None or raster.width <= 0 or raster.height <= 0:
            return None, slot_w, self.geo.line_height
        scale = min(slot_w / raster.width, self.geo.image_max_height / raster.height)
        return raster, raster.width * scale, raster.height * scale

    def _render(self, ref: ImageRef) -> RasterAsset | None:
        """单张图片失败在此吸收，不影响整体排布"""
        try:
            raster = self.render(ref)
        except Exception as e:
            logger.warning(f"图片渲染失败: {ref.file_id}: {e}")
            return None
        if raster is None:
            logger.warning(f"图片不可用，使用占位: {ref.file_id}")
        return raster
