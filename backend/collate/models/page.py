"""
版面模型 - 版面引擎的输出结构

坐标系：页面局部坐标，原点在左下角，单位pt（与PDF一致）
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, Field

from .raster import RasterAsset


class TextRun(BaseModel):
    """文本片段（y 为基线位置）"""
    x: float
    y: float
    text: str
    size: float
    ref_id: str | None = Field(None, description="占位文本对应的图片file_id")

    @property
    def is_fallback(self) -> bool:
        return self.ref_id is not None


class ImagePlacement(BaseModel):
    """图片落位（x, y 为左下角）"""
    x: float
    y: float
    width: float
    height: float
    raster: RasterAsset
    ref_id: str


class Page(BaseModel):
    """单页（只追加，关闭后不再修改）"""
    index: int
    header: str = ""
    text_runs: list[TextRun] = Field(default_factory=list)
    image_placements: list[ImagePlacement] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.text_runs and not self.image_placements

    def placed_ref_ids(self) -> list[str]:
        """本页出现的图片引用（图片或占位文本）"""
        ids = [p.ref_id for p in self.image_placements]
        ids.extend(r.ref_id for r in self.text_runs if r.ref_id is not None)
        return ids


@dataclass
class LayoutCursor:
    """排布游标（单次排版独占）"""
    page: Page
    column: int
    y: float
