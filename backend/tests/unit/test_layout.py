"""
版面引擎单元测试

默认版面（Letter 纵向，两列）：内容区顶部 738pt，底边界 36pt，
两列列宽 261pt，单列列宽 540pt。800×600 图片在两列模式下缩放为 261×195.75。

每个模块完成后必须运行：pytest backend/tests/unit/test_layout.py -v
"""

import pytest

from collate.config import LayoutConfig
from collate.interfaces import LayoutError
from collate.layout import FALLBACK_TEXT, LayoutEngine


@pytest.fixture
def render(make_raster):
    """按 file_id 渲染：MISSING* 返回 None，BOOM* 抛异常，TALL* 为竖图"""

    def _render(ref):
        if ref.file_id.startswith("MISSING"):
            return None
        if ref.file_id.startswith("BOOM"):
            raise RuntimeError("decoder crashed")
        if ref.file_id.startswith("TALL"):
            return make_raster(600, 800)
        return make_raster(800, 600)

    return _render


def _all_refs(pages) -> list[str]:
    return [ref for page in pages for ref in page.placed_ref_ids()]


def _captions(page) -> list[str]:
    return [r.text for r in page.text_runs if not r.is_fallback]


class TestLayoutBasics:
    """基础排布测试"""

    def test_single_group_single_page(self, layout_config, make_group, render):
        """测试单组单图：一页、一段说明、一张图"""
        pages = LayoutEngine(layout_config).layout_pages([make_group("Leak at valve 3", "F1")], render)

        assert len(pages) == 1
        page = pages[0]
        assert page.header == "Print Export"
        assert _captions(page) == ["Leak at valve 3"]
        assert page.text_runs[0].x == 36
        assert page.text_runs[0].y == 726
        assert len(page.image_placements) == 1

        placement = page.image_placements[0]
        assert placement.ref_id == "F1"
        assert placement.width == pytest.approx(261)
        assert placement.height == pytest.approx(195.75)
        # 说明文字 12pt + 间距 6pt
        assert placement.y + placement.height == pytest.approx(738 - 18)

    def test_empty_groups_single_empty_page(self, layout_config, render):
        """测试无分组时产出一页空白页"""
        pages = LayoutEngine(layout_config).layout_pages([], render)
        assert len(pages) == 1
        assert pages[0].is_empty

    def test_empty_caption_no_text(self, layout_config, make_group, render):
        """测试空说明不占空间"""
        page = LayoutEngine(layout_config).layout_pages([make_group("", "F1")], render)[0]
        assert page.text_runs == []
        placement = page.image_placements[0]
        assert placement.y + placement.height == pytest.approx(738)

    def test_group_without_images(self, layout_config, make_group, render):
        """测试无图分组只放说明"""
        page = LayoutEngine(layout_config).layout_pages([make_group("just a note")], render)[0]
        assert _captions(page) == ["just a note"]
        assert page.image_placements == []

    def test_caption_truncated(self, make_group, render):
        """测试说明文字超过最大行数被截断"""
        layout = LayoutConfig(max_caption_lines=3)
        caption = " ".join(["inspection"] * 200)
        page = LayoutEngine(layout).layout_pages([make_group(caption, "F1")], render)[0]
        assert len(_captions(page)) == 3

    def test_image_fits_column(self, layout_config, make_group, make_raster):
        """测试超宽图片按列宽缩放"""
        page = LayoutEngine(layout_config).layout_pages(
            [make_group("", "F1")], lambda ref: make_raster(4000, 100)
        )[0]
        placement = page.image_placements[0]
        assert placement.width == pytest.approx(261)
        assert placement.height == pytest.approx(100 * 261 / 4000)

    def test_invalid_geometry(self):
        """测试页边距过大时报错"""
        with pytest.raises(LayoutError):
            LayoutEngine(LayoutConfig(margin=400))


class TestLayoutFlow:
    """分栏/分页测试"""

    def test_caption_lookahead_advances(self, layout_config, make_group, render):
        """测试剩余空间不足以放下说明+一行图片时换到下一列"""
        groups = [make_group("", f"F{i}") for i in range(4)]
        pages = LayoutEngine(layout_config).layout_pages(groups, render)

        assert len(pages) == 1
        xs = [p.x for p in pages[0].image_placements]
        assert xs == [36, 36, 36, 315]
        fourth = pages[0].image_placements[3]
        assert fourth.y + fourth.height == pytest.approx(738)

    def test_single_column_multi_page(self, make_group, render):
        """测试单列模式一条消息三张图跨页"""
        layout = LayoutConfig(columns=1)
        pages = LayoutEngine(layout).layout_pages([make_group("x", "F1", "F2", "F3")], render)

        assert len(pages) == 2
        assert [len(p.image_placements) for p in pages] == [2, 1]
        assert _all_refs(pages) == ["F1", "F2", "F3"]
        assert [p.index for p in pages] == [0, 1]
        assert pages[1].header == "Print Export"

    def test_every_ref_placed_once(self, layout_config, make_group, render):
        """测试每张图片恰好出现一次（含占位）"""
        groups = [
            make_group(f"message {i}", f"F{i}a", f"MISSING{i}", f"F{i}b", f"BOOM{i}")
            for i in range(12)
        ]
        pages = LayoutEngine(layout_config).layout_pages(groups, render)
        expected = [ref.file_id for g in groups for ref in g.image_refs]
        placed = _all_refs(pages)
        assert len(placed) == len(expected)
        assert sorted(placed) == sorted(expected)
        assert len(pages) > 1

    def test_placements_within_bounds(self, layout_config, make_group, render):
        """测试所有图片落在内容区内"""
        groups = [make_group("caption text " * 5, "F1", "TALL1", "F2") for _ in range(8)]
        for page in LayoutEngine(layout_config).layout_pages(groups, render):
            for p in page.image_placements:
                assert p.x >= 36
                assert p.x + p.width <= 612 - 36 + 1e-6
                assert p.y >= 36 - 1e-6
                assert p.y + p.height <= 738 + 1e-6

    def test_layout_idempotent(self, layout_config, make_group, render):
        """测试重复排布结果一致"""
        groups = [make_group(f"g{i}", f"F{i}", f"TALL{i}") for i in range(6)]
        engine = LayoutEngine(layout_config)
        assert engine.layout_pages(groups, render) == engine.layout_pages(groups, render)

    def test_iter_pages_streams(self, layout_config, make_group, render):
        """测试逐页产出与完整列表一致"""
        groups = [make_group("", f"F{i}") for i in range(10)]
        engine = LayoutEngine(layout_config)
        assert list(engine.iter_pages(groups, render)) == engine.layout_pages(groups, render)


class TestSideBySide:
    """并排模式测试"""

    def test_pairs_top_aligned(self, make_group, render):
        """测试图片两两成行、顶部对齐、行高取较高者"""
        layout = LayoutConfig(mode="side_by_side")
        page = LayoutEngine(layout).layout_pages([make_group("pair", "F1", "TALL1", "F2")], render)[0]

        first, second, third = page.image_placements
        assert (first.x, second.x) == (36, 315)
        assert first.y + first.height == pytest.approx(720)
        assert second.y + second.height == pytest.approx(720)
        assert second.width == pytest.approx(165)
        assert second.height == pytest.approx(220)
        # 下一行：720 - (220 + 12)
        assert third.x == 36
        assert third.y + third.height == pytest.approx(488)

    def test_caption_spans_content_width(self, make_group, render):
        """测试并排模式说明文字按内容宽度换行"""
        caption = "a" * 60
        page = LayoutEngine(LayoutConfig(mode="side_by_side")).layout_pages(
            [make_group(caption, "F1")], render
        )[0]
        assert _captions(page) == [caption]


class TestFallback:
    """占位测试"""

    def test_fallback_placeholder(self, layout_config, make_group, render):
        """测试下载失败的图片在同一位置放置占位文字"""
        page = LayoutEngine(layout_config).layout_pages([make_group("", "MISSING1")], render)[0]
        assert page.image_placements == []
        run = page.text_runs[0]
        assert run.text == FALLBACK_TEXT
        assert run.ref_id == "MISSING1"
        assert (run.x, run.y) == (36, 738 - 12)

    def test_render_exception_isolated(self, layout_config, make_group, render):
        """测试渲染异常只影响单张图片"""
        page = LayoutEngine(layout_config).layout_pages([make_group("", "BOOM1", "F1")], render)[0]
        assert page.placed_ref_ids() == ["F1", "BOOM1"]
        assert [r.text for r in page.text_runs] == [FALLBACK_TEXT]

    def test_progress_callback(self, layout_config, make_group, render):
        """测试每放置一张图片回调一次"""
        seen: list[int] = []
        groups = [make_group("", "F1", "MISSING1"), make_group("", "F2")]
        LayoutEngine(layout_config).layout_pages(groups, render, progress_cb=seen.append)
        assert seen == [1, 2, 3]
