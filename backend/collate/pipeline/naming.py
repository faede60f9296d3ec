"""
文件命名 - 由标题生成安全的文件名

规则：
1. 文件系统非法字符与控制字符替换为 _
2. 连续空白折叠为单个 _
3. 截断到 title_max_length，去除首尾 . 和 _
4. 追加固定扩展名；清洗后为空则使用前缀
"""

from __future__ import annotations

import re
from datetime import date

from ..config import ExportConfig, get_config

_INVALID_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f\x7f]')
_WHITESPACE = re.compile(r"\s+")


def sanitize_title(title: str, max_length: int) -> str:
    """清洗标题为文件名主体"""
    cleaned = _INVALID_CHARS.sub("_", title or "")
    cleaned = _WHITESPACE.sub("_", cleaned.strip())
    cleaned = cleaned.strip("._")
    return cleaned[:max_length].rstrip("._")


def default_title(category: str | None = None, on_date: date | None = None, export: ExportConfig | None = None) -> str:
    """默认标题：前缀 [分类] 日期"""
    export = export or get_config().export
    day = (on_date or date.today()).isoformat()
    parts = [export.filename_prefix, category.strip().title() if category and category.strip() else None, day]
    return " ".join(p for p in parts if p)


def build_filename(
    title: str | None = None,
    category: str | None = None,
    on_date: date | None = None,
    export: ExportConfig | None = None,
) -> str:
    """生成最终文件名"""
    export = export or get_config().export
    raw = title or default_title(category, on_date, export)
    stem = sanitize_title(raw, export.title_max_length) or export.filename_prefix
    return f"{stem}{export.extension}"
