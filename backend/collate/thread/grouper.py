"""
图文分组 - 将按时间排序的消息列表转为 CaptionImageGroup 序列

规则：
1. 每条含至少一张图片附件的消息 → 一个分组
2. 说明文字取第一个非空值：消息文本 > 首个附件内嵌评论 > 首个附件标题
3. 无图片附件的消息直接跳过（不报错）
4. 输出顺序与输入一致

测试要点：
- test_group_count_matches_image_messages: 分组数 = 含图消息数
- test_caption_resolution_order: 说明文字优先级
- test_non_image_attachments_skipped: 非图片附件不计入
"""

from __future__ import annotations

from collections.abc import Iterable

from ..models import CaptionImageGroup, ImageRef, ThreadMessage


def resolve_caption(message: ThreadMessage) -> str:
    """按优先级解析说明文字"""
    first = message.files[0] if message.files else None
    candidates = [
        message.text,
        first.initial_comment if first else None,
        first.title if first else None,
    ]
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip()
    return ""


def group_thread(messages: Iterable[ThreadMessage]) -> list[CaptionImageGroup]:
    """按消息分组：一段说明 + 该消息的全部图片"""
    groups: list[CaptionImageGroup] = []
    for message in messages:
        refs = tuple(
            ImageRef(file_id=f.id, mimetype=f.mimetype)
            for f in message.files
            if f.is_image
        )
        if not refs:
            continue
        groups.append(
            CaptionImageGroup(
                caption=resolve_caption(message),
                image_refs=refs,
                source_ts=message.ts,
            )
        )
    return groups
