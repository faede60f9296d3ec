"""
线程消息模型 - conversations.replies 返回结构的类型化表示

对应 Slack 消息中的 text/ts/files 字段
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

IMAGE_MIME_PREFIX = "image/"


class FileAttachment(BaseModel):
    """消息附件"""
    id: str
    mimetype: str = ""
    title: str | None = None
    initial_comment: str | None = Field(None, description="附件内嵌评论文本")

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> FileAttachment:
        """从API字典构建（initial_comment 在API中是嵌套对象）"""
        comment = raw.get("initial_comment")
        if isinstance(comment, dict):
            comment = comment.get("comment")
        return cls(
            id=raw["id"],
            mimetype=raw.get("mimetype") or "",
            title=raw.get("title"),
            initial_comment=comment if isinstance(comment, str) else None,
        )

    @property
    def is_image(self) -> bool:
        return self.mimetype.startswith(IMAGE_MIME_PREFIX)


class ThreadMessage(BaseModel):
    """线程中的单条消息"""
    ts: str
    text: str | None = None
    files: list[FileAttachment] = Field(default_factory=list)

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> ThreadMessage:
        """从API字典构建，忽略缺少id的附件"""
        files = [
            FileAttachment.from_api(f)
            for f in raw.get("files") or []
            if isinstance(f, dict) and f.get("id")
        ]
        return cls(ts=str(raw.get("ts", "")), text=raw.get("text"), files=files)


class ImageRef(BaseModel):
    """图片引用（不持有字节，按需下载）"""
    file_id: str
    mimetype: str

    model_config = {"frozen": True}


class CaptionImageGroup(BaseModel):
    """图文分组：一条消息 = 一段说明 + 多张图片"""
    caption: str = ""
    image_refs: tuple[ImageRef, ...] = ()
    source_ts: str | None = None

    model_config = {"frozen": True}
