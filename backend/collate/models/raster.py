"""
位图资产模型 - 转码器输出，供版面引擎与PDF编码使用
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class Codec(str, Enum):
    """编码格式"""
    JPEG = "JPEG"
    PNG = "PNG"


class RasterAsset(BaseModel):
    """转码后的位图（像素尺寸 + 编码字节）"""
    width: int
    height: int
    encoded_bytes: bytes
    codec: Codec

    model_config = {"frozen": True}
