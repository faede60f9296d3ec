"""
图片模块 - 下载与转码

子模块：
- fetcher: 带鉴权下载（失败返回 None）
- transcoder: 方向纠正/限尺寸/重压缩（候选编码依次尝试）
"""

from .fetcher import AssetFetcher
from .transcoder import DEFAULT_CANDIDATES, AssetTranscoder, CodecCandidate, CodecResult

__all__ = [
    "AssetFetcher",
    "AssetTranscoder",
    "CodecCandidate",
    "CodecResult",
    "DEFAULT_CANDIDATES",
]
