"""
图片转码器 - 方向纠正/限制长边/重新压缩

职责：
1. 按 EXIF 纠正方向
2. 长边限制在 max_dimension 内（不放大）
3. 解码一次，按候选编码顺序重压缩：JPEG（主）→ PNG（无损兜底，仅覆盖编码失败）

同一输入 + 同一 max_dimension 必须得到逐字节相同的输出。

测试要点：
- test_transcode_bounds_long_edge: 长边限制
- test_transcode_no_upscale: 不放大
- test_transcode_deterministic: 输出确定
- test_transcode_garbage_returns_none: 无法解码返回 None
- test_candidate_fallback_to_png: 主编码失败时降级
- test_decode_once: 多个候选共用一次解码结果
"""

from __future__ import annotations

import io
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from PIL import Image, ImageOps

from ..config import get_config
from ..interfaces import IAssetTranscoder
from ..models import Codec, RasterAsset

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CodecResult:
    """单个候选编码的尝试结果"""
    codec: Codec
    asset: RasterAsset | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.asset is not None


@dataclass(frozen=True)
class CodecCandidate:
    """候选编码：codec + 编码函数（Image → bytes）"""
    codec: Codec
    encoder: Callable[[Image.Image, int], bytes]

    def attempt(self, img: Image.Image, quality: int) -> CodecResult:
        """对已解码的图片编码（不修改输入图片）"""
        try:
            encoded = self.encoder(img, quality)
            return CodecResult(
                codec=self.codec,
                asset=RasterAsset(
                    width=img.width,
                    height=img.height,
                    encoded_bytes=encoded,
                    codec=self.codec,
                ),
            )
        except (OSError, ValueError) as e:
            return CodecResult(codec=self.codec, error=str(e))


def _decode_normalized(data: bytes, max_dimension: int) -> Image.Image:
    """解码 + 方向纠正 + 限制长边"""
    with Image.open(io.BytesIO(data)) as src:
        src.load()
        img = ImageOps.exif_transpose(src)
    # thumbnail 只缩不放
    img.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)
    return img


def _flatten_rgb(img: Image.Image) -> Image.Image:
    """去除透明通道（白底合成）"""
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return img.convert("RGB")


def _encode_jpeg(img: Image.Image, quality: int) -> bytes:
    buf = io.BytesIO()
    _flatten_rgb(img).save(buf, format="JPEG", quality=quality, subsampling=2, optimize=True)
    return buf.getvalue()


def _encode_png(img: Image.Image, quality: int) -> bytes:
    if img.mode not in ("RGB", "RGBA", "L", "LA"):
        img = img.convert("RGBA")
    buf = io.BytesIO()
    img.save(buf, format="PNG", optimize=True)
    return buf.getvalue()


DEFAULT_CANDIDATES: tuple[CodecCandidate, ...] = (
    CodecCandidate(Codec.JPEG, _encode_jpeg),
    CodecCandidate(Codec.PNG, _encode_png),
)


class AssetTranscoder(IAssetTranscoder):
    """图片转码器实现"""

    def __init__(
        self,
        candidates: Sequence[CodecCandidate] | None = None,
        quality: int | None = None,
    ):
        self.candidates = tuple(candidates or DEFAULT_CANDIDATES)
        self.quality = quality or get_config().images.jpeg_quality

    def transcode(self, data: bytes, max_dimension: int) -> RasterAsset | None:
        """依次尝试候选编码，返回首个成功结果"""
        for result in self.attempts(data, max_dimension):
            if result.ok:
                return result.asset
        return None

    def attempts(self, data: bytes, max_dimension: int):
        """解码一次，逐个产出候选编码的尝试结果（成功即停止；无法解码时不产出）"""
        try:
            img = _decode_normalized(data, max_dimension)
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            logger.debug(f"图片解码失败: {e}")
            return
        for candidate in self.candidates:
            result = candidate.attempt(img, self.quality)
            if not result.ok:
                logger.debug(f"{candidate.codec.value} 转码失败: {result.error}")
            yield result
            if result.ok:
                return
