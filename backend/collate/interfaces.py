"""
模块接口契约 - 定义各模块的抽象接口

设计原则：
1. 模块间通过接口通信，不直接依赖具体实现
2. 每个接口定义清晰的输入输出类型
3. 便于单元测试和mock替换（测试中使用内存版 IChatClient）

使用方式：
    from collate.interfaces import IAssetFetcher

    class MyFetcher(IAssetFetcher):
        def fetch(self, ref: ImageRef) -> bytes | None:
            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import ImageRef, Page, RasterAsset


# ============================================================================
# 平台接口
# ============================================================================

class IChatClient(ABC):
    """聊天平台客户端接口 - Slack Web API 的最小子集"""

    @abstractmethod
    def conversations_replies(
        self, channel: str, ts: str, *, limit: int = 200, cursor: str | None = None
    ) -> dict[str, Any]:
        """
        读取线程回复（单页）

        Returns:
            API响应，含 messages 与 response_metadata.next_cursor

        Raises:
            SlackApiError: ok=false
        """
        ...

    @abstractmethod
    def files_info(self, file_id: str) -> dict[str, Any]:
        """获取文件信息（含 url_private_download 临时下载地址）"""
        ...

    @abstractmethod
    def download(self, url: str) -> bytes:
        """
        带鉴权下载私有文件

        Raises:
            TransportError: 非2xx响应
        """
        ...

    @abstractmethod
    def get_upload_url_external(self, filename: str, length: int) -> dict[str, Any]:
        """申请上传地址，返回 upload_url 与 file_id"""
        ...

    @abstractmethod
    def upload_to_url(self, upload_url: str, data: bytes) -> int:
        """
        向上传地址写入字节（显式声明长度）

        Returns:
            实际发送的字节数（与声明长度比对）

        Raises:
            TransportError: 非2xx响应
        """
        ...

    @abstractmethod
    def complete_upload_external(
        self,
        file_id: str,
        title: str,
        channel_id: str,
        thread_ts: str,
        initial_comment: str | None = None,
    ) -> dict[str, Any]:
        """完成上传并挂到目标线程"""
        ...

    @abstractmethod
    def files_upload(
        self,
        data: bytes,
        filename: str,
        title: str,
        channel_id: str,
        thread_ts: str,
        initial_comment: str | None = None,
    ) -> dict[str, Any]:
        """单次请求上传（备用通道，非分段）"""
        ...

    @abstractmethod
    def chat_post_message(self, channel: str, text: str, thread_ts: str | None = None) -> dict[str, Any]:
        """发送消息，返回含 ts 的响应"""
        ...

    @abstractmethod
    def chat_update(self, channel: str, ts: str, text: str) -> dict[str, Any]:
        """原地更新消息"""
        ...


# ============================================================================
# 图片处理接口
# ============================================================================

class IAssetFetcher(ABC):
    """图片下载器接口"""

    @abstractmethod
    def fetch(self, ref: ImageRef) -> bytes | None:
        """
        下载图片原始字节

        Returns:
            字节；任何失败返回 None（不抛异常）
        """
        ...


class IAssetTranscoder(ABC):
    """图片转码器接口"""

    @abstractmethod
    def transcode(self, data: bytes, max_dimension: int) -> RasterAsset | None:
        """
        纠正方向、限制长边、重新压缩

        Returns:
            位图；所有候选编码均失败时返回 None
        """
        ...


# ============================================================================
# 文档生成接口
# ============================================================================

class IDocumentEncoder(ABC):
    """PDF编码器接口"""

    @abstractmethod
    def encode(self, pages: Iterable[Page]) -> bytes:
        """将页面序列编码为不可变PDF字节"""
        ...


class IProgressNotifier(ABC):
    """进度通知接口"""

    @abstractmethod
    def notify(self, text: str) -> None:
        """发送或原地更新进度消息（失败不得抛出）"""
        ...


# ============================================================================
# 异常定义
# ============================================================================

class CollateError(Exception):
    """基础异常"""
    pass


class SlackApiError(CollateError):
    """Web API 返回 ok=false"""

    def __init__(self, method: str, error: str, response: dict[str, Any] | None = None):
        super().__init__(f"{method} failed: {error}")
        self.method = method
        self.error = error
        self.response = response or {}


class TransportError(CollateError):
    """HTTP传输失败（非2xx）"""

    def __init__(self, url: str, status: int, reason: str = ""):
        super().__init__(f"HTTP {status} {reason}".strip())
        self.url = url
        self.status = status
        self.reason = reason


class LayoutError(CollateError):
    """版面参数错误"""
    pass


class EncodeError(CollateError):
    """PDF编码错误"""
    pass


class DeliveryError(CollateError):
    """交付阶段失败"""

    def __init__(self, stage: str, reason: str):
        super().__init__(f"{stage}: {reason}")
        self.stage = stage
        self.reason = reason
