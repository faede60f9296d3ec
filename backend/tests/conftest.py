"""
pytest 配置与公共 fixtures

使用方式：
    def test_something(fake_client, jpeg_bytes):
        fake_client.add_file("F1", jpeg_bytes(400, 300))
"""

from __future__ import annotations

import io
from collections.abc import Callable
from typing import Any

import pytest
from PIL import Image

from collate.config import LayoutConfig, RuntimeConfig
from collate.interfaces import IChatClient, SlackApiError, TransportError
from collate.layout import FontSet, load_fonts
from collate.models import CaptionImageGroup, Codec, ImageRef, RasterAsset


# ============================================================================
# 内存版 Slack 客户端
# ============================================================================

class FakeSlackClient(IChatClient):
    """IChatClient 的内存实现（记录调用，可注入失败）"""

    def __init__(self):
        self.reply_pages: list[list[dict[str, Any]]] = []
        self.files: dict[str, dict[str, Any]] = {}
        self.blobs: dict[str, bytes] = {}
        self.errors: dict[str, str] = {}
        self.transport_errors: set[str] = set()
        self.exceptions: dict[str, Exception] = {}
        self.sticky_cursor: str | None = None  # 每页都返回同一个 next_cursor
        self.calls: list[str] = []

        # 上传相关
        self.verify_mode = "ok"          # ok | short | missing
        self.verify_ready_after = 0      # 前N次 files.info 返回无下载地址
        self.transfer_shortfall = 0      # 上传时少发的字节数
        self.pending: dict[str, bytes] = {}
        self.reserved: dict[str, int] = {}
        self.attached: dict[str, bytes] = {}
        self.fallback_uploads: list[tuple[str, bytes]] = []
        self._upload_seq = 0
        self._verify_calls: dict[str, int] = {}

        # 消息相关
        self.posted: list[tuple[str, str, str | None]] = []
        self.updated: list[tuple[str, str, str]] = []
        self._ts_seq = 0

    # --- 测试辅助 ---

    def add_file(self, file_id: str, data: bytes) -> None:
        url = f"https://files.test/{file_id}"
        self.files[file_id] = {"id": file_id, "url_private_download": url}
        self.blobs[url] = data

    @property
    def messages(self) -> list[str]:
        """按时间顺序的进度文本（发送 + 更新）"""
        return [text for _, text, _ in self.posted] + [text for _, _, text in self.updated]

    @property
    def last_message(self) -> str:
        if self.updated:
            return self.updated[-1][2]
        return self.posted[-1][1]

    def verify_count(self, file_id: str) -> int:
        return self._verify_calls.get(file_id, 0)

    def _check(self, method: str) -> None:
        self.calls.append(method)
        if method in self.errors:
            raise SlackApiError(method, self.errors[method])
        if method in self.exceptions:
            raise self.exceptions[method]

    # --- IChatClient ---

    def conversations_replies(self, channel, ts, *, limit=200, cursor=None):
        self._check("conversations.replies")
        if self.sticky_cursor is not None:
            page = self.reply_pages[0] if self.reply_pages else []
            return {"ok": True, "messages": page, "response_metadata": {"next_cursor": self.sticky_cursor}}
        index = int(cursor or 0)
        page = self.reply_pages[index] if index < len(self.reply_pages) else []
        next_cursor = str(index + 1) if index + 1 < len(self.reply_pages) else ""
        return {"ok": True, "messages": page, "response_metadata": {"next_cursor": next_cursor}}

    def files_info(self, file_id):
        self._check("files.info")
        if file_id in self.attached:
            self._verify_calls[file_id] = self._verify_calls.get(file_id, 0) + 1
            if self._verify_calls[file_id] <= self.verify_ready_after:
                return {"ok": True, "file": {"id": file_id}}
        if file_id not in self.files:
            raise SlackApiError("files.info", "file_not_found")
        return {"ok": True, "file": self.files[file_id]}

    def download(self, url):
        self.calls.append("download")
        if url in self.transport_errors or url not in self.blobs:
            raise TransportError(url, 404 if url not in self.blobs else 500)
        return self.blobs[url]

    def get_upload_url_external(self, filename, length):
        self._check("files.getUploadURLExternal")
        self._upload_seq += 1
        file_id = f"F_UP{self._upload_seq}"
        self.reserved[file_id] = length
        return {"ok": True, "upload_url": f"https://upload.test/{file_id}", "file_id": file_id}

    def upload_to_url(self, upload_url, data):
        self.calls.append("upload")
        if upload_url in self.transport_errors:
            raise TransportError(upload_url, 500, "Internal Server Error")
        sent = data[: len(data) - self.transfer_shortfall]
        self.pending[upload_url.rsplit("/", 1)[-1]] = sent
        return len(sent)

    def complete_upload_external(self, file_id, title, channel_id, thread_ts, initial_comment=None):
        self._check("files.completeUploadExternal")
        data = self.pending.pop(file_id)
        self.attached[file_id] = data
        url = f"https://files.test/uploaded/{file_id}"
        if self.verify_mode == "missing":
            self.files[file_id] = {"id": file_id}
        else:
            self.files[file_id] = {"id": file_id, "url_private_download": url}
            self.blobs[url] = data if self.verify_mode == "ok" else data[:-1]
        return {"ok": True, "files": [{"id": file_id, "title": title}]}

    def files_upload(self, data, filename, title, channel_id, thread_ts, initial_comment=None):
        self._check("files.upload")
        self.fallback_uploads.append((filename, data))
        return {"ok": True, "file": {"id": "F_FALLBACK"}}

    def chat_post_message(self, channel, text, thread_ts=None):
        self._check("chat.postMessage")
        self._ts_seq += 1
        self.posted.append((channel, text, thread_ts))
        return {"ok": True, "ts": f"1700000000.{self._ts_seq:06d}"}

    def chat_update(self, channel, ts, text):
        self._check("chat.update")
        self.updated.append((channel, ts, text))
        return {"ok": True, "ts": ts}


# ============================================================================
# 配置 Fixtures
# ============================================================================

@pytest.fixture
def runtime_config() -> RuntimeConfig:
    """运行期配置（默认值）"""
    return RuntimeConfig()


@pytest.fixture
def layout_config() -> LayoutConfig:
    """默认版面：Letter 纵向两列堆叠"""
    return LayoutConfig()


@pytest.fixture
def fake_client() -> FakeSlackClient:
    return FakeSlackClient()


# ============================================================================
# 图片 Fixtures
# ============================================================================

@pytest.fixture
def jpeg_bytes() -> Callable[..., bytes]:
    """生成指定尺寸的测试图片字节"""

    def _make(width: int = 400, height: int = 300, fmt: str = "JPEG", color=(200, 30, 30)) -> bytes:
        mode = "RGBA" if fmt == "PNG" else "RGB"
        fill = (*color, 128) if mode == "RGBA" else color
        img = Image.new(mode, (width, height), fill)
        buf = io.BytesIO()
        img.save(buf, format=fmt)
        return buf.getvalue()

    return _make


@pytest.fixture
def make_raster() -> Callable[..., RasterAsset]:
    """生成位图资产（字节内容不参与排版）"""

    def _make(width: int = 800, height: int = 600) -> RasterAsset:
        return RasterAsset(width=width, height=height, encoded_bytes=b"raster", codec=Codec.JPEG)

    return _make


@pytest.fixture
def make_group() -> Callable[..., CaptionImageGroup]:
    """生成图文分组"""

    def _make(caption: str = "", *file_ids: str) -> CaptionImageGroup:
        refs = tuple(ImageRef(file_id=f, mimetype="image/jpeg") for f in file_ids)
        return CaptionImageGroup(caption=caption, image_refs=refs)

    return _make


# ============================================================================
# 线程 Fixtures
# ============================================================================

def image_message(ts: str, text: str | None, *file_ids: str, mimetype: str = "image/jpeg") -> dict:
    """构造含附件的线程消息字典"""
    return {
        "ts": ts,
        "text": text,
        "files": [{"id": f, "mimetype": mimetype, "title": f"{f}.jpg"} for f in file_ids],
    }


@pytest.fixture
def sample_thread() -> list[dict]:
    """根消息（无附件）+ 一条带图消息"""
    return [
        {"ts": "1700000000.000100", "text": "Site walk notes"},
        image_message("1700000000.000200", "Leak at valve 3", "F1"),
    ]


@pytest.fixture
def thread_message() -> Callable[..., dict]:
    return image_message


@pytest.fixture
def fonts() -> FontSet:
    """默认版面的字体（内嵌等宽 TTF + CJK 备用）"""
    return load_fonts(LayoutConfig())
