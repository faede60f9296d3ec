"""
图片下载器 - 通过 files.info 获取临时下载地址后下载

职责：
1. 解析 url_private_download（缺失时退回 url_private）
2. 单次下载，不重试
3. 任何失败返回 None，由调用方渲染占位

测试要点：
- test_fetch_success: 正常下载
- test_fetch_missing_url: 无下载地址
- test_fetch_transport_error: 非2xx/网络异常
"""

from __future__ import annotations

import logging

import requests

from ..interfaces import CollateError, IAssetFetcher, IChatClient
from ..models import ImageRef

logger = logging.getLogger(__name__)


class AssetFetcher(IAssetFetcher):
    """图片下载器实现"""

    def __init__(self, client: IChatClient):
        self.client = client

    def fetch(self, ref: ImageRef) -> bytes | None:
        """下载图片原始字节（失败返回 None）"""
        try:
            info = self.client.files_info(ref.file_id)
            file_obj = info.get("file") or {}
            url = file_obj.get("url_private_download") or file_obj.get("url_private")
            if not url:
                logger.warning(f"图片无下载地址: {ref.file_id}")
                return None
            return self.client.download(url)
        except (CollateError, requests.RequestException) as e:
            logger.warning(f"图片下载失败: {ref.file_id}: {e}")
            return None
