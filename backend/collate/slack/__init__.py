"""
Slack 模块 - Web API 客户端

子模块：
- client: 基于 requests 的 Web API 封装
"""

from .client import SlackClient

__all__ = ["SlackClient"]
