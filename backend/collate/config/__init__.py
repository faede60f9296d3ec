"""
配置层 - 加载运行期配置

职责：
- 加载 config/collate_runtime.yaml（运行期参数）
- 提供环境变量覆盖机制（COLLATE_ 前缀）
- 提供类型安全的配置访问接口
"""

from .runtime_config import (
    ExportConfig,
    ImageConfig,
    LayoutConfig,
    RuntimeConfig,
    get_config,
    reload_config,
)

__all__ = [
    "RuntimeConfig",
    "LayoutConfig",
    "ImageConfig",
    "ExportConfig",
    "get_config",
    "reload_config",
]
