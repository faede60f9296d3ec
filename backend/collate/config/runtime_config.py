"""
运行期配置 - 读取 config/collate_runtime.yaml

职责：
- 加载Slack/超时/重试/版面/图片/导出等运行参数
- 提供环境变量覆盖机制
- 类型安全的配置访问
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class SlackConfig(BaseModel):
    """Slack连接配置"""

    bot_token: str = ""
    api_base_url: str = "https://slack.com/api"
    replies_page_limit: int = 200


class TimeoutConfig(BaseModel):
    """超时配置"""

    http_sec: int = 30
    upload_sec: int = 120


class RetryConfig(BaseModel):
    """重试配置（仅用于上传后校验轮询）"""

    verify_max_attempts: int = 8
    verify_interval_ms: int = 1000


class LayoutConfig(BaseModel):
    """版面配置（单位：pt，Letter纵向）"""

    mode: Literal["stacked", "side_by_side"] = "stacked"
    columns: int = Field(2, ge=1, le=2)

    page_width: float = 612
    page_height: float = 792
    margin: float = 36
    gutter: float = 18

    header_text: str = "Print Export"
    header_size: float = 12
    header_height: float = 18

    caption_font_path: Path | None = Field(None, description="等宽TTF路径（默认随包附带 DejaVu Sans Mono）")
    cjk_font_path: Path | None = Field(None, description="CJK字形TTF路径（可选，内嵌）")
    cjk_cid_font: str = "STSong-Light"
    caption_size: float = 10
    line_height: float = 12
    max_caption_lines: int = Field(6, ge=1)
    caption_gap: float = 6

    image_max_height: float = 220
    image_gap: float = 12
    group_gap: float = 12

    @property
    def content_width(self) -> float:
        return self.page_width - self.margin * 2

    @property
    def column_width(self) -> float:
        return (self.content_width - self.gutter * (self.columns - 1)) / self.columns

    @property
    def content_top(self) -> float:
        return self.page_height - self.margin - self.header_height


class ImageConfig(BaseModel):
    """图片转码配置"""

    max_dimension: int = 1600
    jpeg_quality: int = Field(72, ge=1, le=95)


class ExportConfig(BaseModel):
    """导出文件配置"""

    filename_prefix: str = "PrintExport"
    title_max_length: int = 80
    extension: str = ".pdf"
    initial_comment: str = "📄 Print-optimized PDF ready."


class LoggingConfig(BaseModel):
    """日志配置"""

    log_level: str = "INFO"
    log_to_file: bool = False
    log_file: Path = Path("logs/collate.log")


_SECTIONS = ("slack", "timeouts", "retries", "layout", "images", "export", "logging")


class RuntimeConfig(BaseSettings):
    """运行期配置（支持环境变量覆盖）"""

    slack: SlackConfig = Field(default_factory=SlackConfig)
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)
    retries: RetryConfig = Field(default_factory=RetryConfig)
    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    images: ImageConfig = Field(default_factory=ImageConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {
        "env_prefix": "COLLATE_",
        "env_nested_delimiter": "__",
        "arbitrary_types_allowed": True,
    }

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> RuntimeConfig:
        """从YAML文件加载配置（文件不存在时使用默认值）"""
        path = Path(yaml_path)
        if not path.exists():
            return cls()

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        runtime_opts = data.get("runtime_options", {})

        # 以环境变量生效后的值为底，YAML中出现的键覆盖之（未出现的键如 bot_token 保留环境变量）
        base = cls()
        sections = {}
        for key in _SECTIONS:
            current = getattr(base, key)
            merged = {**current.model_dump(), **cls._extract(runtime_opts, key)}
            sections[key] = type(current)(**merged)
        return cls(**sections)

    @staticmethod
    def _extract(data: dict[str, Any], key: str) -> dict[str, Any]:
        """提取并展平配置"""
        section = data.get(key) or {}
        result = {}
        for k, v in section.items():
            if isinstance(v, dict) and "default" in v:
                result[k] = v["default"]
            elif not isinstance(v, dict):
                result[k] = v
        return result


# 全局配置实例
_config: RuntimeConfig | None = None

DEFAULT_CONFIG_PATH = Path("config/collate_runtime.yaml")


def get_config() -> RuntimeConfig:
    """获取全局配置（惰性加载）"""
    global _config
    if _config is None:
        _config = RuntimeConfig.from_yaml(DEFAULT_CONFIG_PATH)
    return _config


def reload_config(yaml_path: str | Path | None = None) -> RuntimeConfig:
    """重新加载配置"""
    global _config
    _config = RuntimeConfig.from_yaml(yaml_path or DEFAULT_CONFIG_PATH)
    return _config
