"""配置管理模块。

支持从 .env、config.yaml 以及环境变量加载配置。

这里只保存客户端自身的运行参数（超时、重试、打字节奏、日志）。
宿主界面下发的 API 地址/密钥/认证方式由 ApiConfig 承载，
settings 中的 api_url / api_key / auth_type 仅作为初始值。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Tuple

import yaml
from pydantic import Field, model_validator
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("CHAT_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
        Path(__file__).resolve().parents[1] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class YamlConfigSource(PydanticBaseSettingsSource):
    """config.yaml 配置来源，优先级低于环境变量与 .env。"""

    def __init__(self, settings_cls: type[BaseSettings]):
        super().__init__(settings_cls)
        self._data = {str(k).lower(): v for k, v in _load_config_from_yaml().items()}

    def get_field_value(self, field: FieldInfo, field_name: str) -> Tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, False

    def __call__(self) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        for name, field in self.settings_cls.model_fields.items():
            value, key, _ = self.get_field_value(field, name)
            if value is not None:
                values[key] = value
        return values


class ChatSettings(BaseSettings):
    """配置设置（使用 Pydantic）。"""

    # ---- 宿主配置的初始值 ----
    api_url: str = Field(default="", description="聊天后端地址，宿主可随时覆盖")
    api_key: str = Field(default="", description="认证凭据")
    auth_type: str = Field(default="Bearer", description="认证方式：None / Bearer / ApiKey")

    # ---- 网络 ----
    http_timeout: float = Field(default=60.0, gt=0, le=600, description="单次消息交换的硬超时（秒）")
    probe_timeout: float = Field(default=15.0, gt=0, le=120, description="连通性探测超时（秒）")
    max_attempts: int = Field(default=3, ge=1, le=10, description="网络错误时的最大尝试次数")
    retry_base_delay: float = Field(default=1.0, ge=0, description="首次重试前的等待（秒）")
    retry_max_delay: float = Field(default=5.0, ge=0, description="退避等待上限（秒）")

    # ---- 打字效果 ----
    typing_min_delay: float = Field(default=0.05, ge=0, description="模拟打字的最小词间隔（秒）")
    typing_max_delay: float = Field(default=0.15, ge=0, description="模拟打字的最大词间隔（秒）")
    stream_render_interval: float = Field(
        default=0.0,
        ge=0,
        description="流式渲染的最小刷新间隔（秒），0 表示每个片段都刷新",
    )

    # ---- 日志 ----
    log_dir: str = Field(default="logs", description="日志目录")
    log_level: str = Field(default="INFO", description="日志级别")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    model_config = SettingsConfigDict(
        env_prefix="CHAT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def check_ranges(self) -> "ChatSettings":
        if self.typing_max_delay < self.typing_min_delay:
            raise ValueError("typing_max_delay must not be smaller than typing_min_delay")
        if self.retry_max_delay < self.retry_base_delay:
            raise ValueError("retry_max_delay must not be smaller than retry_base_delay")
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSource(settings_cls),
            file_secret_settings,
        )


settings = ChatSettings()

# 类型别名，让外部代码可以使用 Settings 类型
Settings = ChatSettings
