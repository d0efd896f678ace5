"""故障诊断与错误文案。

交换失败时，根据当前 ApiConfig 生成一段可读的诊断报告
（URL 格式、协议、端口、认证配置），并把各类业务异常
格式化成展示给用户的消息。凭据本身永远不会出现在报告中。
"""

import platform
from datetime import datetime
from typing import List, Optional

import httpx

from chat_core.domain.exceptions import (
    BusinessError,
    ConfigError,
    HttpError,
    NetworkError,
    RequestTimeoutError,
)
from chat_core.domain.models import ApiConfig, AuthMode


def check_url(url: str) -> List[str]:
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL:
        return [f"❌ URL格式错误: {url}"]
    if not parsed.scheme or not parsed.host:
        return [f"❌ URL格式错误: {url}"]

    lines = [f"✓ URL格式正确: {parsed.scheme}://{parsed.host}"]
    if parsed.scheme != "https":
        lines.append(f"⚠️ 协议警告: 使用{parsed.scheme}，建议使用HTTPS")
    if parsed.port and parsed.port != 443:
        lines.append(f"ℹ️ 端口信息: {parsed.port}")
    return lines


def describe_auth(config: ApiConfig) -> str:
    if config.auth_type is AuthMode.NONE:
        return "🔓 认证方式: 无认证"
    state = "(已配置)" if config.has_credential else "(未配置密钥)"
    return f"🔐 认证方式: {config.auth_type.value} {state}"


def diagnose(config: ApiConfig, *, now: Optional[datetime] = None) -> str:
    """生成多行诊断报告。"""

    lines = check_url(config.api_url)
    lines.append(f"🌐 运行环境: Python {platform.python_version()} / httpx {httpx.__version__}")
    lines.append(describe_auth(config))
    lines.append(f"⏰ 诊断时间: {(now or datetime.now()).strftime('%Y-%m-%d %H:%M:%S')}")
    return "\n".join(lines)


def format_error(exc: BusinessError, config: ApiConfig) -> str:
    """把业务异常转成分类明确的用户提示，不包含堆栈信息。"""

    if isinstance(exc, NetworkError):
        return (
            "❌ 网络连接失败\n\n"
            f"{exc.message}\n\n"
            f"诊断信息：\n{diagnose(config)}\n\n"
            "请检查：\n"
            "1. API URL是否正确\n"
            "2. 网络连接是否正常\n"
            "3. API是否支持CORS跨域请求\n"
            "4. 代理与防火墙设置"
        )
    if isinstance(exc, RequestTimeoutError):
        return f"⏰ 请求超时\n\n{exc.message}\n\n💡 建议：检查网络连接或稍后重试"
    if isinstance(exc, ConfigError):
        return f"⚙️ 配置错误：{exc.message}\n\n💡 请检查设置中的API URL格式与API密钥"
    if isinstance(exc, HttpError) and exc.status in (401, 403):
        return (
            f"❌ 发生错误：{exc.message}\n\n"
            f"{describe_auth(config)}\n\n"
            "💡 请检查认证方式与API密钥"
        )
    return f"❌ 发生错误：{exc.message}\n\n💡 请检查API配置和网络连接"
