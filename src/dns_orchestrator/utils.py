"""
工具函数模块

包含日志设置、调用方重试机制、记录名称转换等辅助功能
"""

import sys
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Optional

from loguru import logger
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .errors import NetworkError


def retry_with_exponential_backoff(
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
    multiplier: float = 2
):
    """
    指数退避重试装饰器

    核心库本身从不重试，该装饰器供调用方（命令层）使用，只对网络错误重试

    Args:
        max_attempts: 最大尝试次数
        min_wait: 最小等待时间（秒）
        max_wait: 最大等待时间（秒）
        multiplier: 等待时间倍数
    """
    def decorator(func: Callable) -> Callable:
        @retry(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=multiplier, min=min_wait, max=max_wait),
            retry=retry_if_exception_type(NetworkError),
            reraise=True
        )
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            return func(*args, **kwargs)
        return wrapper
    return decorator


def setup_logging(config) -> None:
    """
    设置loguru日志配置

    Args:
        config: 配置对象
    """
    # 移除默认handler
    logger.remove()

    console_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
        "<level>{message}</level>"
    )

    # 日志输出到stderr，保证 --json 输出的stdout干净
    logger.add(
        sys.stderr,
        level=config.log_level.upper(),
        format=console_format,
        colorize=True
    )

    if config.log_file:
        file_format = (
            "{time:YYYY-MM-DD HH:mm:ss} | "
            "{level: <8} | "
            "{name}:{function}:{line} - "
            "{message}"
        )

        logger.add(
            config.log_file,
            level="DEBUG",
            format=file_format,
            rotation="10 MB",
            retention="30 days",
            compression="zip",
            encoding="utf-8"
        )

        logger.info(f"日志文件输出已启用: {config.log_file}")

    logger.debug(f"日志系统初始化完成，级别: {config.log_level}")


def mask_secret(value: Optional[str]) -> Optional[str]:
    """隐藏敏感信息，只保留前4位"""
    if not value:
        return value
    if len(value) <= 4:
        return '***'
    return f"{value[:4]}***"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_rfc3339() -> str:
    return utc_now().isoformat()


def timestamp_ms_to_rfc3339(timestamp: Optional[int]) -> Optional[str]:
    """将毫秒时间戳转换为 RFC3339 格式"""
    if timestamp is None:
        return None
    try:
        return datetime.fromtimestamp(int(timestamp) // 1000, tz=timezone.utc).isoformat()
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def normalize_domain_name(name: str) -> str:
    """去掉域名末尾的点"""
    return name.rstrip('.')


def relative_to_full_name(relative_name: str, zone_name: str) -> str:
    """
    将相对名称转换为完整域名

    如: "www" + "example.com" -> "www.example.com"
    如: "@" + "example.com" -> "example.com"
    """
    if relative_name in ('@', ''):
        return zone_name
    return f"{relative_name}.{zone_name}"


def full_name_to_relative(full_name: str, zone_name: str) -> str:
    """
    将完整域名转换为相对名称

    如: "www.example.com" + "example.com" -> "www"
    如: "example.com" + "example.com" -> "@"
    不属于该域名的名称原样返回
    """
    full_name = normalize_domain_name(full_name)
    zone_name = normalize_domain_name(zone_name)
    if full_name == zone_name:
        return '@'
    suffix = f".{zone_name}"
    if full_name.endswith(suffix):
        return full_name[:-len(suffix)]
    return full_name
