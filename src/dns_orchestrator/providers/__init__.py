"""
DNS providers package - DNS提供商模块

包含各云厂商DNS API的客户端实现
"""

from .aliyun import AliyunProvider
from .base import DnsProvider, ErrorContext, ProviderErrorMapper, RawApiError
from .cloudflare import CloudflareProvider
from .dnspod import DnspodProvider
from .factory import ProviderFactory, create_provider
from .huaweicloud import HuaweicloudProvider

__all__ = [
    'DnsProvider',
    'ProviderErrorMapper',
    'RawApiError',
    'ErrorContext',
    'ProviderFactory',
    'create_provider',
    'CloudflareProvider',
    'AliyunProvider',
    'DnspodProvider',
    'HuaweicloudProvider',
]
