"""
dns-orchestrator - 多云DNS管理

统一接口管理 Cloudflare、阿里云、腾讯云 DNSPod、华为云 的域名和DNS记录
"""

from .batch import batch_delete_records
from .errors import (
    AccountNotFound,
    ConfigError,
    CredentialError,
    DnsError,
    DomainNotFound,
    InvalidCredentials,
    InvalidParameter,
    NetworkError,
    ParseError,
    ProviderError,
    ProviderNotFound,
    QuotaExceeded,
    RecordExists,
    RecordNotFound,
    UnknownProviderError,
)
from .providers import DnsProvider, ProviderFactory, create_provider
from .registry import ProviderRegistry
from .types import (
    AliyunCredentials,
    BatchDeleteResult,
    CloudflareCredentials,
    CreateDnsRecordRequest,
    DnspodCredentials,
    DnsRecord,
    DnsRecordType,
    Domain,
    DomainStatus,
    HuaweicloudCredentials,
    PaginatedResponse,
    PaginationParams,
    ProviderCredentials,
    ProviderType,
    RecordQueryParams,
    UpdateDnsRecordRequest,
    credentials_from_map,
)

__version__ = '0.1.0'
