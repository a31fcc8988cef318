"""
统一数据模型

所有DNS提供商共用的值类型：域名、DNS记录、分页参数、凭证和提供商元数据
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from .errors import CredentialError

T = TypeVar('T')


class ProviderType(str, Enum):
    """DNS提供商类型"""

    CLOUDFLARE = 'cloudflare'
    ALIYUN = 'aliyun'
    DNSPOD = 'dnspod'
    HUAWEICLOUD = 'huaweicloud'

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str) -> 'ProviderType':
        """
        解析提供商名称（不区分大小写）

        Raises:
            ValueError: 不支持的提供商
        """
        try:
            return cls(value.strip().lower())
        except (ValueError, AttributeError):
            raise ValueError(f"不支持的DNS提供商: {value}")


class DomainStatus(str, Enum):
    """域名状态"""

    ACTIVE = 'active'
    PAUSED = 'paused'
    PENDING = 'pending'
    ERROR = 'error'
    UNKNOWN = 'unknown'


class DnsRecordType(str, Enum):
    """支持的DNS记录类型（封闭集合）"""

    A = 'A'
    AAAA = 'AAAA'
    CNAME = 'CNAME'
    MX = 'MX'
    TXT = 'TXT'
    NS = 'NS'
    SRV = 'SRV'
    CAA = 'CAA'

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str) -> 'DnsRecordType':
        """
        解析记录类型字符串

        Args:
            value: 记录类型，不区分大小写

        Returns:
            记录类型枚举

        Raises:
            ValueError: 不支持的记录类型，绝不静默转换
        """
        if not isinstance(value, str):
            raise ValueError(f"不支持的记录类型: {value!r}")
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise ValueError(f"不支持的记录类型: {value}")


# ============ 分页 ============

@dataclass
class PaginationParams:
    """分页参数"""

    page: int = 1
    page_size: int = 20

    def __post_init__(self):
        if self.page < 1:
            raise ValueError("page必须大于等于1")
        if self.page_size < 1:
            raise ValueError("page_size必须大于等于1")

    def offset(self) -> int:
        """offset/limit 风格后端使用的偏移量"""
        return (self.page - 1) * self.page_size

    def to_dict(self) -> Dict[str, int]:
        return {'page': self.page, 'pageSize': self.page_size}


@dataclass
class RecordQueryParams(PaginationParams):
    """DNS记录查询参数（分页 + 搜索 + 类型过滤）"""

    keyword: Optional[str] = None
    record_type: Optional[DnsRecordType] = None

    def to_pagination(self) -> PaginationParams:
        return PaginationParams(page=self.page, page_size=self.page_size)

    def search_keyword(self) -> Optional[str]:
        """返回非空的搜索关键词，空字符串视为未设置"""
        if self.keyword and self.keyword.strip():
            return self.keyword.strip()
        return None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = super().to_dict()
        if self.keyword is not None:
            data['keyword'] = self.keyword
        if self.record_type is not None:
            data['recordType'] = self.record_type.value
        return data


@dataclass
class PaginatedResponse(Generic[T]):
    """分页响应，与具体后端的分页方式无关"""

    items: List[T]
    page: int
    page_size: int
    total_count: int
    has_more: bool

    @classmethod
    def new(cls, items: List[T], page: int, page_size: int, total_count: int) -> 'PaginatedResponse[T]':
        """构造分页响应并计算 has_more"""
        return cls(
            items=list(items),
            page=page,
            page_size=page_size,
            total_count=total_count,
            has_more=(page * page_size) < total_count,
        )

    @classmethod
    def empty(cls, page: int, page_size: int) -> 'PaginatedResponse[T]':
        return cls.new([], page, page_size, 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'items': [item.to_dict() if hasattr(item, 'to_dict') else item for item in self.items],
            'page': self.page,
            'pageSize': self.page_size,
            'totalCount': self.total_count,
            'hasMore': self.has_more,
        }


# ============ 域名与记录 ============

@dataclass
class Domain:
    """DNS域名（Zone）"""

    id: str
    name: str
    provider: ProviderType
    status: DomainStatus = DomainStatus.UNKNOWN
    record_count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'name': self.name,
            'provider': self.provider.value,
            'status': self.status.value,
        }
        if self.record_count is not None:
            data['recordCount'] = self.record_count
        return data


@dataclass
class DnsRecord:
    """DNS记录，name 为相对于域名的主机记录（"@" 表示根域名）"""

    id: str
    domain_id: str
    record_type: DnsRecordType
    name: str
    value: str
    ttl: int
    priority: Optional[int] = None
    proxied: Optional[bool] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'domainId': self.domain_id,
            'type': self.record_type.value,
            'name': self.name,
            'value': self.value,
            'ttl': self.ttl,
            'priority': self.priority,
            'proxied': self.proxied,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }


@dataclass
class CreateDnsRecordRequest:
    """创建DNS记录请求"""

    domain_id: str
    record_type: DnsRecordType
    name: str
    value: str
    ttl: int = 600
    priority: Optional[int] = None
    proxied: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CreateDnsRecordRequest':
        """
        从命令层字典构造请求

        Raises:
            ValueError: 缺少字段或记录类型不受支持
        """
        try:
            return cls(
                domain_id=str(data['domainId']),
                record_type=DnsRecordType.parse(data['type']),
                name=str(data['name']),
                value=str(data['value']),
                ttl=int(data.get('ttl', 600)),
                priority=int(data['priority']) if data.get('priority') is not None else None,
                proxied=data.get('proxied'),
            )
        except KeyError as e:
            raise ValueError(f"缺少字段: {e.args[0]}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'domainId': self.domain_id,
            'type': self.record_type.value,
            'name': self.name,
            'value': self.value,
            'ttl': self.ttl,
            'priority': self.priority,
            'proxied': self.proxied,
        }


@dataclass
class UpdateDnsRecordRequest(CreateDnsRecordRequest):
    """更新DNS记录请求（字段与创建请求相同，记录ID单独传入）"""


# ============ 批量删除 ============

@dataclass
class BatchDeleteRequest:
    domain_id: str
    record_ids: List[str] = field(default_factory=list)


@dataclass
class BatchDeleteFailure:
    record_id: str
    reason: str

    def to_dict(self) -> Dict[str, str]:
        return {'recordId': self.record_id, 'reason': self.reason}


@dataclass
class BatchDeleteResult:
    """批量删除结果，逐条汇报失败原因"""

    success_count: int = 0
    failures: List[BatchDeleteFailure] = field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'successCount': self.success_count,
            'failedCount': self.failed_count,
            'failures': [f.to_dict() for f in self.failures],
        }


# ============ 凭证 ============

class ProviderCredentials:
    """
    凭证基类

    每个子类对应一个后端，只携带该后端签名所需的密钥字段。
    MAP_KEYS 定义属性名与存储字典键名的对应关系。
    """

    PROVIDER: ProviderType
    MAP_KEYS: Dict[str, str] = {}

    @property
    def provider_type(self) -> ProviderType:
        return self.PROVIDER

    def to_map(self) -> Dict[str, str]:
        """转换为字符串字典（存储格式）"""
        return {key: getattr(self, attr) for attr, key in self.MAP_KEYS.items()}

    def to_dict(self) -> Dict[str, Any]:
        """带标签的JSON形式: {"provider": ..., "credentials": {...}}"""
        return {'provider': self.PROVIDER.value, 'credentials': self.to_map()}

    @classmethod
    def from_map(cls, data: Dict[str, str]) -> 'ProviderCredentials':
        """
        从字符串字典构造凭证

        Raises:
            CredentialError: 缺少必需的键
        """
        if not isinstance(data, dict):
            raise CredentialError(f"{cls.PROVIDER.value} 凭证必须是字典")
        kwargs = {}
        for attr, key in cls.MAP_KEYS.items():
            value = data.get(key)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise CredentialError(f"missing {key}", provider=cls.PROVIDER.value, key=key)
            kwargs[attr] = str(value)
        return cls(**kwargs)

    def __repr__(self) -> str:
        # 不输出密钥
        fields = ', '.join(f"{attr}=***" for attr in self.MAP_KEYS)
        return f"{self.__class__.__name__}({fields})"


@dataclass(frozen=True, repr=False)
class CloudflareCredentials(ProviderCredentials):
    api_token: str

    PROVIDER = ProviderType.CLOUDFLARE
    MAP_KEYS = {'api_token': 'apiToken'}


@dataclass(frozen=True, repr=False)
class AliyunCredentials(ProviderCredentials):
    access_key_id: str
    access_key_secret: str

    PROVIDER = ProviderType.ALIYUN
    MAP_KEYS = {'access_key_id': 'accessKeyId', 'access_key_secret': 'accessKeySecret'}


@dataclass(frozen=True, repr=False)
class DnspodCredentials(ProviderCredentials):
    secret_id: str
    secret_key: str

    PROVIDER = ProviderType.DNSPOD
    MAP_KEYS = {'secret_id': 'secretId', 'secret_key': 'secretKey'}


@dataclass(frozen=True, repr=False)
class HuaweicloudCredentials(ProviderCredentials):
    access_key_id: str
    secret_access_key: str

    PROVIDER = ProviderType.HUAWEICLOUD
    MAP_KEYS = {'access_key_id': 'accessKeyId', 'secret_access_key': 'secretAccessKey'}


CREDENTIAL_TYPES = {
    ProviderType.CLOUDFLARE: CloudflareCredentials,
    ProviderType.ALIYUN: AliyunCredentials,
    ProviderType.DNSPOD: DnspodCredentials,
    ProviderType.HUAWEICLOUD: HuaweicloudCredentials,
}


def credentials_from_map(provider, data: Dict[str, str]) -> ProviderCredentials:
    """
    根据提供商类型从字符串字典构造凭证

    Args:
        provider: ProviderType 或提供商名称
        data: 凭证字典，例如 {"apiToken": "..."}

    Returns:
        对应后端的凭证对象

    Raises:
        CredentialError: 提供商未知或缺少必需的键
    """
    if not isinstance(provider, ProviderType):
        try:
            provider = ProviderType.parse(provider)
        except ValueError as e:
            raise CredentialError(str(e), provider=str(provider))
    return CREDENTIAL_TYPES[provider].from_map(data)


def credentials_from_dict(data: Dict[str, Any]) -> ProviderCredentials:
    """从带标签的字典 {"provider": ..., "credentials": {...}} 构造凭证"""
    if 'provider' not in data:
        raise CredentialError("missing provider")
    return credentials_from_map(data['provider'], data.get('credentials') or {})


# ============ 提供商元数据 ============

class FieldType(str, Enum):
    TEXT = 'text'
    PASSWORD = 'password'


@dataclass
class ProviderCredentialField:
    key: str
    label: str
    field_type: FieldType = FieldType.TEXT
    placeholder: Optional[str] = None
    help_text: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {'key': self.key, 'label': self.label, 'type': self.field_type.value}
        if self.placeholder is not None:
            data['placeholder'] = self.placeholder
        if self.help_text is not None:
            data['helpText'] = self.help_text
        return data


@dataclass
class ProviderFeatures:
    # 是否支持代理（如 Cloudflare CDN）
    proxy: bool = False


@dataclass
class ProviderMetadata:
    id: ProviderType
    name: str
    description: str
    required_fields: List[ProviderCredentialField] = field(default_factory=list)
    features: ProviderFeatures = field(default_factory=ProviderFeatures)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id.value,
            'name': self.name,
            'description': self.description,
            'requiredFields': [f.to_dict() for f in self.required_fields],
            'features': {'proxy': self.features.proxy},
        }
