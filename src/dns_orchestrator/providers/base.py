"""
DNS提供商抽象基类

定义了所有DNS提供商必须实现的接口，以及各后端共用的错误映射、请求发送和域名解析逻辑
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Type

import requests
from loguru import logger

from ..errors import (
    DomainNotFound,
    InvalidCredentials,
    InvalidParameter,
    NetworkError,
    ParseError,
    ProviderError,
    QuotaExceeded,
    RecordExists,
    RecordNotFound,
    UnknownProviderError,
)
from ..types import (
    CreateDnsRecordRequest,
    DnsRecord,
    DnsRecordType,
    Domain,
    DomainStatus,
    PaginatedResponse,
    PaginationParams,
    ProviderCredentials,
    ProviderType,
    RecordQueryParams,
    UpdateDnsRecordRequest,
)


@dataclass
class RawApiError:
    """后端返回的原始错误"""

    code: Optional[str]
    message: str


@dataclass
class ErrorContext:
    """错误映射时的上下文信息"""

    record_name: Optional[str] = None
    record_id: Optional[str] = None
    domain: Optional[str] = None


class ProviderErrorMapper:
    """
    错误映射器基类

    子类声明 ERROR_CODES（错误码 -> 错误类型）和可选的 PREFIX_RULES（错误码前缀 -> 错误类型），
    未匹配的错误码统一落到 UnknownProviderError
    """

    provider_name = ''
    ERROR_CODES: Dict[str, Type[ProviderError]] = {}
    PREFIX_RULES: List[Tuple[str, Type[ProviderError]]] = []

    def lookup(self, code: Optional[str]) -> Optional[Type[ProviderError]]:
        if not code:
            return None
        if code in self.ERROR_CODES:
            return self.ERROR_CODES[code]
        for prefix, error_class in self.PREFIX_RULES:
            if code.startswith(prefix):
                return error_class
        return None

    def map_error(self, raw: RawApiError, context: ErrorContext = None) -> ProviderError:
        """
        将原始错误映射为统一错误类型

        Args:
            raw: 原始错误码和消息
            context: 记录名、记录ID、域名等上下文

        Returns:
            统一错误
        """
        context = context or ErrorContext()
        error_class = self.lookup(raw.code)
        provider = self.provider_name

        if error_class is InvalidCredentials:
            return InvalidCredentials(provider, raw.message)
        if error_class is RecordExists:
            return RecordExists(provider, context.record_name or '', raw.message)
        if error_class is RecordNotFound:
            return RecordNotFound(provider, context.record_id or '', raw.message)
        if error_class is DomainNotFound:
            return DomainNotFound(provider, context.domain or '')
        if error_class is QuotaExceeded:
            return QuotaExceeded(provider, raw.message)
        if error_class is InvalidParameter:
            return InvalidParameter(provider, raw.code or 'unknown', raw.message)
        return self.unknown_error(raw)

    def network_error(self, detail: str) -> NetworkError:
        return NetworkError(self.provider_name, detail)

    def parse_error(self, detail: str) -> ParseError:
        return ParseError(self.provider_name, detail)

    def unknown_error(self, raw: RawApiError) -> UnknownProviderError:
        return UnknownProviderError(self.provider_name, raw.message, raw.code)


class DnsProvider(ABC):
    """DNS提供商抽象基类"""

    provider_type: ProviderType
    error_mapper_class: Type[ProviderErrorMapper] = ProviderErrorMapper

    # 域名列表单页最大数量
    MAX_DOMAIN_PAGE_SIZE = 100
    # 记录列表单页最大数量
    MAX_RECORD_PAGE_SIZE = 100

    STATUS_MAP: Dict[str, DomainStatus] = {}

    def __init__(self, credentials: ProviderCredentials,
                 session: Optional[requests.Session] = None,
                 timeout: Optional[float] = None):
        """
        初始化提供商

        Args:
            credentials: 对应后端的凭证
            session: HTTP会话，测试时可注入
            timeout: 单次请求超时（秒），None 表示不限制
        """
        self.credentials = credentials
        self.session = session or requests.Session()
        self.timeout = timeout
        self.error_mapper = self.error_mapper_class()

    @property
    def id(self) -> str:
        """提供商标识"""
        return self.provider_type.value

    def get_provider_name(self) -> str:
        return self.id

    # ============ 对外接口 ============

    def validate_credentials(self) -> bool:
        """
        验证凭证是否有效

        凭证无效时返回 False 而不是抛出异常；其他错误记录警告后同样返回 False

        Returns:
            True表示凭证有效
        """
        try:
            return self._verify_credentials()
        except InvalidCredentials:
            logger.info(f"{self.id} 凭证无效")
            return False
        except ProviderError as e:
            logger.warning(f"{self.id} 凭证验证失败: {str(e)}")
            return False

    @abstractmethod
    def _verify_credentials(self) -> bool:
        """调用一个轻量的只读接口确认凭证可用"""

    @abstractmethod
    def list_domains(self, params: PaginationParams) -> PaginatedResponse[Domain]:
        """
        分页获取域名列表

        Args:
            params: 分页参数，page_size 会被限制在后端允许的最大值以内

        Returns:
            域名分页结果

        Raises:
            ProviderError: 当API调用失败时
        """

    @abstractmethod
    def get_domain(self, domain_id: str) -> Domain:
        """
        获取域名详情

        Raises:
            DomainNotFound: 域名不存在
        """

    @abstractmethod
    def list_records(self, domain_id: str, params: RecordQueryParams) -> PaginatedResponse[DnsRecord]:
        """
        分页获取DNS记录

        Args:
            domain_id: 域名ID
            params: 分页、关键词和记录类型过滤

        Returns:
            记录分页结果，无法识别类型的记录会被跳过
        """

    @abstractmethod
    def create_record(self, request: CreateDnsRecordRequest) -> DnsRecord:
        """创建DNS记录"""

    @abstractmethod
    def update_record(self, record_id: str, request: UpdateDnsRecordRequest) -> DnsRecord:
        """更新DNS记录，记录ID保持不变"""

    @abstractmethod
    def delete_record(self, record_id: str, domain_id: str) -> None:
        """删除DNS记录"""

    # ============ 共用辅助方法 ============

    def _clamp_page_size(self, page_size: int, maximum: int) -> int:
        return min(page_size, maximum)

    def _offset_limit(self, params: PaginationParams, maximum: int) -> Tuple[int, int]:
        """offset/limit 风格后端的分页参数，偏移量按限制后的页大小计算"""
        limit = self._clamp_page_size(params.page_size, maximum)
        return (params.page - 1) * limit, limit

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        """
        发送HTTP请求

        Raises:
            NetworkError: 网络请求失败
        """
        logger.debug(f"[{self.id}] 发送{method.upper()}请求到: {url}")
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.error(f"[{self.id}] 网络请求失败: {str(e)}")
            raise self.error_mapper.network_error(str(e)) from e

    def _decode_json(self, response: requests.Response) -> Any:
        """
        解析JSON响应

        Raises:
            ParseError: 响应不是合法的JSON
        """
        logger.debug(f"[{self.id}] 响应 {response.status_code}: {response.text}")
        try:
            return response.json()
        except ValueError as e:
            raise self.error_mapper.parse_error(f"无法解析响应: {str(e)}") from e

    def _api_error(self, code: Optional[str], message: str, context: ErrorContext = None) -> ProviderError:
        logger.error(f"[{self.id}] API错误: {code} - {message}")
        return self.error_mapper.map_error(RawApiError(code=code, message=message), context)

    def _parse_record_type(self, value: str) -> DnsRecordType:
        """
        将后端记录类型转换为统一记录类型

        Raises:
            InvalidParameter: 不支持的记录类型
        """
        try:
            return DnsRecordType.parse(value)
        except ValueError:
            raise InvalidParameter(self.id, 'record_type', f"不支持的记录类型: {value}")

    def _map_status(self, status: Optional[str]) -> DomainStatus:
        if status is None:
            return DomainStatus.UNKNOWN
        return self.STATUS_MAP.get(status, DomainStatus.UNKNOWN)

    def _decode_records(self, raw_records: List[Dict[str, Any]], decoder) -> List[DnsRecord]:
        """逐条解码记录，不支持的记录类型只跳过该条记录"""
        records = []
        for raw in raw_records:
            try:
                record = decoder(raw)
            except InvalidParameter as e:
                logger.warning(f"[{self.id}] 跳过记录: {str(e)}")
                continue
            if record is not None:
                records.append(record)
        return records

    def _domain_matches(self, domain: Domain, domain_id: str) -> bool:
        return domain.id == domain_id

    def _resolve_domain(self, domain_id: str) -> Domain:
        """
        根据域名ID查找域名

        以最大页大小逐页遍历域名列表直到匹配。除凭证无效外，查找过程中的任何失败都转换为 DomainNotFound

        Raises:
            DomainNotFound: 域名不存在或查找失败
            InvalidCredentials: 凭证无效
        """
        page = 1
        try:
            while True:
                response = self.list_domains(PaginationParams(page=page, page_size=self.MAX_DOMAIN_PAGE_SIZE))
                for domain in response.items:
                    if self._domain_matches(domain, domain_id):
                        return domain
                if not response.has_more or not response.items:
                    break
                page += 1
        except InvalidCredentials:
            raise
        except ProviderError as e:
            logger.warning(f"[{self.id}] 查找域名 {domain_id} 失败: {str(e)}")
            raise DomainNotFound(self.id, domain_id) from e

        raise DomainNotFound(self.id, domain_id)
