"""
阿里云 DNS提供商

RPC 风格的阿里云解析 API：所有参数都通过查询串传递，请求体为空，使用 ACS3-HMAC-SHA256 签名
"""

import uuid
from typing import Any, Dict, Optional

import requests
from loguru import logger

from ..errors import (
    DomainNotFound,
    InvalidCredentials,
    QuotaExceeded,
    RecordExists,
    RecordNotFound,
)
from ..signers import Acs3Signer, canonical_query_string
from ..types import (
    AliyunCredentials,
    CreateDnsRecordRequest,
    DnsRecord,
    Domain,
    DomainStatus,
    PaginatedResponse,
    PaginationParams,
    ProviderType,
    RecordQueryParams,
    UpdateDnsRecordRequest,
)
from ..utils import timestamp_ms_to_rfc3339, utc_now, utc_now_rfc3339
from .base import DnsProvider, ErrorContext, ProviderErrorMapper


class AliyunErrorMapper(ProviderErrorMapper):
    """阿里云错误码映射"""

    provider_name = 'aliyun'
    ERROR_CODES = {
        # 认证错误
        'InvalidAccessKeyId.NotFound': InvalidCredentials,
        'InvalidAccessKeyId.Inactive': InvalidCredentials,
        'SignatureDoesNotMatch': InvalidCredentials,
        'IncompleteSignature': InvalidCredentials,
        # 记录已存在
        'DomainRecordDuplicate': RecordExists,
        # 记录不存在
        'DomainRecordNotBelongToUser': RecordNotFound,
        'InvalidRecordId.NotFound': RecordNotFound,
        # 域名不存在
        'InvalidDomainName.NoExist': DomainNotFound,
        'IncorrectDomainUser': DomainNotFound,
        # 配额
        'QuotaExceeded.Record': QuotaExceeded,
    }


class AliyunProvider(DnsProvider):
    """阿里云 DNS提供商"""

    provider_type = ProviderType.ALIYUN
    error_mapper_class = AliyunErrorMapper

    MAX_DOMAIN_PAGE_SIZE = 100
    MAX_RECORD_PAGE_SIZE = 100

    STATUS_MAP = {
        'ENABLE': DomainStatus.ACTIVE,
        'PAUSE': DomainStatus.PAUSED,
        'SPAM': DomainStatus.ERROR,
    }

    def __init__(self, credentials: AliyunCredentials,
                 session: Optional[requests.Session] = None,
                 timeout: Optional[float] = None):
        super().__init__(credentials, session=session, timeout=timeout)
        self.signer = Acs3Signer(credentials.access_key_id, credentials.access_key_secret)
        logger.debug("阿里云 DNS 提供商初始化完成")

    def _request(self, action: str, params: Dict[str, Any], context: ErrorContext = None) -> Dict[str, Any]:
        """
        执行阿里云 API 请求

        Args:
            action: API 名称，如 DescribeDomains
            params: 请求参数，会被展平并排序后放入查询串
            context: 错误上下文

        Returns:
            响应JSON

        Raises:
            ProviderError: API调用失败
        """
        query = canonical_query_string(params)
        # 每次请求重新生成时间戳和 nonce
        timestamp = utc_now()
        nonce = str(uuid.uuid4())

        headers = self.signer.build_headers(action, timestamp, nonce)
        headers['Authorization'] = self.signer.sign('POST', '/', query, headers, '', timestamp)

        url = f"https://{self.signer.HOST}/"
        if query:
            url = f"{url}?{query}"

        logger.debug(f"Action: {action}")
        response = self._send('POST', url, headers=headers)
        data = self._decode_json(response)

        if not isinstance(data, dict):
            raise self.error_mapper.parse_error("响应不是JSON对象")

        if data.get('Code') and data.get('Message'):
            raise self._api_error(data['Code'], data['Message'], context)

        if not response.ok:
            raise self._api_error(None, f"HTTP {response.status_code}: {response.text}", context)

        return data

    def _map_status(self, status: Optional[str]) -> DomainStatus:
        return super()._map_status(status.upper() if status else status)

    def _domain_matches(self, domain: Domain, domain_id: str) -> bool:
        return domain.id == domain_id or domain.name == domain_id

    def _verify_credentials(self) -> bool:
        self._request('DescribeDomains', {'PageNumber': 1, 'PageSize': 1})
        return True

    def list_domains(self, params: PaginationParams) -> PaginatedResponse[Domain]:
        logger.info(f"正在从阿里云获取域名列表 (第{params.page}页)...")
        page_size = self._clamp_page_size(params.page_size, self.MAX_DOMAIN_PAGE_SIZE)
        data = self._request('DescribeDomains', {'PageNumber': params.page, 'PageSize': page_size})

        domains = []
        try:
            for item in (data.get('Domains') or {}).get('Domain') or []:
                domains.append(Domain(
                    id=str(item.get('DomainId') or item['DomainName']),
                    name=item['DomainName'],
                    provider=self.provider_type,
                    status=self._map_status(item.get('DomainStatus')),
                    record_count=item.get('RecordCount'),
                ))
        except (KeyError, TypeError) as e:
            raise self.error_mapper.parse_error(f"无法解析域名列表: {e}") from e

        logger.info(f"成功获取到 {len(domains)} 个域名")
        return PaginatedResponse.new(domains, params.page, page_size, data.get('TotalCount') or 0)

    def get_domain(self, domain_id: str) -> Domain:
        return self._resolve_domain(domain_id)

    def _decode_record(self, item: Dict[str, Any], domain_id: str) -> DnsRecord:
        record_type = self._parse_record_type(item.get('Type', ''))
        try:
            return DnsRecord(
                id=str(item['RecordId']),
                domain_id=domain_id,
                record_type=record_type,
                name=item['RR'],
                value=item['Value'],
                ttl=int(item['TTL']),
                priority=item.get('Priority'),
                # 阿里云不支持代理
                proxied=None,
                created_at=timestamp_ms_to_rfc3339(item.get('CreateTimestamp')),
                updated_at=timestamp_ms_to_rfc3339(item.get('UpdateTimestamp')),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise self.error_mapper.parse_error(f"无法解析DNS记录: {e}") from e

    def list_records(self, domain_id: str, params: RecordQueryParams) -> PaginatedResponse[DnsRecord]:
        # API 需要域名名称而不是 ID
        domain = self._resolve_domain(domain_id)
        page_size = self._clamp_page_size(params.page_size, self.MAX_RECORD_PAGE_SIZE)

        data = self._request('DescribeDomainRecords', {
            'DomainName': domain.name,
            'PageNumber': params.page,
            'PageSize': page_size,
            'RRKeyWord': params.search_keyword(),
            'Type': params.record_type.value if params.record_type else None,
        }, context=ErrorContext(domain=domain.name))

        raw_records = (data.get('DomainRecords') or {}).get('Record') or []
        records = self._decode_records(raw_records, lambda r: self._decode_record(r, domain_id))
        return PaginatedResponse.new(records, params.page, page_size, data.get('TotalCount') or 0)

    def _record_params(self, request: CreateDnsRecordRequest) -> Dict[str, Any]:
        return {
            'RR': request.name,
            'Type': request.record_type.value,
            'Value': request.value,
            'TTL': request.ttl,
            'Priority': request.priority,
        }

    def create_record(self, request: CreateDnsRecordRequest) -> DnsRecord:
        domain = self._resolve_domain(request.domain_id)
        logger.info(f"正在创建记录: {request.name}.{domain.name} {request.record_type.value} -> {request.value}")

        params = {'DomainName': domain.name}
        params.update(self._record_params(request))
        data = self._request('AddDomainRecord', params,
                             context=ErrorContext(record_name=request.name, domain=domain.name))

        if not data.get('RecordId'):
            raise self.error_mapper.parse_error("响应中缺少 RecordId")

        now = utc_now_rfc3339()
        return DnsRecord(
            id=str(data['RecordId']),
            domain_id=request.domain_id,
            record_type=request.record_type,
            name=request.name,
            value=request.value,
            ttl=request.ttl,
            priority=request.priority,
            created_at=now,
            updated_at=now,
        )

    def update_record(self, record_id: str, request: UpdateDnsRecordRequest) -> DnsRecord:
        logger.info(f"正在更新记录: {record_id}")

        params = {'RecordId': record_id}
        params.update(self._record_params(request))
        self._request('UpdateDomainRecord', params,
                      context=ErrorContext(record_name=request.name, record_id=record_id))

        return DnsRecord(
            id=record_id,
            domain_id=request.domain_id,
            record_type=request.record_type,
            name=request.name,
            value=request.value,
            ttl=request.ttl,
            priority=request.priority,
            updated_at=utc_now_rfc3339(),
        )

    def delete_record(self, record_id: str, domain_id: str) -> None:
        logger.info(f"正在删除记录: {record_id}")
        self._request('DeleteDomainRecord', {'RecordId': record_id},
                      context=ErrorContext(record_id=record_id, domain=domain_id))
