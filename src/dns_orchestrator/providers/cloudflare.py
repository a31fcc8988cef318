"""
Cloudflare DNS提供商

使用直接HTTP请求调用 Cloudflare API v4，认证方式为 Bearer Token
"""

from typing import Any, Dict, Optional

import requests
from loguru import logger

from ..errors import (
    DomainNotFound,
    InvalidCredentials,
    InvalidParameter,
    ProviderError,
    QuotaExceeded,
    RecordExists,
    RecordNotFound,
)
from ..signers import BearerTokenSigner
from ..types import (
    CloudflareCredentials,
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
from ..utils import full_name_to_relative, relative_to_full_name
from .base import DnsProvider, ErrorContext, ProviderErrorMapper


class CloudflareErrorMapper(ProviderErrorMapper):
    """Cloudflare 错误码映射"""

    provider_name = 'cloudflare'
    ERROR_CODES = {
        # 认证错误
        '6003': InvalidCredentials,
        '6111': InvalidCredentials,
        '9103': InvalidCredentials,
        '9106': InvalidCredentials,
        '9109': InvalidCredentials,
        '10000': InvalidCredentials,
        '10001': InvalidCredentials,
        '1000': InvalidCredentials,
        # 记录已存在
        '81053': RecordExists,
        '81057': RecordExists,
        '81058': RecordExists,
        # 记录不存在
        '81044': RecordNotFound,
        # Zone 不存在
        '1001': DomainNotFound,
        '7003': DomainNotFound,
        # 配额
        '81045': QuotaExceeded,
        # 参数错误
        '1004': InvalidParameter,
        '9005': InvalidParameter,
        '9021': InvalidParameter,
    }


class CloudflareProvider(DnsProvider):
    """Cloudflare DNS提供商"""

    provider_type = ProviderType.CLOUDFLARE
    error_mapper_class = CloudflareErrorMapper

    BASE_URL = 'https://api.cloudflare.com/client/v4'
    # zones 接口 per_page 最大为 50
    MAX_DOMAIN_PAGE_SIZE = 50
    MAX_RECORD_PAGE_SIZE = 100

    STATUS_MAP = {
        'active': DomainStatus.ACTIVE,
        'pending': DomainStatus.PENDING,
        'initializing': DomainStatus.PENDING,
        'moved': DomainStatus.PAUSED,
    }

    def __init__(self, credentials: CloudflareCredentials,
                 session: Optional[requests.Session] = None,
                 timeout: Optional[float] = None):
        super().__init__(credentials, session=session, timeout=timeout)
        self.signer = BearerTokenSigner(credentials.api_token)
        logger.debug("Cloudflare 提供商初始化完成")

    def _request(self, method: str, endpoint: str, context: ErrorContext = None,
                 params: Dict[str, Any] = None, body: Dict[str, Any] = None) -> Dict[str, Any]:
        """
        统一的API请求处理

        Args:
            method: HTTP方法
            endpoint: API端点
            context: 错误上下文
            params: 查询参数
            body: JSON请求体

        Returns:
            完整的响应信封 {success, result, errors, result_info}

        Raises:
            ProviderError: API调用失败
        """
        url = f"{self.BASE_URL}/{endpoint.lstrip('/')}"
        headers = {
            'Authorization': self.signer.sign(method, endpoint),
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        }
        if params:
            logger.debug(f"查询参数: {params}")
        if body is not None:
            logger.debug(f"请求体: {body}")

        response = self._send(method, url, headers=headers, params=params, json=body)
        data = self._decode_json(response)

        if not isinstance(data, dict) or 'success' not in data:
            raise self.error_mapper.parse_error("响应缺少 success 字段")

        if not data['success']:
            errors = data.get('errors') or []
            if errors:
                first = errors[0]
                code = first.get('code')
                raise self._api_error(str(code) if code is not None else None,
                                      first.get('message', '未知错误'), context)
            raise self._api_error(None, f"HTTP {response.status_code}: 未知错误", context)

        return data

    def _result(self, data: Dict[str, Any]) -> Any:
        if data.get('result') is None:
            raise self.error_mapper.parse_error("响应中缺少 result 字段")
        return data['result']

    def _zone_to_domain(self, zone: Dict[str, Any]) -> Domain:
        try:
            return Domain(
                id=zone['id'],
                name=zone['name'],
                provider=self.provider_type,
                status=self._map_status(zone.get('status')),
            )
        except (KeyError, TypeError) as e:
            raise self.error_mapper.parse_error(f"无法解析 zone: {e}") from e

    def _record_to_dns_record(self, record: Dict[str, Any], zone_id: str, zone_name: str) -> DnsRecord:
        try:
            record_type = self._parse_record_type(record['type'])
            return DnsRecord(
                id=record['id'],
                domain_id=zone_id,
                record_type=record_type,
                name=full_name_to_relative(record['name'], zone_name),
                value=record['content'],
                ttl=int(record['ttl']),
                priority=record.get('priority'),
                proxied=record.get('proxied'),
                created_at=record.get('created_on'),
                updated_at=record.get('modified_on'),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise self.error_mapper.parse_error(f"无法解析DNS记录: {e}") from e

    def _resolve_domain(self, domain_id: str) -> Domain:
        try:
            return self.get_domain(domain_id)
        except (InvalidCredentials, DomainNotFound):
            raise
        except ProviderError as e:
            logger.warning(f"[{self.id}] 查找域名 {domain_id} 失败: {str(e)}")
            raise DomainNotFound(self.id, domain_id) from e

    def _verify_credentials(self) -> bool:
        data = self._request('GET', '/user/tokens/verify')
        result = data.get('result') or {}
        return result.get('status') == 'active'

    def list_domains(self, params: PaginationParams) -> PaginatedResponse[Domain]:
        logger.info(f"正在从Cloudflare获取域名列表 (第{params.page}页)...")
        page_size = self._clamp_page_size(params.page_size, self.MAX_DOMAIN_PAGE_SIZE)
        data = self._request('GET', '/zones', params={'page': params.page, 'per_page': page_size})
        zones = data.get('result') or []
        total_count = (data.get('result_info') or {}).get('total_count') or 0
        domains = [self._zone_to_domain(z) for z in zones]
        logger.info(f"成功获取到 {len(domains)} 个域名")
        return PaginatedResponse.new(domains, params.page, page_size, total_count)

    def get_domain(self, domain_id: str) -> Domain:
        data = self._request('GET', f'/zones/{domain_id}', context=ErrorContext(domain=domain_id))
        return self._zone_to_domain(self._result(data))

    def list_records(self, domain_id: str, params: RecordQueryParams) -> PaginatedResponse[DnsRecord]:
        zone = self._resolve_domain(domain_id)

        page_size = self._clamp_page_size(params.page_size, self.MAX_RECORD_PAGE_SIZE)
        query: Dict[str, Any] = {'page': params.page, 'per_page': page_size}
        # 关键词只搜索记录名称
        keyword = params.search_keyword()
        if keyword:
            query['name.contains'] = keyword
        if params.record_type is not None:
            query['type'] = params.record_type.value

        data = self._request('GET', f'/zones/{domain_id}/dns_records', params=query,
                             context=ErrorContext(domain=zone.name))
        raw_records = data.get('result') or []
        total_count = (data.get('result_info') or {}).get('total_count') or 0

        records = self._decode_records(
            raw_records, lambda r: self._record_to_dns_record(r, domain_id, zone.name)
        )
        return PaginatedResponse.new(records, params.page, page_size, total_count)

    def _record_body(self, request: CreateDnsRecordRequest, zone_name: str) -> Dict[str, Any]:
        body = {
            'type': request.record_type.value,
            'name': relative_to_full_name(request.name, zone_name),
            'content': request.value,
            'ttl': request.ttl,
        }
        if request.priority is not None:
            body['priority'] = request.priority
        if request.proxied is not None:
            body['proxied'] = request.proxied
        return body

    def create_record(self, request: CreateDnsRecordRequest) -> DnsRecord:
        zone = self._resolve_domain(request.domain_id)
        logger.info(f"正在创建记录: {request.name} {request.record_type.value} -> {request.value}")

        data = self._request(
            'POST', f'/zones/{request.domain_id}/dns_records',
            body=self._record_body(request, zone.name),
            context=ErrorContext(record_name=request.name, domain=zone.name),
        )
        return self._record_to_dns_record(self._result(data), request.domain_id, zone.name)

    def update_record(self, record_id: str, request: UpdateDnsRecordRequest) -> DnsRecord:
        zone = self._resolve_domain(request.domain_id)
        logger.info(f"正在更新记录: {record_id}")

        data = self._request(
            'PATCH', f'/zones/{request.domain_id}/dns_records/{record_id}',
            body=self._record_body(request, zone.name),
            context=ErrorContext(record_name=request.name, record_id=record_id, domain=zone.name),
        )
        return self._record_to_dns_record(self._result(data), request.domain_id, zone.name)

    def delete_record(self, record_id: str, domain_id: str) -> None:
        logger.info(f"正在删除记录: {record_id}")
        self._request('DELETE', f'/zones/{domain_id}/dns_records/{record_id}',
                      context=ErrorContext(record_id=record_id, domain=domain_id))
