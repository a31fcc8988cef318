"""
华为云 DNS提供商

REST 风格 API，使用 SDK-HMAC-SHA256（AK/SK）签名。
记录集名称是带末尾点的完整域名，MX 记录的优先级写在记录值中
"""

import json
from typing import Any, Dict, Optional

import requests
from loguru import logger

from ..errors import DomainNotFound, InvalidCredentials, RecordExists, RecordNotFound
from ..signers import SdkHmacSigner, canonical_query_string
from ..types import (
    CreateDnsRecordRequest,
    DnsRecord,
    DnsRecordType,
    Domain,
    DomainStatus,
    HuaweicloudCredentials,
    PaginatedResponse,
    PaginationParams,
    ProviderType,
    RecordQueryParams,
    UpdateDnsRecordRequest,
)
from ..utils import (
    full_name_to_relative,
    normalize_domain_name,
    relative_to_full_name,
    utc_now,
    utc_now_rfc3339,
)
from .base import DnsProvider, ErrorContext, ProviderErrorMapper

DEFAULT_TTL = 300
DEFAULT_MX_PRIORITY = 10


class HuaweicloudErrorMapper(ProviderErrorMapper):
    """华为云错误码映射"""

    provider_name = 'huaweicloud'
    ERROR_CODES = {
        # 认证错误
        'APIGW.0301': InvalidCredentials,
        'APIGW.0101': InvalidCredentials,
        # 记录已存在
        'DNS.0312': RecordExists,
        # 记录不存在
        'DNS.0305': RecordNotFound,
        # 域名不存在
        'DNS.0101': DomainNotFound,
    }


class HuaweicloudProvider(DnsProvider):
    """华为云 DNS提供商"""

    provider_type = ProviderType.HUAWEICLOUD
    error_mapper_class = HuaweicloudErrorMapper

    MAX_DOMAIN_PAGE_SIZE = 500
    MAX_RECORD_PAGE_SIZE = 500

    STATUS_MAP = {
        'ACTIVE': DomainStatus.ACTIVE,
        'FREEZE': DomainStatus.PAUSED,
        'ILLEGAL': DomainStatus.PAUSED,
        'POLICE': DomainStatus.PAUSED,
        'DISABLE': DomainStatus.PAUSED,
        'ERROR': DomainStatus.ERROR,
    }

    def __init__(self, credentials: HuaweicloudCredentials,
                 session: Optional[requests.Session] = None,
                 timeout: Optional[float] = None):
        super().__init__(credentials, session=session, timeout=timeout)
        self.signer = SdkHmacSigner(credentials.access_key_id, credentials.secret_access_key)
        logger.debug("华为云 DNS 提供商初始化完成")

    def _request(self, method: str, path: str, params: Dict[str, Any] = None,
                 body: Dict[str, Any] = None, context: ErrorContext = None) -> Dict[str, Any]:
        """
        执行华为云 API 请求

        Args:
            method: HTTP方法
            path: 请求路径，如 /v2/zones
            params: 查询参数
            body: JSON请求体（POST/PUT）
            context: 错误上下文

        Returns:
            响应JSON，DELETE 等无响应体时返回空字典

        Raises:
            ProviderError: API调用失败
        """
        # 签名使用的查询串必须与实际发送的完全一致，这里手动拼接 URL
        query = canonical_query_string(params or {})
        payload = json.dumps(body, separators=(',', ':')) if body is not None else ''
        timestamp = utc_now()

        headers = self.signer.build_headers(timestamp, with_body=method.upper() in ('POST', 'PUT'))
        headers['Authorization'] = self.signer.sign(method, path, query, headers, payload, timestamp)

        url = f"https://{self.signer.HOST}{path}"
        if query:
            url = f"{url}?{query}"
        if payload:
            logger.debug(f"请求体: {payload}")

        response = self._send(method, url, headers=headers,
                              data=payload.encode('utf-8') if payload else None)

        if not response.ok:
            try:
                error = response.json()
            except ValueError:
                error = None
            if isinstance(error, dict) and ('error_code' in error or 'error_msg' in error):
                raise self._api_error(error.get('error_code'), error.get('error_msg') or '', context)
            raise self._api_error(None, f"HTTP {response.status_code}: {response.text}", context)

        if not response.content:
            return {}
        data = self._decode_json(response)
        if not isinstance(data, dict):
            raise self.error_mapper.parse_error("响应不是JSON对象")
        return data

    def _map_status(self, status: Optional[str]) -> DomainStatus:
        if status and status.upper().startswith('PENDING'):
            return DomainStatus.PENDING
        return super()._map_status(status.upper() if status else status)

    def _domain_matches(self, domain: Domain, domain_id: str) -> bool:
        return domain.id == domain_id or domain.name == domain_id

    def _verify_credentials(self) -> bool:
        self._request('GET', '/v2/zones', params={'type': 'public', 'limit': 1})
        return True

    def list_domains(self, params: PaginationParams) -> PaginatedResponse[Domain]:
        logger.info(f"正在从华为云获取域名列表 (第{params.page}页)...")
        offset, limit = self._offset_limit(params, self.MAX_DOMAIN_PAGE_SIZE)
        data = self._request('GET', '/v2/zones', params={'type': 'public', 'offset': offset, 'limit': limit})

        domains = []
        try:
            for zone in data.get('zones') or []:
                domains.append(Domain(
                    id=zone['id'],
                    name=normalize_domain_name(zone['name']),
                    provider=self.provider_type,
                    status=self._map_status(zone.get('status')),
                    record_count=zone.get('record_num'),
                ))
        except (KeyError, TypeError) as e:
            raise self.error_mapper.parse_error(f"无法解析域名列表: {e}") from e

        total_count = (data.get('metadata') or {}).get('total_count') or 0
        logger.info(f"成功获取到 {len(domains)} 个域名")
        return PaginatedResponse.new(domains, params.page, limit, total_count)

    def get_domain(self, domain_id: str) -> Domain:
        return self._resolve_domain(domain_id)

    def _decode_recordset(self, item: Dict[str, Any], domain: Domain) -> Optional[DnsRecord]:
        if item.get('type') == 'SOA':
            return None
        record_type = self._parse_record_type(item.get('type', ''))

        values = item.get('records') or []
        if not values:
            return None
        value = values[0]

        # MX 记录值格式为 "优先级 主机"
        priority = None
        if record_type == DnsRecordType.MX:
            parts = value.split(' ', 1)
            if len(parts) == 2:
                try:
                    priority = int(parts[0])
                    value = parts[1]
                except ValueError:
                    priority = None

        try:
            return DnsRecord(
                id=item['id'],
                domain_id=domain.id,
                record_type=record_type,
                name=full_name_to_relative(item['name'], domain.name),
                value=value,
                ttl=int(item.get('ttl') or DEFAULT_TTL),
                priority=priority,
                proxied=None,
                created_at=item.get('created_at'),
                updated_at=item.get('updated_at'),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise self.error_mapper.parse_error(f"无法解析记录集: {e}") from e

    def list_records(self, domain_id: str, params: RecordQueryParams) -> PaginatedResponse[DnsRecord]:
        domain = self._resolve_domain(domain_id)
        offset, limit = self._offset_limit(params, self.MAX_RECORD_PAGE_SIZE)

        data = self._request('GET', f'/v2/zones/{domain.id}/recordsets', params={
            'offset': offset,
            'limit': limit,
            'name': params.search_keyword(),
            'type': params.record_type.value if params.record_type else None,
        }, context=ErrorContext(domain=domain.name))

        total_count = (data.get('metadata') or {}).get('total_count') or 0
        records = self._decode_records(
            data.get('recordsets') or [], lambda r: self._decode_recordset(r, domain)
        )
        return PaginatedResponse.new(records, params.page, limit, total_count)

    def _recordset_body(self, request: CreateDnsRecordRequest, zone_name: str) -> Dict[str, Any]:
        value = request.value
        if request.record_type == DnsRecordType.MX:
            priority = request.priority if request.priority is not None else DEFAULT_MX_PRIORITY
            value = f"{priority} {request.value}"
        return {
            'name': f"{relative_to_full_name(request.name, zone_name)}.",
            'type': request.record_type.value,
            'records': [value],
            'ttl': request.ttl,
        }

    def create_record(self, request: CreateDnsRecordRequest) -> DnsRecord:
        domain = self._resolve_domain(request.domain_id)
        logger.info(f"正在创建记录: {request.name}.{domain.name} {request.record_type.value} -> {request.value}")

        data = self._request('POST', f'/v2/zones/{domain.id}/recordsets',
                             body=self._recordset_body(request, domain.name),
                             context=ErrorContext(record_name=request.name, domain=domain.name))
        if not data.get('id'):
            raise self.error_mapper.parse_error("响应中缺少 id")

        now = utc_now_rfc3339()
        return DnsRecord(
            id=data['id'],
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
        domain = self._resolve_domain(request.domain_id)
        logger.info(f"正在更新记录: {record_id}")

        self._request('PUT', f'/v2/zones/{domain.id}/recordsets/{record_id}',
                      body=self._recordset_body(request, domain.name),
                      context=ErrorContext(record_name=request.name, record_id=record_id, domain=domain.name))

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
        self._request('DELETE', f'/v2/zones/{domain_id}/recordsets/{record_id}',
                      context=ErrorContext(record_id=record_id, domain=domain_id))
