"""
腾讯云 DNSPod提供商

腾讯云 API 3.0：JSON 请求体 + TC3-HMAC-SHA256 签名，响应包装在 {"Response": {...}} 中
"""

import json
from typing import Any, Dict, Optional

import requests
from loguru import logger

from ..errors import (
    DomainNotFound,
    InvalidCredentials,
    InvalidParameter,
    QuotaExceeded,
    RecordExists,
    RecordNotFound,
    UnknownProviderError,
)
from ..signers import Tc3Signer
from ..types import (
    CreateDnsRecordRequest,
    DnspodCredentials,
    DnsRecord,
    Domain,
    DomainStatus,
    PaginatedResponse,
    PaginationParams,
    ProviderType,
    RecordQueryParams,
    UpdateDnsRecordRequest,
)
from ..utils import utc_now, utc_now_rfc3339
from .base import DnsProvider, ErrorContext, ProviderErrorMapper

# 记录列表为空时 DNSPod 返回该错误码而不是空数组
NO_DATA_OF_RECORD = 'ResourceNotFound.NoDataOfRecord'
# 账号下没有域名时同理
NO_DATA_OF_DOMAIN = 'ResourceNotFound.NoDataOfDomain'

# 默认解析线路
DEFAULT_RECORD_LINE = '默认'


class DnspodErrorMapper(ProviderErrorMapper):
    """DNSPod 错误码映射，错误码是层级结构，支持按前缀匹配"""

    provider_name = 'dnspod'
    ERROR_CODES = {
        # 认证错误
        'AuthFailure': InvalidCredentials,
        'AuthFailure.SecretIdNotFound': InvalidCredentials,
        'AuthFailure.SignatureFailure': InvalidCredentials,
        'AuthFailure.SignatureExpire': InvalidCredentials,
        'AuthFailure.InvalidSecretId': InvalidCredentials,
        # 记录已存在
        'ResourceInUse.RecordExist': RecordExists,
        # 记录不存在
        'ResourceNotFound.RecordNotExist': RecordNotFound,
        # 域名不存在
        NO_DATA_OF_DOMAIN: DomainNotFound,
    }
    PREFIX_RULES = [
        ('LimitExceeded.', QuotaExceeded),
        ('InvalidParameter.', InvalidParameter),
        ('InvalidParameterValue.', InvalidParameter),
    ]


class DnspodProvider(DnsProvider):
    """腾讯云 DNSPod提供商"""

    provider_type = ProviderType.DNSPOD
    error_mapper_class = DnspodErrorMapper

    MAX_DOMAIN_PAGE_SIZE = 100
    MAX_RECORD_PAGE_SIZE = 100

    STATUS_MAP = {
        'ENABLE': DomainStatus.ACTIVE,
        'PAUSE': DomainStatus.PAUSED,
        'SPAM': DomainStatus.ERROR,
    }

    def __init__(self, credentials: DnspodCredentials,
                 session: Optional[requests.Session] = None,
                 timeout: Optional[float] = None):
        super().__init__(credentials, session=session, timeout=timeout)
        self.signer = Tc3Signer(credentials.secret_id, credentials.secret_key)
        logger.debug("腾讯云 DNSPod 提供商初始化完成")

    def _request(self, action: str, body: Dict[str, Any], context: ErrorContext = None) -> Dict[str, Any]:
        """
        执行腾讯云 API 请求

        Args:
            action: API 名称，如 DescribeRecordList
            body: 请求参数（JSON请求体）
            context: 错误上下文

        Returns:
            Response 字段内容

        Raises:
            ProviderError: API调用失败
        """
        payload = json.dumps({k: v for k, v in body.items() if v is not None},
                             ensure_ascii=False, separators=(',', ':'))
        timestamp = utc_now()

        headers = self.signer.build_headers(action, timestamp)
        headers['Authorization'] = self.signer.sign('POST', '/', '', headers, payload, timestamp)

        logger.debug(f"Action: {action}, 请求体: {payload}")
        response = self._send('POST', f"https://{self.signer.HOST}/", headers=headers,
                              data=payload.encode('utf-8'))
        data = self._decode_json(response)

        if not isinstance(data, dict) or not isinstance(data.get('Response'), dict):
            raise self.error_mapper.parse_error("响应缺少 Response 字段")

        result = data['Response']
        error = result.get('Error')
        if error:
            raise self._api_error(error.get('Code'), error.get('Message', '未知错误'), context)

        return result

    def _map_status(self, status: Optional[str]) -> DomainStatus:
        return super()._map_status(status.upper() if status else status)

    @staticmethod
    def _record_id_to_int(record_id: str, provider: str) -> int:
        try:
            return int(record_id)
        except (TypeError, ValueError):
            raise RecordNotFound(provider, str(record_id), "记录ID必须是数字")

    def _verify_credentials(self) -> bool:
        try:
            self._request('DescribeDomainList', {'Offset': 0, 'Limit': 1})
        except DomainNotFound:
            logger.debug("账号下没有域名")
        return True

    def list_domains(self, params: PaginationParams) -> PaginatedResponse[Domain]:
        logger.info(f"正在从DNSPod获取域名列表 (第{params.page}页)...")
        offset, limit = self._offset_limit(params, self.MAX_DOMAIN_PAGE_SIZE)
        try:
            data = self._request('DescribeDomainList', {'Offset': offset, 'Limit': limit})
        except DomainNotFound:
            logger.info("DNSPod 账号下没有域名")
            return PaginatedResponse.empty(params.page, limit)

        domains = []
        try:
            for item in data.get('DomainList') or []:
                domains.append(Domain(
                    id=str(item['DomainId']),
                    name=item['Name'],
                    provider=self.provider_type,
                    status=self._map_status(item.get('Status')),
                    record_count=item.get('RecordCount'),
                ))
        except (KeyError, TypeError) as e:
            raise self.error_mapper.parse_error(f"无法解析域名列表: {e}") from e

        total_count = (data.get('DomainCountInfo') or {}).get('AllTotal') or 0
        logger.info(f"成功获取到 {len(domains)} 个域名")
        return PaginatedResponse.new(domains, params.page, limit, total_count)

    def get_domain(self, domain_id: str) -> Domain:
        return self._resolve_domain(domain_id)

    def _decode_record(self, item: Dict[str, Any], domain_id: str) -> DnsRecord:
        record_type = self._parse_record_type(item.get('Type', ''))
        try:
            return DnsRecord(
                id=str(item['RecordId']),
                domain_id=domain_id,
                record_type=record_type,
                name=item['Name'],
                value=item['Value'],
                ttl=int(item['TTL']),
                priority=item.get('MX') or None,
                proxied=None,
                updated_at=item.get('UpdatedOn'),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise self.error_mapper.parse_error(f"无法解析DNS记录: {e}") from e

    def list_records(self, domain_id: str, params: RecordQueryParams) -> PaginatedResponse[DnsRecord]:
        domain = self._resolve_domain(domain_id)
        offset, limit = self._offset_limit(params, self.MAX_RECORD_PAGE_SIZE)

        try:
            data = self._request('DescribeRecordList', {
                'Domain': domain.name,
                'Offset': offset,
                'Limit': limit,
                'Keyword': params.search_keyword(),
                'RecordType': params.record_type.value if params.record_type else None,
            }, context=ErrorContext(domain=domain.name))
        except UnknownProviderError as e:
            if e.raw_code == NO_DATA_OF_RECORD:
                logger.debug(f"域名 {domain.name} 没有匹配的记录")
                return PaginatedResponse.empty(params.page, limit)
            raise

        raw_records = data.get('RecordList') or []
        total_count = (data.get('RecordCountInfo') or {}).get('TotalCount') or 0
        records = self._decode_records(raw_records, lambda r: self._decode_record(r, domain_id))
        return PaginatedResponse.new(records, params.page, limit, total_count)

    def _record_body(self, domain_name: str, request: CreateDnsRecordRequest) -> Dict[str, Any]:
        return {
            'Domain': domain_name,
            'SubDomain': request.name,
            'RecordType': request.record_type.value,
            'RecordLine': DEFAULT_RECORD_LINE,
            'Value': request.value,
            'TTL': request.ttl,
            'MX': request.priority,
        }

    def create_record(self, request: CreateDnsRecordRequest) -> DnsRecord:
        domain = self._resolve_domain(request.domain_id)
        logger.info(f"正在创建记录: {request.name}.{domain.name} {request.record_type.value} -> {request.value}")

        data = self._request('CreateRecord', self._record_body(domain.name, request),
                             context=ErrorContext(record_name=request.name, domain=domain.name))
        if data.get('RecordId') is None:
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
        record_id_num = self._record_id_to_int(record_id, self.id)
        domain = self._resolve_domain(request.domain_id)
        logger.info(f"正在更新记录: {record_id}")

        body = self._record_body(domain.name, request)
        body['RecordId'] = record_id_num
        self._request('ModifyRecord', body,
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
        record_id_num = self._record_id_to_int(record_id, self.id)
        domain = self._resolve_domain(domain_id)
        logger.info(f"正在删除记录: {record_id}")

        self._request('DeleteRecord', {'Domain': domain.name, 'RecordId': record_id_num},
                      context=ErrorContext(record_id=record_id, domain=domain.name))
