"""
请求签名

每个后端一个签名器：根据请求方法、路径、查询串、请求头、请求体和时间戳生成 Authorization 头。
签名器只持有密钥，不读取时钟，时间戳和 nonce 由调用方每次请求重新生成。

- Cloudflare: Bearer Token
- 阿里云: ACS3-HMAC-SHA256
- 腾讯云 DNSPod: TC3-HMAC-SHA256
- 华为云: SDK-HMAC-SHA256
"""

import hashlib
import hmac
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import quote

from loguru import logger


# 空字符串的 SHA256，阿里云 RPC 风格请求体恒为空
EMPTY_BODY_SHA256 = 'e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855'


def sha256_hex(data) -> str:
    if isinstance(data, str):
        data = data.encode('utf-8')
    return hashlib.sha256(data).hexdigest()


def hmac_sha256(key: bytes, data) -> bytes:
    if isinstance(data, str):
        data = data.encode('utf-8')
    return hmac.new(key, data, hashlib.sha256).digest()


def percent_encode(value: str) -> str:
    """RFC3986 编码，只保留 A-Z a-z 0-9 - _ . ~"""
    return quote(str(value), safe='-_.~')


def flatten_params(params: Mapping[str, Any], prefix: str = '') -> Dict[str, str]:
    """
    将嵌套参数展平为 key-value 对

    嵌套字典使用点号连接键名，列表使用从1开始的下标，None 被丢弃

    Args:
        params: 参数字典
        prefix: 键名前缀

    Returns:
        展平后的字典
    """
    result: Dict[str, str] = {}

    def _flatten(key: str, value: Any):
        if value is None:
            return
        if isinstance(value, Mapping):
            for k, v in value.items():
                _flatten(f"{key}.{k}" if key else str(k), v)
        elif isinstance(value, (list, tuple)):
            for i, v in enumerate(value, start=1):
                _flatten(f"{key}.{i}", v)
        elif isinstance(value, bool):
            result[key] = 'true' if value else 'false'
        else:
            result[key] = str(value)

    _flatten(prefix, dict(params))
    return result


def canonical_query_string(params: Mapping[str, Any]) -> str:
    """展平、按键名字节序排序并编码为查询串"""
    flat = flatten_params(params)
    return '&'.join(
        f"{percent_encode(k)}={percent_encode(v)}" for k, v in sorted(flat.items())
    )


def _lower_headers(headers: Optional[Mapping[str, str]]) -> Dict[str, str]:
    return {k.lower(): str(v) for k, v in (headers or {}).items()}


class RequestSigner(ABC):
    """签名器基类"""

    algorithm = ''

    @abstractmethod
    def sign(self, method: str, path: str, query: str, headers: Mapping[str, str],
             body: str, timestamp: datetime) -> str:
        """
        计算 Authorization 头的值

        Args:
            method: HTTP 方法
            path: 请求路径
            query: 已编码的查询串
            headers: 参与签名的请求头
            body: 请求体
            timestamp: 请求时间（UTC）

        Returns:
            Authorization 头的值
        """

    def format_timestamp(self, timestamp: datetime) -> str:
        return timestamp.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')


class BearerTokenSigner(RequestSigner):
    """Cloudflare: 静态 Bearer Token，不需要规范请求"""

    algorithm = 'Bearer'

    def __init__(self, api_token: str):
        self._api_token = api_token

    def sign(self, method: str = 'GET', path: str = '/', query: str = '',
             headers: Mapping[str, str] = None, body: str = '',
             timestamp: datetime = None) -> str:
        return f"Bearer {self._api_token}"


class Acs3Signer(RequestSigner):
    """
    阿里云 ACS3-HMAC-SHA256 签名

    RPC 风格：所有参数都在查询串中，请求体为空，因此 x-acs-content-sha256 固定为空串哈希。
    签名直接以 AccessKey Secret 为密钥，没有密钥派生链。
    参考: https://www.alibabacloud.com/help/zh/sdk/product-overview/v3-request-structure-and-signature
    """

    algorithm = 'ACS3-HMAC-SHA256'
    HOST = 'alidns.cn-hangzhou.aliyuncs.com'
    VERSION = '2015-01-09'
    SIGNED_HEADERS = (
        'host',
        'x-acs-action',
        'x-acs-content-sha256',
        'x-acs-date',
        'x-acs-signature-nonce',
        'x-acs-version',
    )

    def __init__(self, access_key_id: str, access_key_secret: str):
        self._access_key_id = access_key_id
        self._access_key_secret = access_key_secret

    def build_headers(self, action: str, timestamp: datetime, nonce: str) -> Dict[str, str]:
        """构造参与签名的请求头（不含 Authorization）"""
        return {
            'host': self.HOST,
            'x-acs-action': action,
            'x-acs-content-sha256': EMPTY_BODY_SHA256,
            'x-acs-date': self.format_timestamp(timestamp),
            'x-acs-signature-nonce': nonce,
            'x-acs-version': self.VERSION,
        }

    def canonical_request(self, method: str, path: str, query: str,
                          headers: Mapping[str, str]) -> str:
        lowered = _lower_headers(headers)
        canonical_headers = ''.join(
            f"{name}:{lowered.get(name, '')}\n" for name in self.SIGNED_HEADERS
        )
        signed_headers = ';'.join(self.SIGNED_HEADERS)
        return (
            f"{method.upper()}\n{path or '/'}\n{query}\n"
            f"{canonical_headers}\n{signed_headers}\n{EMPTY_BODY_SHA256}"
        )

    def string_to_sign(self, canonical_request: str) -> str:
        return f"{self.algorithm}\n{sha256_hex(canonical_request)}"

    def sign(self, method: str, path: str, query: str, headers: Mapping[str, str],
             body: str = '', timestamp: datetime = None) -> str:
        canonical_request = self.canonical_request(method, path, query, headers)
        logger.debug(f"CanonicalRequest:\n{canonical_request}")

        string_to_sign = self.string_to_sign(canonical_request)
        logger.debug(f"StringToSign:\n{string_to_sign}")

        signature = hmac.new(
            self._access_key_secret.encode('utf-8'),
            string_to_sign.encode('utf-8'),
            hashlib.sha256,
        ).hexdigest()

        return (
            f"{self.algorithm} Credential={self._access_key_id},"
            f"SignedHeaders={';'.join(self.SIGNED_HEADERS)},Signature={signature}"
        )


class Tc3Signer(RequestSigner):
    """
    腾讯云 TC3-HMAC-SHA256 签名

    签名密钥通过 HMAC 链派生: "TC3"+SecretKey -> 日期 -> 服务名 -> "tc3_request"
    """

    algorithm = 'TC3-HMAC-SHA256'
    HOST = 'dnspod.tencentcloudapi.com'
    SERVICE = 'dnspod'
    VERSION = '2021-03-23'
    CONTENT_TYPE = 'application/json; charset=utf-8'
    SIGNED_HEADERS = 'content-type;host;x-tc-action'

    def __init__(self, secret_id: str, secret_key: str):
        self._secret_id = secret_id
        self._secret_key = secret_key

    def format_timestamp(self, timestamp: datetime) -> str:
        return str(int(timestamp.timestamp()))

    def credential_date(self, timestamp: datetime) -> str:
        return timestamp.astimezone(timezone.utc).strftime('%Y-%m-%d')

    def credential_scope(self, timestamp: datetime) -> str:
        return f"{self.credential_date(timestamp)}/{self.SERVICE}/tc3_request"

    def build_headers(self, action: str, timestamp: datetime) -> Dict[str, str]:
        return {
            'Content-Type': self.CONTENT_TYPE,
            'Host': self.HOST,
            'X-TC-Action': action,
            'X-TC-Version': self.VERSION,
            'X-TC-Timestamp': self.format_timestamp(timestamp),
        }

    def canonical_request(self, method: str, headers: Mapping[str, str], body: str) -> str:
        lowered = _lower_headers(headers)
        canonical_headers = (
            f"content-type:{lowered.get('content-type', self.CONTENT_TYPE)}\n"
            f"host:{lowered.get('host', self.HOST)}\n"
            f"x-tc-action:{lowered.get('x-tc-action', '').lower()}\n"
        )
        return (
            f"{method.upper()}\n/\n\n{canonical_headers}\n"
            f"{self.SIGNED_HEADERS}\n{sha256_hex(body or '')}"
        )

    def string_to_sign(self, canonical_request: str, timestamp: datetime) -> str:
        return (
            f"{self.algorithm}\n{self.format_timestamp(timestamp)}\n"
            f"{self.credential_scope(timestamp)}\n{sha256_hex(canonical_request)}"
        )

    def signing_key(self, timestamp: datetime) -> bytes:
        secret_date = hmac_sha256(f"TC3{self._secret_key}".encode('utf-8'), self.credential_date(timestamp))
        secret_service = hmac_sha256(secret_date, self.SERVICE)
        return hmac_sha256(secret_service, 'tc3_request')

    def sign(self, method: str, path: str, query: str, headers: Mapping[str, str],
             body: str, timestamp: datetime) -> str:
        canonical_request = self.canonical_request(method, headers, body)
        logger.debug(f"CanonicalRequest:\n{canonical_request}")

        string_to_sign = self.string_to_sign(canonical_request, timestamp)
        logger.debug(f"StringToSign:\n{string_to_sign}")

        signature = hmac.new(
            self.signing_key(timestamp), string_to_sign.encode('utf-8'), hashlib.sha256
        ).hexdigest()

        return (
            f"{self.algorithm} Credential={self._secret_id}/{self.credential_scope(timestamp)}, "
            f"SignedHeaders={self.SIGNED_HEADERS}, Signature={signature}"
        )


class SdkHmacSigner(RequestSigner):
    """
    华为云 SDK-HMAC-SHA256 签名（AK/SK）

    参考: https://support.huaweicloud.com/devg-apisign/api-sign-algorithm-005.html
    """

    algorithm = 'SDK-HMAC-SHA256'
    HOST = 'dns.myhuaweicloud.com'

    def __init__(self, access_key_id: str, secret_access_key: str):
        self._access_key_id = access_key_id
        self._secret_access_key = secret_access_key

    def format_timestamp(self, timestamp: datetime) -> str:
        return timestamp.astimezone(timezone.utc).strftime('%Y%m%dT%H%M%SZ')

    def build_headers(self, timestamp: datetime, with_body: bool = False) -> Dict[str, str]:
        headers = {
            'Host': self.HOST,
            'X-Sdk-Date': self.format_timestamp(timestamp),
        }
        if with_body:
            headers['Content-Type'] = 'application/json'
        return headers

    @staticmethod
    def canonical_uri(path: str) -> str:
        return path if path.endswith('/') else f"{path}/"

    @staticmethod
    def canonical_query(query: str) -> str:
        if not query:
            return ''
        return '&'.join(sorted(query.split('&')))

    @staticmethod
    def _sorted_headers(headers: Mapping[str, str]) -> List[Tuple[str, str]]:
        return sorted(((k.lower(), str(v).strip()) for k, v in headers.items()), key=lambda kv: kv[0])

    def signed_headers(self, headers: Mapping[str, str]) -> str:
        return ';'.join(name for name, _ in self._sorted_headers(headers))

    def canonical_request(self, method: str, path: str, query: str,
                          headers: Mapping[str, str], body: str) -> str:
        canonical_headers = ''.join(f"{name}:{value}\n" for name, value in self._sorted_headers(headers))
        return (
            f"{method.upper()}\n{self.canonical_uri(path)}\n{self.canonical_query(query)}\n"
            f"{canonical_headers}\n{self.signed_headers(headers)}\n{sha256_hex(body or '')}"
        )

    def string_to_sign(self, canonical_request: str, timestamp: datetime) -> str:
        return f"{self.algorithm}\n{self.format_timestamp(timestamp)}\n{sha256_hex(canonical_request)}"

    def sign(self, method: str, path: str, query: str, headers: Mapping[str, str],
             body: str, timestamp: datetime) -> str:
        canonical_request = self.canonical_request(method, path, query, headers, body)
        logger.debug(f"CanonicalRequest:\n{canonical_request}")

        string_to_sign = self.string_to_sign(canonical_request, timestamp)
        logger.debug(f"StringToSign:\n{string_to_sign}")

        signature = hmac.new(
            self._secret_access_key.encode('utf-8'), string_to_sign.encode('utf-8'), hashlib.sha256
        ).hexdigest()

        return (
            f"{self.algorithm} Access={self._access_key_id}, "
            f"SignedHeaders={self.signed_headers(headers)}, Signature={signature}"
        )
