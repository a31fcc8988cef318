"""
统一错误类型

各DNS提供商的原始错误都会映射到这里定义的错误类型，
调用方只需要处理这一套错误，不会看到后端特有的错误码（UnknownProviderError.raw_code 除外）
"""

from typing import Any, Dict, Optional


class DnsError(Exception):
    """DNS库错误基类"""


class ProviderError(DnsError):
    """DNS提供商错误"""

    code = 'ProviderError'

    def __init__(self, message: str, provider: str = None, error_code: str = None):
        """
        初始化错误

        Args:
            message: 错误消息
            provider: 提供商名称
            error_code: 错误代码
        """
        super().__init__(message)
        self.provider = provider
        self.error_code = error_code

    def __str__(self):
        error_parts = [self.args[0]]
        if self.provider:
            error_parts.append(f"Provider: {self.provider}")
        if self.error_code:
            error_parts.append(f"Code: {self.error_code}")
        return " | ".join(error_parts)

    def _fields(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        """序列化为 {"code": 错误类型, "provider": ..., ...字段}"""
        data = {'code': self.code, 'provider': self.provider}
        data.update(self._fields())
        return data


class NetworkError(ProviderError):
    """网络请求失败"""

    code = 'NetworkError'

    def __init__(self, provider: str, detail: str):
        super().__init__(f"网络错误: {detail}", provider=provider)
        self.detail = detail

    def _fields(self):
        return {'detail': self.detail}


class InvalidCredentials(ProviderError):
    """凭证无效"""

    code = 'InvalidCredentials'

    def __init__(self, provider: str, raw_message: Optional[str] = None):
        super().__init__("凭证无效", provider=provider)
        self.raw_message = raw_message

    def _fields(self):
        return {'raw_message': self.raw_message}


class RecordExists(ProviderError):
    """记录已存在"""

    code = 'RecordExists'

    def __init__(self, provider: str, record_name: str = '', raw_message: Optional[str] = None):
        super().__init__(f"记录 '{record_name}' 已存在", provider=provider)
        self.record_name = record_name
        self.raw_message = raw_message

    def _fields(self):
        return {'record_name': self.record_name, 'raw_message': self.raw_message}


class RecordNotFound(ProviderError):
    """记录不存在"""

    code = 'RecordNotFound'

    def __init__(self, provider: str, record_id: str = '', raw_message: Optional[str] = None):
        super().__init__(f"记录 '{record_id}' 不存在", provider=provider)
        self.record_id = record_id
        self.raw_message = raw_message

    def _fields(self):
        return {'record_id': self.record_id, 'raw_message': self.raw_message}


class InvalidParameter(ProviderError):
    """参数无效（TTL、记录值、记录类型等）"""

    code = 'InvalidParameter'

    def __init__(self, provider: str, param: str, detail: str):
        super().__init__(f"参数 '{param}' 无效: {detail}", provider=provider)
        self.param = param
        self.detail = detail

    def _fields(self):
        return {'param': self.param, 'detail': self.detail}


class QuotaExceeded(ProviderError):
    """配额超限"""

    code = 'QuotaExceeded'

    def __init__(self, provider: str, raw_message: Optional[str] = None):
        super().__init__("配额超限", provider=provider)
        self.raw_message = raw_message

    def _fields(self):
        return {'raw_message': self.raw_message}


class DomainNotFound(ProviderError):
    """域名不存在"""

    code = 'DomainNotFound'

    def __init__(self, provider: str, domain: str = ''):
        super().__init__(f"域名 '{domain}' 不存在", provider=provider)
        self.domain = domain

    def _fields(self):
        return {'domain': self.domain}


class ParseError(ProviderError):
    """响应解析失败"""

    code = 'ParseError'

    def __init__(self, provider: str, detail: str):
        super().__init__(f"响应解析失败: {detail}", provider=provider)
        self.detail = detail

    def _fields(self):
        return {'detail': self.detail}


class UnknownProviderError(ProviderError):
    """未知错误（兜底），保留后端原始错误码和消息"""

    code = 'Unknown'

    def __init__(self, provider: str, raw_message: str, raw_code: Optional[str] = None):
        super().__init__(raw_message, provider=provider, error_code=raw_code)
        self.raw_code = raw_code
        self.raw_message = raw_message

    def _fields(self):
        return {'raw_code': self.raw_code, 'raw_message': self.raw_message}


class ProviderNotFound(DnsError):
    """不支持的提供商"""

    def __init__(self, name: str):
        super().__init__(f"不支持的DNS提供商: {name}")
        self.name = name


class AccountNotFound(DnsError):
    """账户未注册"""

    def __init__(self, account_id: str):
        super().__init__(f"账户不存在: {account_id}")
        self.account_id = account_id


class CredentialError(DnsError):
    """凭证字典无法转换为凭证对象"""

    def __init__(self, message: str, provider: str = None, key: str = None):
        super().__init__(message)
        self.provider = provider
        self.key = key


class ConfigError(DnsError):
    """配置无效"""
