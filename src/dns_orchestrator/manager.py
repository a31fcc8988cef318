"""
DNS管理器

命令层：把配置中的账户注册到注册表，并将命令转发给对应账户的DNS提供商
"""

from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from .batch import batch_delete_records
from .config import AccountConfig, Config
from .errors import AccountNotFound, CredentialError, InvalidCredentials, ProviderNotFound
from .providers.base import DnsProvider
from .providers.factory import ProviderFactory
from .registry import ProviderRegistry
from .types import (
    BatchDeleteResult,
    CreateDnsRecordRequest,
    DnsRecord,
    DnsRecordType,
    Domain,
    PaginatedResponse,
    PaginationParams,
    ProviderMetadata,
    RecordQueryParams,
    UpdateDnsRecordRequest,
    credentials_from_map,
)
from .utils import retry_with_exponential_backoff


class DnsManager:
    """DNS管理器"""

    def __init__(self, config: Config, registry: Optional[ProviderRegistry] = None,
                 **transport_options):
        """
        初始化DNS管理器

        Args:
            config: 配置对象
            registry: 提供商注册表，为None时新建
            **transport_options: 传给提供商的传输选项（如测试用的 session）
        """
        self.config = config
        self.registry = registry if registry is not None else ProviderRegistry()
        self.transport_options = {'timeout': config.request_timeout}
        self.transport_options.update(transport_options)
        self._account_names: Dict[str, Optional[str]] = {}

        # 核心库从不重试，重试只在命令层按配置启用
        if config.max_retries > 0:
            self._retry = retry_with_exponential_backoff(
                max_attempts=config.max_retries + 1,
                min_wait=config.retry_delay,
                max_wait=max(config.retry_delay * 8, config.retry_delay),
            )
        else:
            self._retry = None

        self._register_configured_accounts()

    def _register_configured_accounts(self) -> None:
        for account in self.config.accounts:
            try:
                self._register(account)
            except (CredentialError, ProviderNotFound) as e:
                logger.warning(f"跳过账户 {account.id}: {str(e)}")
        logger.debug(f"已注册 {len(self.registry)} 个账户")

    def _create_provider(self, provider_name: str, credentials: Dict[str, str]) -> DnsProvider:
        if not ProviderFactory.is_provider_supported(provider_name):
            raise ProviderNotFound(provider_name)
        creds = credentials_from_map(provider_name, credentials)
        return ProviderFactory.create_provider(creds, **self.transport_options)

    def _register(self, account: AccountConfig) -> DnsProvider:
        provider = self._create_provider(account.provider, account.credentials)
        self.registry.register(account.id, provider)
        self._account_names[account.id] = account.name
        return provider

    def _call(self, func: Callable, *args) -> Any:
        if self._retry is None:
            return func(*args)
        return self._retry(func)(*args)

    def get_provider(self, account_id: str) -> DnsProvider:
        """
        获取账户对应的提供商实例

        Raises:
            AccountNotFound: 账户未注册
        """
        provider = self.registry.get(account_id)
        if provider is None:
            raise AccountNotFound(account_id)
        return provider

    # ============ 账户 ============

    def list_accounts(self) -> List[Dict[str, Any]]:
        accounts = []
        for account_id in self.registry.list_account_ids():
            provider = self.registry.get(account_id)
            if provider is None:
                continue
            accounts.append({
                'id': account_id,
                'name': self._account_names.get(account_id) or account_id,
                'provider': provider.id,
            })
        return accounts

    def add_account(self, account_id: str, provider_name: str, credentials: Dict[str, str],
                    name: Optional[str] = None, save: bool = True) -> Dict[str, Any]:
        """
        添加账户，先验证凭证再注册

        Args:
            account_id: 账户ID
            provider_name: 提供商名称
            credentials: 凭证字典
            name: 显示名称
            save: 是否写回配置文件

        Returns:
            账户信息

        Raises:
            InvalidCredentials: 凭证验证失败
            ProviderNotFound: 不支持的提供商
            CredentialError: 凭证缺少必需的键
        """
        provider = self._create_provider(provider_name, credentials)

        logger.info(f"正在验证账户 {account_id} 的凭证...")
        if not self._call(provider.validate_credentials):
            raise InvalidCredentials(provider.id)

        self.registry.register(account_id, provider)
        self._account_names[account_id] = name

        self.config.add_account(AccountConfig(
            id=account_id, provider=provider.id, credentials=dict(credentials), name=name,
        ))
        if save:
            self.config.save_config()

        logger.info(f"账户添加成功: {account_id} ({provider.id})")
        return {'id': account_id, 'name': name or account_id, 'provider': provider.id}

    def remove_account(self, account_id: str, save: bool = True) -> None:
        """
        删除账户

        Raises:
            AccountNotFound: 账户未注册
        """
        if self.registry.unregister(account_id) is None:
            raise AccountNotFound(account_id)
        self._account_names.pop(account_id, None)
        self.config.remove_account(account_id)
        if save:
            self.config.save_config()
        logger.info(f"账户已删除: {account_id}")

    def validate_account(self, account_id: str) -> bool:
        provider = self.get_provider(account_id)
        return self._call(provider.validate_credentials)

    def validate_all_accounts(self) -> Dict[str, bool]:
        """
        验证所有账户的凭证

        Returns:
            账户ID -> 是否有效
        """
        return {account_id: self.validate_account(account_id)
                for account_id in self.registry.list_account_ids()}

    def list_providers(self) -> List[ProviderMetadata]:
        return ProviderFactory.get_all_provider_metadata()

    # ============ 域名 ============

    def list_domains(self, account_id: str, page: int = 1, page_size: int = 20) -> PaginatedResponse[Domain]:
        provider = self.get_provider(account_id)
        return self._call(provider.list_domains, PaginationParams(page=page, page_size=page_size))

    def get_domain(self, account_id: str, domain_id: str) -> Domain:
        provider = self.get_provider(account_id)
        return self._call(provider.get_domain, domain_id)

    # ============ 记录 ============

    def list_records(self, account_id: str, domain_id: str, page: int = 1, page_size: int = 20,
                     keyword: Optional[str] = None,
                     record_type: Optional[str] = None) -> PaginatedResponse[DnsRecord]:
        provider = self.get_provider(account_id)
        params = RecordQueryParams(
            page=page,
            page_size=page_size,
            keyword=keyword,
            record_type=DnsRecordType.parse(record_type) if record_type else None,
        )
        return self._call(provider.list_records, domain_id, params)

    def create_record(self, account_id: str, request: CreateDnsRecordRequest) -> DnsRecord:
        provider = self.get_provider(account_id)
        return self._call(provider.create_record, request)

    def update_record(self, account_id: str, record_id: str, request: UpdateDnsRecordRequest) -> DnsRecord:
        provider = self.get_provider(account_id)
        return self._call(provider.update_record, record_id, request)

    def delete_record(self, account_id: str, domain_id: str, record_id: str) -> None:
        provider = self.get_provider(account_id)
        self._call(provider.delete_record, record_id, domain_id)

    def batch_delete_records(self, account_id: str, domain_id: str, record_ids: List[str]) -> BatchDeleteResult:
        provider = self.get_provider(account_id)
        return batch_delete_records(provider, domain_id, record_ids,
                                    max_workers=self.config.max_concurrent_threads)
