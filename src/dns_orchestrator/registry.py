"""
提供商注册表

账户ID -> DNS提供商实例 的线程安全映射。同一种提供商可以有多个账户，因此以账户ID为键
"""

import threading
from typing import Dict, List, Optional

from loguru import logger

from .providers.base import DnsProvider


class ProviderRegistry:
    """线程安全的提供商注册表"""

    def __init__(self):
        self._lock = threading.Lock()
        self._providers: Dict[str, DnsProvider] = {}

    def register(self, account_id: str, provider: DnsProvider) -> None:
        """
        注册提供商实例，已存在的账户会被整体替换

        Args:
            account_id: 账户ID
            provider: 提供商实例
        """
        with self._lock:
            self._providers[account_id] = provider
        logger.debug(f"注册账户: {account_id} ({provider.id})")

    def unregister(self, account_id: str) -> Optional[DnsProvider]:
        """注销账户，返回被移除的实例，账户不存在时返回 None"""
        with self._lock:
            provider = self._providers.pop(account_id, None)
        if provider is not None:
            logger.debug(f"注销账户: {account_id}")
        return provider

    def get(self, account_id: str) -> Optional[DnsProvider]:
        with self._lock:
            return self._providers.get(account_id)

    def list_account_ids(self) -> List[str]:
        with self._lock:
            return list(self._providers.keys())

    def __contains__(self, account_id: str) -> bool:
        with self._lock:
            return account_id in self._providers

    def __len__(self) -> int:
        with self._lock:
            return len(self._providers)
