"""
配置管理模块

实现环境变量 + 配置文件混合配置方案
配置优先级：命令行参数 > 环境变量 > 配置文件 > 默认值
"""

import os
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from loguru import logger

from .errors import CredentialError
from .types import ProviderType, credentials_from_map
from .utils import mask_secret

# 快捷环境变量: 提供商 -> {凭证键: 环境变量名}
ENV_ACCOUNTS = {
    ProviderType.CLOUDFLARE: {
        'apiToken': 'CLOUDFLARE_API_TOKEN',
    },
    ProviderType.ALIYUN: {
        'accessKeyId': 'ALIYUN_ACCESS_KEY_ID',
        'accessKeySecret': 'ALIYUN_ACCESS_KEY_SECRET',
    },
    ProviderType.DNSPOD: {
        'secretId': 'DNSPOD_SECRET_ID',
        'secretKey': 'DNSPOD_SECRET_KEY',
    },
    ProviderType.HUAWEICLOUD: {
        'accessKeyId': 'HUAWEICLOUD_ACCESS_KEY_ID',
        'secretAccessKey': 'HUAWEICLOUD_SECRET_ACCESS_KEY',
    },
}

VALID_LOG_LEVELS = ['TRACE', 'DEBUG', 'INFO', 'SUCCESS', 'WARNING', 'ERROR', 'CRITICAL']


@dataclass
class AccountConfig:
    """账户配置"""

    id: str
    provider: str
    credentials: Dict[str, str] = field(default_factory=dict)
    name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AccountConfig':
        return cls(
            id=str(data.get('id') or ''),
            provider=str(data.get('provider') or ''),
            credentials=dict(data.get('credentials') or {}),
            name=data.get('name'),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {'id': self.id, 'provider': self.provider, 'credentials': dict(self.credentials)}
        if self.name:
            data['name'] = self.name
        return data

    def masked(self) -> Dict[str, Any]:
        data = self.to_dict()
        data['credentials'] = {k: mask_secret(v) for k, v in self.credentials.items()}
        return data


class Config:
    """配置管理器"""

    def __init__(self, config_file: Optional[str] = None):
        """
        初始化配置管理器

        Args:
            config_file: 配置文件路径，如果为None则使用默认路径
        """
        self.config_file = config_file or str(Path() / 'config.json')
        self.config_dir = Path(self.config_file).parent

        # 加载.env文件
        load_dotenv()

        # 初始化配置属性
        self._init_config_properties()

        # 加载配置
        self.load_config()

    def _init_config_properties(self):
        """初始化配置属性"""
        # 日志配置
        self.log_level: str = "INFO"
        self.log_file: Optional[str] = None

        # 请求超时（秒）
        self.request_timeout: float = 30

        # 调用方重试配置，0 表示不重试
        self.max_retries: int = 0
        self.retry_delay: int = 2

        # 批量操作的最大并发线程数
        self.max_concurrent_threads: int = 5

        # 账户列表（配置文件 + 快捷环境变量）
        self.accounts: List[AccountConfig] = []
        # 仅来自配置文件的账户，保存时只写回这些
        self.file_accounts: List[AccountConfig] = []

        self.verbose: bool = False

    def load_config(self) -> None:
        """加载配置，按优先级顺序：环境变量 > 配置文件 > 默认值"""
        # 先从配置文件加载
        file_config = self._load_from_file()

        # 日志配置
        self.log_level = (
            os.getenv('LOG_LEVEL') or
            file_config.get('log_level') or
            self.log_level
        )
        self.log_file = (
            os.getenv('LOG_FILE') or
            file_config.get('log_file')
        )

        self.request_timeout = self._number_setting(
            'REQUEST_TIMEOUT', file_config.get('request_timeout'), self.request_timeout, float)
        self.max_retries = self._number_setting(
            'MAX_RETRIES', file_config.get('max_retries'), self.max_retries, int)
        self.retry_delay = self._number_setting(
            'RETRY_DELAY', file_config.get('retry_delay'), self.retry_delay, int)
        self.max_concurrent_threads = self._number_setting(
            'MAX_CONCURRENT_THREADS', file_config.get('max_concurrent_threads'), self.max_concurrent_threads, int)

        # 账户配置
        self.file_accounts = [
            AccountConfig.from_dict(item) for item in file_config.get('accounts') or []
            if isinstance(item, dict)
        ]
        accounts: Dict[str, AccountConfig] = {}
        for account in self.file_accounts:
            accounts.setdefault(account.id, account)
        # 快捷环境变量创建的账户以提供商名称为ID，覆盖配置文件中同ID的账户
        for account in self._load_env_accounts():
            accounts[account.id] = account
        self.accounts = list(accounts.values())

        logger.debug("配置加载完成")

    @staticmethod
    def _number_setting(env_name: str, file_value: Any, default, cast):
        raw = os.getenv(env_name)
        if raw is None or raw == '':
            raw = file_value
        if raw is None or raw == '':
            return default
        try:
            return cast(raw)
        except (TypeError, ValueError):
            logger.warning(f"无效的{env_name}值，使用默认值")
            return default

    def _load_env_accounts(self) -> List[AccountConfig]:
        accounts = []
        for provider_type, keys in ENV_ACCOUNTS.items():
            values = {key: os.getenv(env_name) for key, env_name in keys.items()}
            if not any(values.values()):
                continue
            if not all(values.values()):
                missing = [keys[k] for k, v in values.items() if not v]
                logger.warning(f"{provider_type.value} 环境变量不完整，缺少: {', '.join(missing)}")
                continue
            accounts.append(AccountConfig(
                id=provider_type.value,
                provider=provider_type.value,
                credentials=values,
                name=f"{provider_type.value} (环境变量)",
            ))
            logger.debug(f"从环境变量加载账户: {provider_type.value}")
        return accounts

    def _load_from_file(self) -> Dict[str, Any]:
        """从配置文件加载配置"""
        if not os.path.exists(self.config_file):
            logger.debug(f"配置文件不存在: {self.config_file}")
            return {}

        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = json.load(f)
                logger.debug(f"从配置文件加载配置: {self.config_file}")
                return config if isinstance(config, dict) else {}
        except (json.JSONDecodeError, IOError) as e:
            logger.error(f"加载配置文件失败: {e}")
            return {}

    def get_account(self, account_id: str) -> Optional[AccountConfig]:
        for account in self.accounts:
            if account.id == account_id:
                return account
        return None

    def add_account(self, account: AccountConfig) -> None:
        """添加或替换配置文件中的账户"""
        self.file_accounts = [a for a in self.file_accounts if a.id != account.id] + [account]
        self.accounts = [a for a in self.accounts if a.id != account.id] + [account]

    def remove_account(self, account_id: str) -> bool:
        before = len(self.accounts)
        self.file_accounts = [a for a in self.file_accounts if a.id != account_id]
        self.accounts = [a for a in self.accounts if a.id != account_id]
        return len(self.accounts) < before

    def save_config(self) -> None:
        """保存配置到文件"""
        # 确保配置目录存在
        self.config_dir.mkdir(parents=True, exist_ok=True)

        config_data = {
            'log_level': self.log_level,
            'log_file': self.log_file,
            'request_timeout': self.request_timeout,
            'max_retries': self.max_retries,
            'retry_delay': self.retry_delay,
            'max_concurrent_threads': self.max_concurrent_threads,
            'accounts': [a.to_dict() for a in self.file_accounts],
        }

        # 移除None值
        config_data = {k: v for k, v in config_data.items() if v is not None}

        try:
            with open(self.config_file, 'w', encoding='utf-8') as f:
                json.dump(config_data, f, indent=2, ensure_ascii=False)
                logger.info(f"配置已保存到: {self.config_file}")
        except IOError as e:
            logger.error(f"保存配置文件失败: {e}")

    def validate_config(self) -> List[str]:
        """
        验证配置的完整性

        Returns:
            错误信息列表，如果为空则表示配置有效
        """
        errors = []

        # 检查日志级别
        if str(self.log_level).upper() not in VALID_LOG_LEVELS:
            errors.append(f"无效的日志级别: {self.log_level}")

        if self.request_timeout is not None and self.request_timeout <= 0:
            errors.append("request_timeout必须大于0")

        # 检查重试配置
        if self.max_retries < 0:
            errors.append("max_retries不能为负数")

        if self.retry_delay < 0:
            errors.append("retry_delay不能为负数")

        # 检查多线程配置
        if self.max_concurrent_threads < 1:
            errors.append("max_concurrent_threads必须大于0")

        # 检查账户配置
        seen = set()
        for account in self.accounts:
            if not account.id:
                errors.append("账户缺少id")
                continue
            if account.id in seen:
                errors.append(f"重复的账户ID: {account.id}")
            seen.add(account.id)

            try:
                provider_type = ProviderType.parse(account.provider)
            except ValueError:
                errors.append(f"账户 {account.id}: 不支持的DNS提供商 {account.provider}")
                continue
            try:
                credentials_from_map(provider_type, account.credentials)
            except CredentialError as e:
                errors.append(f"账户 {account.id}: {e}")

        return errors

    def is_valid(self) -> bool:
        """检查配置是否有效"""
        return len(self.validate_config()) == 0

    def get_config_summary(self) -> Dict[str, Any]:
        """获取配置摘要（隐藏敏感信息）"""
        return {
            'log_level': self.log_level,
            'log_file': self.log_file,
            'request_timeout': self.request_timeout,
            'max_retries': self.max_retries,
            'retry_delay': self.retry_delay,
            'max_concurrent_threads': self.max_concurrent_threads,
            'accounts': [a.masked() for a in self.accounts],
            'config_file': self.config_file,
        }

    def update_from_dict(self, config_dict: Dict[str, Any]) -> None:
        """从字典更新配置（命令行参数），None 值被忽略"""
        for key, value in config_dict.items():
            if value is not None and hasattr(self, key):
                setattr(self, key, value)
                logger.debug(f"更新配置: {key} = {value}")
