"""
DNS提供商工厂

使用工厂模式根据凭证类型创建不同的DNS提供商实例
"""

from typing import Dict, List, Type

from loguru import logger

from ..errors import ProviderNotFound
from ..types import (
    FieldType,
    ProviderCredentialField,
    ProviderCredentials,
    ProviderFeatures,
    ProviderMetadata,
    ProviderType,
    credentials_from_map,
)
from .aliyun import AliyunProvider
from .base import DnsProvider
from .cloudflare import CloudflareProvider
from .dnspod import DnspodProvider
from .huaweicloud import HuaweicloudProvider


class ProviderFactory:
    """DNS提供商工厂类"""

    # 注册的提供商类
    _providers: Dict[ProviderType, Type[DnsProvider]] = {
        ProviderType.CLOUDFLARE: CloudflareProvider,
        ProviderType.ALIYUN: AliyunProvider,
        ProviderType.DNSPOD: DnspodProvider,
        ProviderType.HUAWEICLOUD: HuaweicloudProvider,
    }

    _metadata: Dict[ProviderType, ProviderMetadata] = {
        ProviderType.CLOUDFLARE: ProviderMetadata(
            id=ProviderType.CLOUDFLARE,
            name='Cloudflare',
            description='全球领先的 CDN 和 DNS 服务商',
            required_fields=[
                ProviderCredentialField(
                    key='apiToken',
                    label='API Token',
                    field_type=FieldType.PASSWORD,
                    placeholder='输入 Cloudflare API Token',
                    help_text='在 Cloudflare Dashboard -> My Profile -> API Tokens 创建',
                ),
            ],
            features=ProviderFeatures(proxy=True),
        ),
        ProviderType.ALIYUN: ProviderMetadata(
            id=ProviderType.ALIYUN,
            name='阿里云 DNS',
            description='阿里云域名解析服务',
            required_fields=[
                ProviderCredentialField(
                    key='accessKeyId',
                    label='AccessKey ID',
                    field_type=FieldType.TEXT,
                    placeholder='输入 AccessKey ID',
                ),
                ProviderCredentialField(
                    key='accessKeySecret',
                    label='AccessKey Secret',
                    field_type=FieldType.PASSWORD,
                    placeholder='输入 AccessKey Secret',
                ),
            ],
        ),
        ProviderType.DNSPOD: ProviderMetadata(
            id=ProviderType.DNSPOD,
            name='腾讯云 DNSPod',
            description='腾讯云 DNS 解析服务',
            required_fields=[
                ProviderCredentialField(
                    key='secretId',
                    label='SecretId',
                    field_type=FieldType.TEXT,
                    placeholder='输入 SecretId',
                ),
                ProviderCredentialField(
                    key='secretKey',
                    label='SecretKey',
                    field_type=FieldType.PASSWORD,
                    placeholder='输入 SecretKey',
                ),
            ],
        ),
        ProviderType.HUAWEICLOUD: ProviderMetadata(
            id=ProviderType.HUAWEICLOUD,
            name='华为云 DNS',
            description='华为云云解析服务',
            required_fields=[
                ProviderCredentialField(
                    key='accessKeyId',
                    label='Access Key ID',
                    field_type=FieldType.TEXT,
                    placeholder='输入 Access Key ID',
                ),
                ProviderCredentialField(
                    key='secretAccessKey',
                    label='Secret Access Key',
                    field_type=FieldType.PASSWORD,
                    placeholder='输入 Secret Access Key',
                ),
            ],
        ),
    }

    @classmethod
    def create_provider(cls, credentials: ProviderCredentials, **transport_options) -> DnsProvider:
        """
        根据凭证创建DNS提供商实例

        Args:
            credentials: 凭证对象，其类型决定创建哪个提供商
            **transport_options: 传给提供商的传输选项（session、timeout）

        Returns:
            DNS提供商实例

        Raises:
            ProviderNotFound: 凭证类型没有对应的提供商
        """
        provider_type = getattr(credentials, 'PROVIDER', None)
        provider_class = cls._providers.get(provider_type)
        if provider_class is None:
            raise ProviderNotFound(str(provider_type))

        logger.debug(f"正在创建 {provider_type.value} 提供商实例...")
        return provider_class(credentials, **transport_options)

    @classmethod
    def create_from_map(cls, provider_name: str, credentials: Dict[str, str], **transport_options) -> DnsProvider:
        """
        根据提供商名称和凭证字典创建实例

        Raises:
            ProviderNotFound: 不支持的提供商
            CredentialError: 凭证字典缺少必需的键
        """
        if not cls.is_provider_supported(provider_name):
            raise ProviderNotFound(provider_name)
        return cls.create_provider(credentials_from_map(provider_name, credentials), **transport_options)

    @classmethod
    def get_all_provider_metadata(cls) -> List[ProviderMetadata]:
        """获取所有提供商的元数据（显示名称、凭证字段、功能）"""
        return [cls._metadata[provider_type] for provider_type in cls._providers]

    @classmethod
    def get_provider_metadata(cls, provider_name: str) -> ProviderMetadata:
        if not cls.is_provider_supported(provider_name):
            raise ProviderNotFound(provider_name)
        return cls._metadata[ProviderType.parse(provider_name)]

    @classmethod
    def get_available_providers(cls) -> List[str]:
        """
        获取所有可用的提供商列表

        Returns:
            提供商名称列表
        """
        return [provider_type.value for provider_type in cls._providers]

    @classmethod
    def is_provider_supported(cls, provider_name: str) -> bool:
        """
        检查是否支持指定的提供商

        Args:
            provider_name: 提供商名称

        Returns:
            是否支持
        """
        try:
            return ProviderType.parse(provider_name) in cls._providers
        except ValueError:
            return False


def create_provider(credentials: ProviderCredentials, **transport_options) -> DnsProvider:
    """根据凭证创建DNS提供商实例"""
    return ProviderFactory.create_provider(credentials, **transport_options)
