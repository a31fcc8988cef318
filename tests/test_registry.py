#
# Provider registry and factory
#

import threading
from unittest import TestCase

from dns_orchestrator.errors import CredentialError, ProviderNotFound
from dns_orchestrator.providers import (
    AliyunProvider,
    CloudflareProvider,
    DnspodProvider,
    HuaweicloudProvider,
    ProviderFactory,
    create_provider,
)
from dns_orchestrator.registry import ProviderRegistry
from dns_orchestrator.types import (
    AliyunCredentials,
    CloudflareCredentials,
    DnspodCredentials,
    HuaweicloudCredentials,
    ProviderType,
)

from helpers import mock_session


class TestProviderRegistry(TestCase):
    def setUp(self):
        self.registry = ProviderRegistry()
        self.provider = CloudflareProvider(CloudflareCredentials(api_token='t'), session=mock_session())

    def test_register_and_get(self):
        self.registry.register('cf-main', self.provider)
        self.assertIs(self.provider, self.registry.get('cf-main'))
        self.assertIn('cf-main', self.registry)
        self.assertEqual(1, len(self.registry))
        self.assertIsNone(self.registry.get('missing'))

    def test_register_replaces(self):
        other = CloudflareProvider(CloudflareCredentials(api_token='u'), session=mock_session())
        self.registry.register('cf-main', self.provider)
        self.registry.register('cf-main', other)
        self.assertIs(other, self.registry.get('cf-main'))
        self.assertEqual(['cf-main'], self.registry.list_account_ids())

    def test_unregister(self):
        self.registry.register('cf-main', self.provider)
        self.assertIs(self.provider, self.registry.unregister('cf-main'))
        self.assertIsNone(self.registry.unregister('cf-main'))
        self.assertEqual(0, len(self.registry))

    def test_concurrent_registration(self):
        def worker(start):
            for i in range(start, start + 50):
                self.registry.register(f'account-{i}', self.provider)

        threads = [threading.Thread(target=worker, args=(n * 50,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(400, len(self.registry))
        self.assertEqual(400, len(set(self.registry.list_account_ids())))


class TestProviderFactory(TestCase):
    def test_create_by_credential_type(self):
        cases = [
            (CloudflareCredentials(api_token='t'), CloudflareProvider),
            (AliyunCredentials(access_key_id='a', access_key_secret='s'), AliyunProvider),
            (DnspodCredentials(secret_id='a', secret_key='s'), DnspodProvider),
            (HuaweicloudCredentials(access_key_id='a', secret_access_key='s'), HuaweicloudProvider),
        ]
        for credentials, provider_class in cases:
            provider = create_provider(credentials, timeout=5)
            self.assertIsInstance(provider, provider_class)
            self.assertEqual(credentials.provider_type.value, provider.id)
            self.assertEqual(5, provider.timeout)

    def test_create_from_map(self):
        provider = ProviderFactory.create_from_map('dnspod', {'secretId': 'a', 'secretKey': 's'})
        self.assertIsInstance(provider, DnspodProvider)

        with self.assertRaises(ProviderNotFound):
            ProviderFactory.create_from_map('godaddy', {'apiKey': 'k'})
        with self.assertRaises(CredentialError):
            ProviderFactory.create_from_map('huaweicloud', {'accessKeyId': 'a'})

    def test_metadata(self):
        metadata = ProviderFactory.get_all_provider_metadata()
        self.assertEqual(['cloudflare', 'aliyun', 'dnspod', 'huaweicloud'], [m.id.value for m in metadata])
        self.assertTrue(ProviderFactory.get_provider_metadata('cloudflare').features.proxy)
        self.assertFalse(ProviderFactory.get_provider_metadata('aliyun').features.proxy)

        huawei = ProviderFactory.get_provider_metadata(ProviderType.HUAWEICLOUD.value)
        self.assertEqual(['accessKeyId', 'secretAccessKey'], [f.key for f in huawei.required_fields])

    def test_supported(self):
        self.assertTrue(ProviderFactory.is_provider_supported('Aliyun'))
        self.assertFalse(ProviderFactory.is_provider_supported('godaddy'))
        self.assertEqual(4, len(ProviderFactory.get_available_providers()))
