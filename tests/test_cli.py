#
# Command line interface with a stubbed manager
#

import json
import os
import tempfile
from pathlib import Path
from unittest import TestCase
from unittest.mock import patch

from click.testing import CliRunner

from dns_orchestrator.cli import cli
from dns_orchestrator.errors import AccountNotFound, DomainNotFound
from dns_orchestrator.providers import ProviderFactory
from dns_orchestrator.types import (
    BatchDeleteFailure,
    BatchDeleteResult,
    DnsRecord,
    DnsRecordType,
    Domain,
    DomainStatus,
    PaginatedResponse,
    ProviderType,
)

from helpers import clean_env


class CliTestCase(TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.config_file = str(Path(self.tmpdir.name) / 'config.json')

        for patcher in (
            patch('dns_orchestrator.config.load_dotenv'),
            patch.dict(os.environ, clean_env(), clear=True),
        ):
            patcher.start()
            self.addCleanup(patcher.stop)

        manager_patcher = patch('dns_orchestrator.cli.DnsManager')
        self.manager_class = manager_patcher.start()
        self.addCleanup(manager_patcher.stop)
        self.manager = self.manager_class.return_value

        self.runner = CliRunner()

    def invoke(self, *args):
        return self.runner.invoke(cli, ['--config', self.config_file, '--log-level', 'ERROR'] + list(args))


class TestReadCommands(CliTestCase):
    def test_providers(self):
        self.manager.list_providers.return_value = ProviderFactory.get_all_provider_metadata()
        result = self.invoke('providers')
        self.assertEqual(0, result.exit_code, result.output)
        self.assertIn('cloudflare', result.output)
        self.assertIn('华为云 DNS', result.output)

    def test_domains_json(self):
        self.manager.list_domains.return_value = PaginatedResponse.new(
            [Domain(id='z1', name='example.com', provider=ProviderType.CLOUDFLARE, status=DomainStatus.ACTIVE)],
            1, 20, 1,
        )
        result = self.invoke('domains', 'cf', '--json')
        self.assertEqual(0, result.exit_code, result.output)

        data = json.loads(result.output[result.output.index('{'):])
        self.assertEqual(1, data['totalCount'])
        self.assertFalse(data['hasMore'])
        self.assertEqual('example.com', data['items'][0]['name'])
        self.manager.list_domains.assert_called_once_with('cf', page=1, page_size=20)

    def test_records_table(self):
        self.manager.list_records.return_value = PaginatedResponse.new(
            [DnsRecord(id='r1', domain_id='z1', record_type=DnsRecordType.A, name='www',
                       value='1.2.3.4', ttl=300, proxied=True)],
            1, 20, 1,
        )
        result = self.invoke('records', 'cf', 'z1', '--type', 'a', '--keyword', 'www')
        self.assertEqual(0, result.exit_code, result.output)
        self.assertIn('1.2.3.4', result.output)
        self.manager.list_records.assert_called_once_with(
            'cf', 'z1', page=1, page_size=20, keyword='www', record_type='A',
        )

    def test_error_exits_nonzero(self):
        self.manager.list_domains.side_effect = AccountNotFound('nobody')
        result = self.invoke('domains', 'nobody')
        self.assertEqual(1, result.exit_code)
        self.assertIn('❌', result.output)
        self.assertIn('nobody', result.output)

    def test_validate_invalid(self):
        self.manager.validate_account.return_value = False
        result = self.invoke('validate', 'cf')
        self.assertEqual(1, result.exit_code)
        self.assertIn('无效', result.output)


class TestWriteCommands(CliTestCase):
    def test_create_record(self):
        self.manager.create_record.return_value = DnsRecord(
            id='r9', domain_id='z1', record_type=DnsRecordType.MX, name='@',
            value='mail.example.com', ttl=600, priority=10,
        )
        result = self.invoke('create-record', 'cf', 'z1', '--type', 'MX', '--name', '@',
                             '--value', 'mail.example.com', '--priority', '10')
        self.assertEqual(0, result.exit_code, result.output)
        self.assertIn('r9', result.output)

        account_id, request = self.manager.create_record.call_args[0]
        self.assertEqual('cf', account_id)
        self.assertEqual(DnsRecordType.MX, request.record_type)
        self.assertEqual(10, request.priority)
        self.assertIsNone(request.proxied)

    def test_create_record_error(self):
        self.manager.create_record.side_effect = DomainNotFound('aliyun', 'missing.com')
        result = self.invoke('create-record', 'ali', 'missing.com', '--type', 'A', '--name', 'www',
                             '--value', '1.2.3.4')
        self.assertEqual(1, result.exit_code)
        self.assertIn('❌ 创建DNS记录失败', result.output)

    def test_add_account_parses_credentials(self):
        self.manager.add_account.return_value = {'id': 'ali', 'name': 'ali', 'provider': 'aliyun'}
        result = self.invoke('add-account', 'ali', '--provider', 'aliyun',
                             '-c', 'accessKeyId=ak', '-c', 'accessKeySecret=s=k')
        self.assertEqual(0, result.exit_code, result.output)
        self.manager.add_account.assert_called_once_with(
            'ali', 'aliyun', {'accessKeyId': 'ak', 'accessKeySecret': 's=k'}, name=None,
        )

    def test_add_account_bad_credential_format(self):
        result = self.invoke('add-account', 'ali', '--provider', 'aliyun', '-c', 'accessKeyId')
        self.assertEqual(1, result.exit_code)
        self.assertIn('key=value', result.output)
        self.manager.add_account.assert_not_called()

    def test_batch_delete_partial_failure(self):
        self.manager.batch_delete_records.return_value = BatchDeleteResult(
            success_count=1, failures=[BatchDeleteFailure(record_id='r2', reason='记录不存在')],
        )
        result = self.invoke('batch-delete', 'cf', 'z1', 'r1', 'r2', '--threads', '3')
        self.assertEqual(1, result.exit_code)
        self.assertIn('r2', result.output)
        self.manager.batch_delete_records.assert_called_once_with('cf', 'z1', ['r1', 'r2'])
