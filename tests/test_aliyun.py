#
# Aliyun provider: signed RPC requests and error mapping
#

from unittest import TestCase
from urllib.parse import parse_qs, urlsplit

import requests

from dns_orchestrator.errors import DomainNotFound, InvalidCredentials, RecordExists, RecordNotFound
from dns_orchestrator.providers.aliyun import AliyunProvider
from dns_orchestrator.types import (
    AliyunCredentials,
    CreateDnsRecordRequest,
    DnsRecordType,
    DomainStatus,
    PaginationParams,
    RecordQueryParams,
    UpdateDnsRecordRequest,
)

from helpers import fake_response, mock_session

DOMAINS = {
    'RequestId': 'req-1',
    'TotalCount': 2,
    'PageNumber': 1,
    'PageSize': 100,
    'Domains': {'Domain': [
        {'DomainId': 'd-1', 'DomainName': 'example.com', 'DomainStatus': 'ENABLE', 'RecordCount': 3},
        {'DomainId': 'd-2', 'DomainName': 'example.org', 'DomainStatus': 'pause'},
    ]},
}


def api_error(code, message, status_code=400):
    return fake_response({'RequestId': 'req-x', 'Code': code, 'Message': message}, status_code=status_code)


class AliyunProviderTestCase(TestCase):
    def make_provider(self, *responses):
        self.session = mock_session(*responses)
        return AliyunProvider(
            AliyunCredentials(access_key_id='LTAI-test', access_key_secret='secret'),
            session=self.session,
        )

    def request_call(self, index):
        call = self.session.request.call_args_list[index]
        method, url = call[0][0], call[0][1]
        query = {k: v[0] for k, v in parse_qs(urlsplit(url).query).items()}
        return method, url, query, call[1]['headers']


class TestCredentials(AliyunProviderTestCase):
    def test_signature_mismatch_returns_false(self):
        provider = self.make_provider(api_error('SignatureDoesNotMatch', 'Specified signature is not matched.'))
        self.assertFalse(provider.validate_credentials())

    def test_signature_mismatch_raises_from_operations(self):
        provider = self.make_provider(api_error('InvalidAccessKeyId.NotFound', 'Specified access key is not found.'))
        with self.assertRaises(InvalidCredentials):
            provider.list_domains(PaginationParams())

    def test_valid(self):
        provider = self.make_provider(fake_response(DOMAINS))
        self.assertTrue(provider.validate_credentials())
        _, _, query, _ = self.request_call(0)
        self.assertEqual({'PageNumber': '1', 'PageSize': '1'}, query)


class TestRequestShape(AliyunProviderTestCase):
    def test_headers_and_query(self):
        provider = self.make_provider(fake_response(DOMAINS))
        provider.list_domains(PaginationParams(page=2, page_size=500))

        method, url, query, headers = self.request_call(0)
        self.assertEqual('POST', method)
        self.assertTrue(url.startswith('https://alidns.cn-hangzhou.aliyuncs.com/?'))
        # keys in byte order, page size clamped
        self.assertTrue(url.endswith('?PageNumber=2&PageSize=100'))
        self.assertEqual({'PageNumber': '2', 'PageSize': '100'}, query)

        self.assertEqual('DescribeDomains', headers['x-acs-action'])
        self.assertEqual('2015-01-09', headers['x-acs-version'])
        self.assertTrue(headers['x-acs-signature-nonce'])
        self.assertTrue(headers['Authorization'].startswith('ACS3-HMAC-SHA256 Credential=LTAI-test,'))

    def test_nonce_is_fresh_per_request(self):
        provider = self.make_provider(fake_response(DOMAINS), fake_response(DOMAINS))
        provider.list_domains(PaginationParams())
        provider.list_domains(PaginationParams())
        first = self.request_call(0)[3]['x-acs-signature-nonce']
        second = self.request_call(1)[3]['x-acs-signature-nonce']
        self.assertNotEqual(first, second)


class TestDomains(AliyunProviderTestCase):
    def test_list_domains(self):
        provider = self.make_provider(fake_response(DOMAINS))
        page = provider.list_domains(PaginationParams(page=1, page_size=20))
        self.assertEqual(['d-1', 'd-2'], [d.id for d in page.items])
        self.assertEqual(DomainStatus.ACTIVE, page.items[0].status)
        self.assertEqual(DomainStatus.PAUSED, page.items[1].status)
        self.assertEqual(3, page.items[0].record_count)
        self.assertEqual(2, page.total_count)
        self.assertFalse(page.has_more)

    def test_get_domain_by_name(self):
        provider = self.make_provider(fake_response(DOMAINS))
        self.assertEqual('d-2', provider.get_domain('example.org').id)

    def test_get_missing_domain(self):
        provider = self.make_provider(fake_response(DOMAINS))
        with self.assertRaises(DomainNotFound):
            provider.get_domain('missing.com')

    def test_resolution_network_failure(self):
        provider = self.make_provider(requests.exceptions.Timeout('read timed out'))
        with self.assertRaises(DomainNotFound):
            provider.list_records('d-1', RecordQueryParams())

    def test_resolution_invalid_credentials(self):
        provider = self.make_provider(api_error('SignatureDoesNotMatch', 'bad signature'))
        with self.assertRaises(InvalidCredentials):
            provider.list_records('d-1', RecordQueryParams())


class TestRecords(AliyunProviderTestCase):
    def test_list_records(self):
        provider = self.make_provider(
            fake_response(DOMAINS),
            fake_response({
                'TotalCount': 2,
                'DomainRecords': {'Record': [
                    {'RecordId': '1001', 'RR': 'www', 'Type': 'A', 'Value': '1.2.3.4', 'TTL': 600,
                     'CreateTimestamp': 1704067200000, 'UpdateTimestamp': 1704067200000},
                    {'RecordId': '1002', 'RR': '@', 'Type': 'MX', 'Value': 'mail.example.com', 'TTL': 600,
                     'Priority': 5},
                ]},
            }),
        )
        page = provider.list_records('d-1', RecordQueryParams(keyword='ww', record_type=DnsRecordType.A))

        _, _, query, headers = self.request_call(1)
        self.assertEqual('DescribeDomainRecords', headers['x-acs-action'])
        self.assertEqual('example.com', query['DomainName'])
        self.assertEqual('ww', query['RRKeyWord'])
        self.assertEqual('A', query['Type'])

        self.assertEqual(2, len(page.items))
        www = page.items[0]
        self.assertEqual('1001', www.id)
        self.assertEqual('d-1', www.domain_id)
        self.assertEqual('2024-01-01T00:00:00+00:00', www.created_at)
        self.assertIsNone(www.proxied)
        self.assertEqual(5, page.items[1].priority)

    def test_create_duplicate(self):
        provider = self.make_provider(
            fake_response(DOMAINS),
            api_error('DomainRecordDuplicate', 'The DNS record already exists.'),
        )
        with self.assertRaises(RecordExists) as ctx:
            provider.create_record(CreateDnsRecordRequest(
                domain_id='d-1', record_type=DnsRecordType.A, name='www', value='1.2.3.4', ttl=600,
            ))
        self.assertEqual('www', ctx.exception.record_name)

    def test_create_record(self):
        provider = self.make_provider(fake_response(DOMAINS), fake_response({'RecordId': '2001'}))
        created = provider.create_record(CreateDnsRecordRequest(
            domain_id='d-1', record_type=DnsRecordType.TXT, name='_acme', value='token', ttl=600,
        ))

        _, _, query, headers = self.request_call(1)
        self.assertEqual('AddDomainRecord', headers['x-acs-action'])
        self.assertEqual({'DomainName': 'example.com', 'RR': '_acme', 'Type': 'TXT',
                          'Value': 'token', 'TTL': '600'}, query)
        self.assertEqual('2001', created.id)
        self.assertIsNotNone(created.created_at)

    def test_update_missing_record(self):
        provider = self.make_provider(api_error('DomainRecordNotBelongToUser', 'record not found'))
        with self.assertRaises(RecordNotFound) as ctx:
            provider.update_record('404', UpdateDnsRecordRequest(
                domain_id='d-1', record_type=DnsRecordType.A, name='www', value='1.2.3.4', ttl=600,
            ))
        self.assertEqual('404', ctx.exception.record_id)

    def test_delete_record(self):
        provider = self.make_provider(fake_response({'RequestId': 'r', 'RecordId': '1001'}))
        provider.delete_record('1001', 'd-1')
        _, _, query, headers = self.request_call(0)
        self.assertEqual('DeleteDomainRecord', headers['x-acs-action'])
        self.assertEqual({'RecordId': '1001'}, query)

    def test_unmapped_http_failure(self):
        provider = self.make_provider(fake_response({'RequestId': 'r'}, status_code=503))
        with self.assertRaises(Exception) as ctx:
            provider.delete_record('1001', 'd-1')
        self.assertEqual('Unknown', ctx.exception.code)
