#
# Cloudflare provider against canned API v4 envelopes
#

from unittest import TestCase

import requests

from dns_orchestrator.errors import DomainNotFound, InvalidCredentials, NetworkError, ParseError, RecordExists
from dns_orchestrator.providers.cloudflare import CloudflareProvider
from dns_orchestrator.types import (
    CloudflareCredentials,
    CreateDnsRecordRequest,
    DnsRecordType,
    DomainStatus,
    PaginationParams,
    RecordQueryParams,
    UpdateDnsRecordRequest,
)

from helpers import fake_response, mock_session

ZONE = {'id': 'z1', 'name': 'example.com', 'status': 'active'}


def envelope(result, success=True, errors=None, result_info=None):
    data = {'success': success, 'errors': errors or [], 'messages': [], 'result': result}
    if result_info is not None:
        data['result_info'] = result_info
    return data


def failure(code, message):
    return envelope(None, success=False, errors=[{'code': code, 'message': message}])


def record(record_id, record_type, name, content, **extra):
    data = {'id': record_id, 'type': record_type, 'name': name, 'content': content, 'ttl': 300}
    data.update(extra)
    return data


class CloudflareProviderTestCase(TestCase):
    def make_provider(self, *responses):
        self.session = mock_session(*responses)
        return CloudflareProvider(CloudflareCredentials(api_token='cf-token'), session=self.session, timeout=10)

    def request_call(self, index):
        call = self.session.request.call_args_list[index]
        return call[0][0], call[0][1], call[1]


class TestCredentials(CloudflareProviderTestCase):
    def test_valid_token(self):
        provider = self.make_provider(fake_response(envelope({'id': 't', 'status': 'active'})))
        self.assertTrue(provider.validate_credentials())

        method, url, kwargs = self.request_call(0)
        self.assertEqual('GET', method)
        self.assertEqual('https://api.cloudflare.com/client/v4/user/tokens/verify', url)
        self.assertEqual('Bearer cf-token', kwargs['headers']['Authorization'])
        self.assertEqual(10, kwargs['timeout'])

    def test_invalid_token_returns_false(self):
        provider = self.make_provider(fake_response(failure(9109, 'Invalid access token'), status_code=401))
        self.assertFalse(provider.validate_credentials())

    def test_invalid_api_token_code(self):
        provider = self.make_provider(fake_response(failure(1000, 'Invalid API Token'), status_code=403))
        with self.assertRaises(InvalidCredentials):
            provider.list_domains(PaginationParams())

    def test_invalid_token_raises_from_operations(self):
        provider = self.make_provider(fake_response(failure(10000, 'Authentication error'), status_code=403))
        with self.assertRaises(InvalidCredentials):
            provider.list_domains(PaginationParams())


class TestDomains(CloudflareProviderTestCase):
    def test_list_domains_clamps_page_size(self):
        provider = self.make_provider(fake_response(envelope(
            [ZONE, {'id': 'z2', 'name': 'example.org', 'status': 'pending'}],
            result_info={'page': 1, 'per_page': 50, 'total_count': 120},
        )))
        page = provider.list_domains(PaginationParams(page=1, page_size=200))

        _, url, kwargs = self.request_call(0)
        self.assertTrue(url.endswith('/zones'))
        self.assertEqual({'page': 1, 'per_page': 50}, kwargs['params'])

        self.assertEqual(2, len(page.items))
        self.assertEqual(120, page.total_count)
        self.assertTrue(page.has_more)
        self.assertEqual(50, page.page_size)
        self.assertEqual(DomainStatus.ACTIVE, page.items[0].status)
        self.assertEqual(DomainStatus.PENDING, page.items[1].status)

    def test_null_total_count(self):
        provider = self.make_provider(fake_response(envelope([ZONE], result_info={'total_count': None})))
        page = provider.list_domains(PaginationParams())
        self.assertEqual(1, len(page.items))
        self.assertEqual(0, page.total_count)
        self.assertFalse(page.has_more)

    def test_get_domain(self):
        provider = self.make_provider(fake_response(envelope(ZONE)))
        domain = provider.get_domain('z1')
        self.assertEqual('example.com', domain.name)
        self.assertTrue(self.request_call(0)[1].endswith('/zones/z1'))

    def test_get_missing_domain(self):
        provider = self.make_provider(fake_response(failure(7003, 'Could not route to /zones/nope'), status_code=404))
        with self.assertRaises(DomainNotFound):
            provider.get_domain('nope')

    def test_envelope_without_success(self):
        provider = self.make_provider(fake_response({'result': []}))
        with self.assertRaises(ParseError):
            provider.list_domains(PaginationParams())

    def test_non_json_body(self):
        provider = self.make_provider(fake_response(text='<html>bad gateway</html>', status_code=502))
        with self.assertRaises(ParseError):
            provider.list_domains(PaginationParams())

    def test_network_error(self):
        provider = self.make_provider(requests.exceptions.ConnectionError('connection refused'))
        with self.assertRaises(NetworkError) as ctx:
            provider.list_domains(PaginationParams())
        self.assertEqual('cloudflare', ctx.exception.provider)


class TestRecords(CloudflareProviderTestCase):
    def test_list_records(self):
        provider = self.make_provider(
            fake_response(envelope(ZONE)),
            fake_response(envelope(
                [
                    record('r1', 'A', 'www.example.com', '1.2.3.4', proxied=True),
                    record('r2', 'PTR', '4.3.2.1.in-addr.arpa', 'host.example.com'),
                    record('r3', 'MX', 'example.com', 'mail.example.com', priority=10),
                ],
                result_info={'total_count': 3},
            )),
        )
        page = provider.list_records('z1', RecordQueryParams(page=1, page_size=20, keyword=' www ',
                                                             record_type=DnsRecordType.A))

        _, url, kwargs = self.request_call(1)
        self.assertTrue(url.endswith('/zones/z1/dns_records'))
        self.assertEqual({'page': 1, 'per_page': 20, 'name.contains': 'www', 'type': 'A'}, kwargs['params'])

        # PTR is skipped
        self.assertEqual(['r1', 'r3'], [r.id for r in page.items])
        self.assertEqual('www', page.items[0].name)
        self.assertTrue(page.items[0].proxied)
        self.assertEqual('@', page.items[1].name)
        self.assertEqual(10, page.items[1].priority)

    def test_list_records_unknown_zone(self):
        provider = self.make_provider(fake_response(failure(1001, 'Invalid zone identifier'), status_code=400))
        with self.assertRaises(DomainNotFound):
            provider.list_records('missing', RecordQueryParams())

    def test_create_record(self):
        provider = self.make_provider(
            fake_response(envelope(ZONE)),
            fake_response(envelope(record('r9', 'A', 'www.example.com', '1.2.3.4',
                                          created_on='2024-01-01T00:00:00Z',
                                          modified_on='2024-01-01T00:00:00Z'))),
        )
        created = provider.create_record(CreateDnsRecordRequest(
            domain_id='z1', record_type=DnsRecordType.A, name='www', value='1.2.3.4', ttl=300,
        ))

        method, url, kwargs = self.request_call(1)
        self.assertEqual('POST', method)
        self.assertTrue(url.endswith('/zones/z1/dns_records'))
        self.assertEqual({'type': 'A', 'name': 'www.example.com', 'content': '1.2.3.4', 'ttl': 300}, kwargs['json'])

        self.assertEqual('r9', created.id)
        self.assertEqual('www', created.name)
        self.assertEqual('z1', created.domain_id)
        self.assertEqual(300, created.ttl)

    def test_create_duplicate(self):
        provider = self.make_provider(
            fake_response(envelope(ZONE)),
            fake_response(failure(81057, 'Record already exists.'), status_code=400),
        )
        with self.assertRaises(RecordExists) as ctx:
            provider.create_record(CreateDnsRecordRequest(
                domain_id='z1', record_type=DnsRecordType.A, name='www', value='1.2.3.4', ttl=300,
            ))
        self.assertEqual('www', ctx.exception.record_name)
        self.assertEqual('Record already exists.', ctx.exception.raw_message)

    def test_update_record_uses_patch(self):
        provider = self.make_provider(
            fake_response(envelope(ZONE)),
            fake_response(envelope(record('r1', 'CNAME', 'blog.example.com', 'example.github.io', proxied=False))),
        )
        updated = provider.update_record('r1', UpdateDnsRecordRequest(
            domain_id='z1', record_type=DnsRecordType.CNAME, name='blog', value='example.github.io',
            ttl=300, proxied=False,
        ))

        method, url, kwargs = self.request_call(1)
        self.assertEqual('PATCH', method)
        self.assertTrue(url.endswith('/zones/z1/dns_records/r1'))
        self.assertFalse(kwargs['json']['proxied'])
        self.assertEqual('r1', updated.id)
        self.assertEqual('blog', updated.name)

    def test_delete_record(self):
        provider = self.make_provider(fake_response(envelope({'id': 'r1'})))
        self.assertIsNone(provider.delete_record('r1', 'z1'))

        method, url, _ = self.request_call(0)
        self.assertEqual('DELETE', method)
        self.assertTrue(url.endswith('/zones/z1/dns_records/r1'))
