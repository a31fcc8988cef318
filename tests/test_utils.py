#
# Record name conversion, time helpers and caller-side retry
#

from unittest import TestCase
from unittest.mock import Mock

from dns_orchestrator.errors import InvalidCredentials, NetworkError
from dns_orchestrator.utils import (
    full_name_to_relative,
    mask_secret,
    relative_to_full_name,
    retry_with_exponential_backoff,
    timestamp_ms_to_rfc3339,
)


class TestNameConversion(TestCase):
    def test_relative_to_full(self):
        self.assertEqual('www.example.com', relative_to_full_name('www', 'example.com'))
        self.assertEqual('example.com', relative_to_full_name('@', 'example.com'))
        self.assertEqual('example.com', relative_to_full_name('', 'example.com'))
        self.assertEqual('a.b.example.com', relative_to_full_name('a.b', 'example.com'))

    def test_full_to_relative(self):
        self.assertEqual('www', full_name_to_relative('www.example.com', 'example.com'))
        self.assertEqual('@', full_name_to_relative('example.com', 'example.com'))
        self.assertEqual('@', full_name_to_relative('example.com.', 'example.com'))
        self.assertEqual('www', full_name_to_relative('www.example.com.', 'example.com.'))
        self.assertEqual('other.org', full_name_to_relative('other.org', 'example.com'))
        # suffix must match on a label boundary
        self.assertEqual('badexample.com', full_name_to_relative('badexample.com', 'example.com'))

    def test_inverse(self):
        for name in ('www', '@', 'a.b', '_acme-challenge'):
            full = relative_to_full_name(name, 'example.com')
            self.assertEqual(name, full_name_to_relative(full, 'example.com'))


class TestHelpers(TestCase):
    def test_timestamp_ms(self):
        self.assertEqual('2024-01-01T00:00:00+00:00', timestamp_ms_to_rfc3339(1704067200000))
        self.assertIsNone(timestamp_ms_to_rfc3339(None))

    def test_mask_secret(self):
        self.assertEqual('abcd***', mask_secret('abcdefgh'))
        self.assertEqual('***', mask_secret('abc'))
        self.assertIsNone(mask_secret(None))


class TestRetry(TestCase):
    def test_retries_network_errors(self):
        func = Mock(side_effect=[NetworkError('aliyun', 'timeout'), 'ok'])
        wrapped = retry_with_exponential_backoff(max_attempts=3, min_wait=0, max_wait=0, multiplier=0)(func)
        self.assertEqual('ok', wrapped())
        self.assertEqual(2, func.call_count)

    def test_does_not_retry_other_errors(self):
        func = Mock(side_effect=InvalidCredentials('aliyun'))
        wrapped = retry_with_exponential_backoff(max_attempts=3, min_wait=0, max_wait=0, multiplier=0)(func)
        with self.assertRaises(InvalidCredentials):
            wrapped()
        self.assertEqual(1, func.call_count)

    def test_gives_up(self):
        func = Mock(side_effect=NetworkError('dnspod', 'down'))
        wrapped = retry_with_exponential_backoff(max_attempts=2, min_wait=0, max_wait=0, multiplier=0)(func)
        with self.assertRaises(NetworkError):
            wrapped()
        self.assertEqual(2, func.call_count)
