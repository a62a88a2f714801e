"""
Unit tests for client IP resolution and subnet matching.
"""
import unittest

from starlette.datastructures import Headers

from evalify.backend.services.client_ip import (
    UNKNOWN_IP,
    is_client_in_subnets,
    is_ip_in_subnet,
    resolve_client_ip,
    strip_ipv4_mapped_prefix,
)


class TestResolveClientIp(unittest.TestCase):

    def test_real_ip_has_priority(self):
        headers = Headers({"x-forwarded-for": "198.51.100.7", "x-real-ip": "203.0.113.9"})
        self.assertEqual(resolve_client_ip(headers, "10.0.0.1"), "203.0.113.9")

    def test_forwarded_for_uses_first_hop(self):
        headers = Headers({"X-Forwarded-For": "198.51.100.7, 10.0.0.2, 10.0.0.3"})
        self.assertEqual(resolve_client_ip(headers, "10.0.0.1"), "198.51.100.7")

    def test_later_headers_in_order(self):
        headers = Headers({"true-client-ip": "192.0.2.44", "x-cluster-client-ip": "192.0.2.55"})
        self.assertEqual(resolve_client_ip(headers), "192.0.2.44")

    def test_falls_back_to_peer_address(self):
        self.assertEqual(resolve_client_ip(Headers({}), "172.16.4.20"), "172.16.4.20")

    def test_unknown_without_any_source(self):
        self.assertEqual(resolve_client_ip(Headers({}), None), UNKNOWN_IP)

    def test_ipv4_mapped_prefix_is_stripped(self):
        self.assertEqual(resolve_client_ip(Headers({"x-real-ip": "::ffff:10.12.16.5"})), "10.12.16.5")
        self.assertEqual(resolve_client_ip(Headers({}), "::ffff:127.0.0.1"), "127.0.0.1")

    def test_plain_ipv6_is_kept(self):
        self.assertEqual(strip_ipv4_mapped_prefix("2001:db8::1"), "2001:db8::1")


class TestSubnets(unittest.TestCase):

    def test_ip_in_subnet(self):
        self.assertTrue(is_ip_in_subnet("10.12.16.123", "10.12.16.0/24"))
        self.assertTrue(is_ip_in_subnet("10.12.16.123", "10.12.16.123/32"))
        self.assertFalse(is_ip_in_subnet("10.12.17.123", "10.12.16.0/24"))

    def test_zero_prefix_matches_everything(self):
        self.assertTrue(is_ip_in_subnet("8.8.8.8", "0.0.0.0/0"))

    def test_malformed_input_is_a_miss(self):
        self.assertFalse(is_ip_in_subnet("not-an-ip", "10.12.16.0/24"))
        self.assertFalse(is_ip_in_subnet("10.12.16.1", "10.12.16.0/33"))

    def test_any_subnet_matches(self):
        subnets = ["10.12.16.0/24", "10.12.18.0/24"]
        self.assertTrue(is_client_in_subnets("10.12.18.40", subnets))
        self.assertFalse(is_client_in_subnets("10.12.19.40", subnets))

    def test_missing_ip_or_subnets(self):
        self.assertFalse(is_client_in_subnets(None, ["10.12.16.0/24"]))
        self.assertFalse(is_client_in_subnets("10.12.16.4", []))


if __name__ == '__main__':
    unittest.main()
