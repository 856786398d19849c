"""Tests for client identification shared by both limiters."""

from starlette.requests import Request

from shortener.core.rate_limit import get_client_ip


def make_request(forwarded_for=None, peer="10.0.0.1"):
    headers = []
    if forwarded_for is not None:
        headers.append((b"x-forwarded-for", forwarded_for.encode()))
    return Request({
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": headers,
        "client": (peer, 50000),
    })


class TestGetClientIP:

    def test_peer_address_without_trusted_proxy(self):
        request = make_request("203.0.113.5")
        assert get_client_ip(request) == "10.0.0.1"

    def test_one_trusted_hop_uses_rightmost_entry(self):
        request = make_request("1.1.1.1, 203.0.113.5")
        assert get_client_ip(request, trusted_proxy_hops=1) == "203.0.113.5"

    def test_two_trusted_hops(self):
        request = make_request("1.1.1.1, 203.0.113.5, 192.0.2.10")
        assert get_client_ip(request, trusted_proxy_hops=2) == "203.0.113.5"

    def test_short_chain_falls_back_to_peer(self):
        request = make_request("203.0.113.5")
        assert get_client_ip(request, trusted_proxy_hops=2) == "10.0.0.1"

    def test_missing_header_falls_back_to_peer(self):
        assert get_client_ip(make_request(), trusted_proxy_hops=1) == "10.0.0.1"

    def test_blank_entries_are_ignored(self):
        request = make_request("203.0.113.5, , ")
        assert get_client_ip(request, trusted_proxy_hops=1) == "203.0.113.5"
