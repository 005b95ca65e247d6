"""
Shared fixtures for the test suite.
"""

import pytest

from keys.generator import KeyGenerator
from models import AddressEndpoint, Peer, Router


class FakeKeyGenerator(KeyGenerator):
    """Deterministic key generator that never calls wg."""

    def __init__(self):
        self.calls = 0

    def generate_keypair(self):
        self.calls += 1
        private_key = f"private-{self.calls}"
        return private_key, self.public_key(private_key)

    def public_key(self, private_key):
        return f"public-of-{private_key}"


@pytest.fixture
def key_generator():
    return FakeKeyGenerator()


@pytest.fixture
def router(key_generator):
    return Router.create(
        "vpn-router",
        "10.0.1.0/24",
        AddressEndpoint(address="vpn.com", port=31337),
        key_generator=key_generator,
    )


@pytest.fixture
def client_a(key_generator):
    return (
        Peer.create("client-a", "10.0.1.2", key_generator=key_generator)
        .with_allowed_networks(["0.0.0.0/0"])
        .with_keepalive(25)
        .with_dns("10.0.1.1")
    )
