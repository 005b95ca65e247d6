"""
Property-based tests for the router and peer models.
Tests rendering order, optional lines and table parsing using Hypothesis.
"""

import string

from hypothesis import given, settings, strategies as st

from models import AddressEndpoint, Peer, Router, TableMode, HOOK_FIELDS, PEER_INTERFACE_FIELDS


# Hypothesis strategies for generating test data

@st.composite
def overlay_address(draw):
    """Generate addresses in the 10.0.1.0/24 overlay."""
    last_octet = draw(st.integers(min_value=1, max_value=254))
    return f"10.0.1.{last_octet}"


command_text = st.text(alphabet=string.ascii_letters + string.digits + " ;-%/", min_size=1, max_size=30)

table_value = st.one_of(
    st.sampled_from(["off", "auto", "OFF", "Auto"]),
    st.integers(min_value=0, max_value=2**32 - 1),
)


@st.composite
def optional_fields(draw):
    """Generate a random subset of the optional interface fields."""
    return {
        "mtu": draw(st.one_of(st.none(), st.integers(min_value=0, max_value=65535))),
        "table": draw(st.one_of(st.none(), table_value)),
        "preup": draw(st.one_of(st.none(), command_text)),
        "postup": draw(st.one_of(st.none(), command_text)),
        "predown": draw(st.one_of(st.none(), command_text)),
        "postdown": draw(st.one_of(st.none(), command_text)),
    }


@st.composite
def peer_strategy(draw):
    """Generate valid Peer instances, with or without a private key."""
    fields = draw(optional_fields())
    return Peer(
        name=draw(st.text(alphabet=string.ascii_lowercase + "-", min_size=1, max_size=20)),
        internal_address=draw(overlay_address()),
        allowed_networks=draw(st.lists(st.sampled_from(["0.0.0.0/0", "10.0.1.0/24", "fd00::/64"]),
                                       max_size=3)),
        dns=draw(st.one_of(st.none(), overlay_address())),
        persistent_keepalive=draw(st.one_of(st.none(), st.integers(min_value=1, max_value=3600))),
        private_key=draw(st.one_of(st.none(), st.just("peer-private"))),
        public_key="peer-public",
        **fields
    )


@st.composite
def router_strategy(draw):
    """Generate valid Router instances."""
    fields = draw(optional_fields())
    return Router(
        name="vpn-router",
        internal_network="10.0.1.1/24",
        external_endpoint=AddressEndpoint(
            address="vpn.com", port=draw(st.integers(min_value=0, max_value=65535))
        ),
        private_key="router-private",
        public_key="router-public",
        **fields
    )


def expected_labels(entity, fields):
    return [label for attr, label in fields if getattr(entity, attr) is not None]


def rendered_labels(lines):
    return [line.split(" = ", 1)[0] for line in lines]


# Property-based tests

@settings(max_examples=100)
@given(router=router_strategy())
def test_property_router_interface_optional_lines(router):
    """
    The router interface section has the five fixed lines followed by exactly
    one line per populated optional field, in MTU/Table/PreUp/PostUp/PreDown/PostDown order.
    """
    lines = router.render_interface().splitlines()

    assert lines[:2] == ["# vpn-router", "[Interface]"]
    assert rendered_labels(lines[2:5]) == ["Address", "PrivateKey", "ListenPort"]
    assert rendered_labels(lines[5:]) == expected_labels(router, HOOK_FIELDS)


@settings(max_examples=100)
@given(peer=peer_strategy())
def test_property_peer_interface_optional_lines(peer):
    """
    A peer owning its private key renders four fixed lines followed by one
    line per populated optional field, DNS first.
    """
    rendered = peer.render_interface()
    if peer.private_key is None:
        assert rendered is None
        return

    lines = rendered.splitlines()
    assert lines[:2] == [f"# {peer.name}", "[Interface]"]
    assert rendered_labels(lines[2:4]) == ["PrivateKey", "Address"]
    assert rendered_labels(lines[4:]) == expected_labels(peer, PEER_INTERFACE_FIELDS)


@settings(max_examples=100)
@given(peer=peer_strategy())
def test_property_interface_absent_iff_no_private_key(peer):
    """render_interface returns None if and only if the private key is absent."""
    assert (peer.render_interface() is None) == (peer.private_key is None)


@settings(max_examples=100)
@given(peer=peer_strategy(), router=router_strategy())
def test_property_peer_sections_keepalive_placement(peer, router):
    """
    Both peer sections end with AllowedIPs, preceded by PersistentKeepalive
    exactly when the peer declares one.
    """
    for section in (router.render_peer(peer), peer.render_peer(router)):
        labels = rendered_labels(section.splitlines()[2:])
        assert labels[-1] == "AllowedIPs"
        if peer.persistent_keepalive is None:
            assert "PersistentKeepalive" not in labels
        else:
            assert labels[-2] == "PersistentKeepalive"


@settings(max_examples=100)
@given(value=table_value)
def test_property_table_mode_render_parse(value):
    """Rendering a parsed table setting and parsing it again gives the same setting."""
    mode = TableMode.parse(value)

    assert TableMode.parse(str(mode)) == mode
    assert str(mode) in ("off", "auto") or str(mode).isdigit()
