"""
Pydantic data models for the WireGuard router configuration manager.

These models describe the router and its peers as they are stored in the
YAML configuration file, and render the connection-config sections consumed
by wg-quick.
"""

import logging
from typing import List, Optional, Tuple, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    IPvAnyAddress,
    IPvAnyInterface,
    field_serializer,
    field_validator,
)

from keys.generator import KeyGenerator, WgKeyGenerator


logger = logging.getLogger(__name__)

MAX_TABLE_ID = 2**32 - 1


class AddressEndpoint(BaseModel):
    """
    A reachable host and port, rendered as ``host:port``.

    Attributes:
        address: Host name or literal IP address
        port: UDP port in the range 0-65535
    """
    address: str = Field(..., min_length=1, description="Host name or IP address")
    port: int = Field(..., ge=0, le=65535, description="UDP port")

    def __str__(self) -> str:
        return f"{self.address}:{self.port}"


class TableMode:
    """
    Routing table setting for an interface: ``off``, ``auto`` or a table id.

    Attributes:
        kind: One of TableMode.OFF, TableMode.AUTO or TableMode.CUSTOM
        table_id: Numeric table id, only set for custom tables
    """

    OFF = "off"
    AUTO = "auto"
    CUSTOM = "custom"

    def __init__(self, kind: str, table_id: Optional[int] = None):
        if kind == self.CUSTOM:
            if table_id is None or not 0 <= table_id <= MAX_TABLE_ID:
                raise ValueError(f"Table id must be between 0 and {MAX_TABLE_ID}, got {table_id}")
        elif kind in (self.OFF, self.AUTO):
            if table_id is not None:
                raise ValueError(f"Table mode '{kind}' does not take a table id")
        else:
            raise ValueError(f"Unknown table mode: {kind}")
        self.kind = kind
        self.table_id = table_id

    @classmethod
    def off(cls) -> 'TableMode':
        return cls(cls.OFF)

    @classmethod
    def auto(cls) -> 'TableMode':
        return cls(cls.AUTO)

    @classmethod
    def custom(cls, table_id: int) -> 'TableMode':
        return cls(cls.CUSTOM, table_id)

    @classmethod
    def parse(cls, value: Union[str, int, bool, 'TableMode']) -> 'TableMode':
        """
        Parse a table setting.

        Strings are matched case-insensitively against ``off`` and ``auto``,
        anything else must be an unsigned integer. YAML reads a bare ``off``
        as ``False``, so that value is accepted as ``off`` as well.

        Raises:
            ValueError: If the value is not a valid table setting
        """
        if isinstance(value, TableMode):
            return value
        if isinstance(value, bool):
            if value is False:
                return cls.off()
            raise ValueError("Table must be off, auto or a table number")
        if isinstance(value, int):
            return cls.custom(value)
        if not isinstance(value, str):
            raise ValueError(f"Table must be off, auto or a table number, got {type(value).__name__}")

        text = value.strip().lower()
        if text == cls.OFF:
            return cls.off()
        if text == cls.AUTO:
            return cls.auto()
        if not (text.isascii() and text.isdigit()):
            raise ValueError(f"Table must be off, auto or a table number, got '{value}'")
        return cls.custom(int(text))

    def __str__(self) -> str:
        if self.kind == self.CUSTOM:
            return str(self.table_id)
        return self.kind

    def __repr__(self) -> str:
        return f"TableMode({str(self)!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, TableMode):
            return NotImplemented
        return self.kind == other.kind and self.table_id == other.table_id

    def __hash__(self) -> int:
        return hash((self.kind, self.table_id))


# Optional interface lines, in the order they are rendered
HOOK_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("mtu", "MTU"),
    ("table", "Table"),
    ("preup", "PreUp"),
    ("postup", "PostUp"),
    ("predown", "PreDown"),
    ("postdown", "PostDown"),
)

PEER_INTERFACE_FIELDS: Tuple[Tuple[str, str], ...] = (("dns", "DNS"),) + HOOK_FIELDS


def render_optional_lines(entity: BaseModel, fields: Tuple[Tuple[str, str], ...]) -> List[str]:
    """Render ``Label = value`` for every field that is set, in the given order."""
    lines = []
    for attr, label in fields:
        value = getattr(entity, attr)
        if value is not None:
            lines.append(f"{label} = {value}")
    return lines


def join_networks(networks) -> str:
    return ", ".join(str(network) for network in networks)


class Endpoint(BaseModel):
    """
    Behaviour shared by the router and its peers.

    Subclasses declare the ``table`` and pre/post up/down fields themselves so
    that each model keeps its own field order in the configuration file.
    """
    model_config = ConfigDict(validate_assignment=True, arbitrary_types_allowed=True)

    @field_validator('table', mode='before', check_fields=False)
    @classmethod
    def parse_table(cls, v):
        """Accept the textual and numeric forms used in configuration files."""
        if v is None:
            return v
        return TableMode.parse(v)

    @field_serializer('table', check_fields=False)
    def serialize_table(self, table: Optional[TableMode]):
        if table is None:
            return None
        if table.kind == TableMode.CUSTOM:
            return table.table_id
        return str(table)

    def _with(self, **changes):
        """Return a validated copy with the given fields replaced."""
        copy = self.model_copy(deep=True)
        for attr, value in changes.items():
            setattr(copy, attr, value)
        return copy

    def with_mtu(self, mtu: Optional[int]):
        return self._with(mtu=mtu)

    def with_table(self, table):
        return self._with(table=table)

    def with_hooks(self, preup: Optional[str] = None, postup: Optional[str] = None,
                   predown: Optional[str] = None, postdown: Optional[str] = None):
        """Return a copy with the pre/post up/down commands replaced."""
        return self._with(preup=preup, postup=postup, predown=predown, postdown=postdown)


class Router(Endpoint):
    """
    The central endpoint every peer connects through.

    Attributes:
        name: Label used in the ``#`` comment line of rendered sections
        internal_network: Router address and prefix inside the overlay (e.g. 10.0.1.1/24)
        external_endpoint: Public address and listen port
        private_key: WireGuard private key
        public_key: WireGuard public key
        mtu: Interface MTU
        table: Routing table setting
        preup, postup, predown, postdown: wg-quick hook commands
    """
    name: str = Field(..., min_length=1, description="Router name")
    internal_network: IPvAnyInterface = Field(
        ...,
        validation_alias=AliasChoices('internal_network', 'internal_address'),
        description="Overlay address with prefix"
    )
    external_endpoint: AddressEndpoint = Field(
        ...,
        validation_alias=AliasChoices('external_endpoint', 'external_address'),
        description="Public host and listen port"
    )
    private_key: str = Field(..., min_length=1, description="WireGuard private key")
    public_key: str = Field(..., min_length=1, description="WireGuard public key")
    mtu: Optional[int] = Field(None, ge=0, le=65535, description="Interface MTU")
    table: Optional[TableMode] = Field(None, description="off, auto or a table number")
    preup: Optional[str] = Field(None, description="PreUp command")
    postup: Optional[str] = Field(None, description="PostUp command")
    predown: Optional[str] = Field(None, description="PreDown command")
    postdown: Optional[str] = Field(None, description="PostDown command")

    @classmethod
    def create(
        cls,
        name: str,
        internal_network,
        external_endpoint: AddressEndpoint,
        key_generator: Optional[KeyGenerator] = None,
        private_key: Optional[str] = None,
    ) -> 'Router':
        """
        Create a router with a fresh key pair.

        If a private key is supplied, only its public key is derived.

        Raises:
            KeyGenerationError: If the key generator fails
        """
        key_generator = key_generator or WgKeyGenerator()
        if private_key is None:
            private_key, public_key = key_generator.generate_keypair()
        else:
            public_key = key_generator.public_key(private_key)

        logger.debug(f"Created router {name}")
        return cls(
            name=name,
            internal_network=internal_network,
            external_endpoint=external_endpoint,
            private_key=private_key,
            public_key=public_key,
        )

    def render_interface(self) -> str:
        """Render the router's own [Interface] section."""
        lines = [
            f"# {self.name}",
            "[Interface]",
            f"Address = {self.internal_network}",
            f"PrivateKey = {self.private_key}",
            f"ListenPort = {self.external_endpoint.port}",
        ]
        lines.extend(render_optional_lines(self, HOOK_FIELDS))
        return "\n".join(lines)

    def render_peer(self, peer: 'Peer') -> str:
        """Render the [Peer] section the router uses to accept the given peer."""
        lines = [
            f"# {peer.name}",
            "[Peer]",
            f"PublicKey = {peer.public_key}",
        ]
        if peer.persistent_keepalive is not None:
            lines.append(f"PersistentKeepalive = {peer.persistent_keepalive}")
        lines.append(f"AllowedIPs = {join_networks(peer.allowed_networks)}")
        return "\n".join(lines)


class Peer(Endpoint):
    """
    A remote endpoint connecting to the router.

    A peer without a private key supplies its own key material; only its
    router-facing section can be rendered.

    Attributes:
        name: Label used in the ``#`` comment line of rendered sections
        internal_address: Peer address inside the overlay, without prefix
        allowed_networks: Networks routed through the tunnel for this peer
        dns: DNS server pushed into the peer's interface section
        persistent_keepalive: Keepalive interval in seconds
        private_key: WireGuard private key, if this side owns it
        public_key: WireGuard public key
        mtu, table, preup, postup, predown, postdown: as for Router
    """
    name: str = Field(..., min_length=1, description="Peer name")
    internal_address: IPvAnyAddress = Field(..., description="Overlay address")
    allowed_networks: List[IPvAnyInterface] = Field(
        default_factory=list,
        validation_alias=AliasChoices('allowed_networks', 'allowed_ips'),
        description="Allowed networks, kept as written (host bits allowed)"
    )
    dns: Optional[IPvAnyAddress] = Field(None, description="DNS server")
    persistent_keepalive: Optional[int] = Field(None, gt=0, description="Keepalive in seconds")
    private_key: Optional[str] = Field(None, min_length=1, description="WireGuard private key")
    public_key: str = Field(..., min_length=1, description="WireGuard public key")
    mtu: Optional[int] = Field(None, ge=0, le=65535, description="Interface MTU")
    table: Optional[TableMode] = Field(None, description="off, auto or a table number")
    preup: Optional[str] = Field(None, description="PreUp command")
    postup: Optional[str] = Field(None, description="PostUp command")
    predown: Optional[str] = Field(None, description="PreDown command")
    postdown: Optional[str] = Field(None, description="PostDown command")

    @classmethod
    def create(
        cls,
        name: str,
        internal_address,
        key_generator: Optional[KeyGenerator] = None,
        public_key: Optional[str] = None,
    ) -> 'Peer':
        """
        Create a peer with a fresh key pair.

        If a public key is supplied the peer keeps its own private key and
        no key generation takes place.

        Raises:
            KeyGenerationError: If the key generator fails
        """
        private_key = None
        if public_key is None:
            key_generator = key_generator or WgKeyGenerator()
            private_key, public_key = key_generator.generate_keypair()

        logger.debug(f"Created peer {name} (owns private key: {private_key is not None})")
        return cls(
            name=name,
            internal_address=internal_address,
            private_key=private_key,
            public_key=public_key,
        )

    def with_dns(self, dns) -> 'Peer':
        return self._with(dns=dns)

    def with_keepalive(self, keepalive: Optional[int]) -> 'Peer':
        return self._with(persistent_keepalive=keepalive)

    def with_allowed_networks(self, networks) -> 'Peer':
        return self._with(allowed_networks=list(networks))

    def with_allowed_network(self, network) -> 'Peer':
        return self._with(allowed_networks=[*self.allowed_networks, network])

    def push_allowed_network(self, network) -> None:
        self.allowed_networks = [*self.allowed_networks, network]

    def render_interface(self) -> Optional[str]:
        """
        Render the peer's own [Interface] section.

        Returns:
            The section text, or None if this side has no private key for the peer
        """
        if self.private_key is None:
            return None

        lines = [
            f"# {self.name}",
            "[Interface]",
            f"PrivateKey = {self.private_key}",
            f"Address = {self.internal_address}",
        ]
        lines.extend(render_optional_lines(self, PEER_INTERFACE_FIELDS))
        return "\n".join(lines)

    def render_peer(self, router: Router) -> str:
        """Render the [Peer] section this peer uses to reach the router."""
        lines = [
            f"# {router.name}",
            "[Peer]",
            f"PublicKey = {router.public_key}",
            f"Endpoint = {router.external_endpoint}",
        ]
        if self.persistent_keepalive is not None:
            lines.append(f"PersistentKeepalive = {self.persistent_keepalive}")
        lines.append(f"AllowedIPs = {join_networks(self.allowed_networks)}")
        return "\n".join(lines)
