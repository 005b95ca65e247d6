"""
Command handlers for the wg-router CLI.

Each handler works on a ConfigFile, calls save() at most once at the end of a
successful mutation, and returns the text to print.
"""

import logging
from pathlib import Path
from typing import List, Optional

from config.parser import (
    CONFIG_EXTENSION,
    ConfigFile,
    ConfigSource,
    Configuration,
    InvalidExtensionError,
)
from keys.generator import KeyGenerator
from models import AddressEndpoint, Peer, Router


logger = logging.getLogger(__name__)


class CommandError(Exception):
    """Raised when a command cannot be carried out."""
    pass


class DuplicatePeerError(CommandError):
    """Raised when adding a peer whose name is already taken."""
    pass


class PeerNotFoundError(CommandError):
    """Raised when a command names a peer that does not exist."""
    pass


class MissingKeyError(CommandError):
    """Raised when a peer's configuration is requested but its private key is not known."""
    pass


class DestinationExistsError(CommandError):
    """Raised when generate-example would overwrite an existing file."""
    pass


def example_configuration(key_generator: Optional[KeyGenerator] = None) -> Configuration:
    """Build the example configuration written by generate-example."""
    router = Router.create(
        "vpn-router",
        "10.0.1.1/24",
        AddressEndpoint(address="vpn.com", port=31337),
        key_generator=key_generator,
    )
    configuration = Configuration.new(router)

    configuration.push_peer(
        Peer.create("client-a", "10.0.1.2", key_generator=key_generator)
        .with_allowed_network("0.0.0.0/0")
        .with_keepalive(25)
        .with_dns("10.0.1.1")
    )
    configuration.push_peer(
        Peer.create("client-b", "10.0.1.3", key_generator=key_generator)
        .with_allowed_network("10.0.1.0/24")
        .with_keepalive(25)
    )
    return configuration


def generate_example(path: Path, force: bool = False,
                     key_generator: Optional[KeyGenerator] = None) -> str:
    path = Path(path)
    if path.suffix != CONFIG_EXTENSION:
        raise InvalidExtensionError(
            f"Configuration files must end in {CONFIG_EXTENSION}: {path}"
        )
    if path.exists() and not force:
        raise DestinationExistsError(f"{path} already exists, use --force to overwrite")

    configuration = example_configuration(key_generator)
    path.parent.mkdir(parents=True, exist_ok=True)
    ConfigFile(configuration, ConfigSource(name=path.stem, path=path)).save()
    return f"Example configuration saved to {path}"


def add_client(
    config_file: ConfigFile,
    name: str,
    internal_address: str,
    allowed_networks: List[str],
    dns: Optional[str] = None,
    persistent_keepalive: Optional[int] = None,
    public_key: Optional[str] = None,
    mtu: Optional[int] = None,
    table: Optional[str] = None,
    preup: Optional[str] = None,
    postup: Optional[str] = None,
    predown: Optional[str] = None,
    postdown: Optional[str] = None,
    key_generator: Optional[KeyGenerator] = None,
) -> str:
    """
    Add a peer to the configuration and save it.

    Raises:
        DuplicatePeerError: If a peer with the same name exists
        KeyGenerationError: If no public key was given and key generation fails
    """
    configuration = config_file.configuration
    if configuration.find_peer_by_name(name) is not None:
        raise DuplicatePeerError(f"Client {name} already exists")

    peer = (
        Peer.create(name, internal_address, key_generator=key_generator, public_key=public_key)
        .with_allowed_networks(allowed_networks)
        .with_dns(dns)
        .with_keepalive(persistent_keepalive)
        .with_mtu(mtu)
        .with_table(table)
        .with_hooks(preup=preup, postup=postup, predown=predown, postdown=postdown)
    )

    configuration.push_peer(peer)
    config_file.save()
    logger.info(f"Added client {name} ({peer.internal_address})")
    return f"Client {name} added"


def remove_client(config_file: ConfigFile, name: str) -> str:
    if not config_file.configuration.remove_peer_by_name(name):
        raise PeerNotFoundError(f"Failed to find and remove client {name}")

    config_file.save()
    logger.info(f"Removed client {name}")
    return f"Client {name} removed"


def router_config(config_file: ConfigFile) -> str:
    return config_file.configuration.render_router_config()


def client_config(config_file: ConfigFile, name: str) -> str:
    """
    Render the wg-quick configuration of a peer.

    Raises:
        PeerNotFoundError: If the peer does not exist
        MissingKeyError: If the peer's private key is not stored in this configuration
    """
    configuration = config_file.configuration
    peer = configuration.find_peer_by_name(name)
    if peer is None:
        raise PeerNotFoundError(f"Could not find client {name}")

    rendered = configuration.render_peer_config(name)
    if rendered is None:
        raise MissingKeyError(
            f"Client {name} has no private key, it must be configured on its own device"
        )
    return rendered
