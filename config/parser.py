"""
Configuration file handling for the WireGuard router configuration manager.

A configuration is one router plus an ordered list of peers, stored as a
YAML document. Where a configuration was loaded from is tracked separately
in a ConfigSource so the persisted model stays free of bookkeeping.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from models import Peer, Router


logger = logging.getLogger(__name__)

CONFIG_EXTENSION = ".yaml"
CONFIG_HOME_ENV = "WG_ROUTER_HOME"
DEFAULT_CONFIG_DIR = Path.home() / ".wg_router"


class ConfigurationError(Exception):
    """Raised when a configuration cannot be loaded or saved."""
    pass


class NotAFileError(ConfigurationError):
    """Raised when a configuration path does not point to a regular file."""
    pass


class InvalidExtensionError(ConfigurationError):
    """Raised when a configuration path does not end in the YAML extension."""
    pass


class ConfigNotFoundError(ConfigurationError):
    """Raised when no configuration exists under the requested name."""
    pass


class DeserializationError(ConfigurationError):
    """Raised when a configuration file has malformed or invalid content."""
    pass


class NoDestinationError(ConfigurationError):
    """Raised when saving a configuration that was never associated with a file."""
    pass


def config_dir() -> Path:
    """Directory holding named configurations, overridable with $WG_ROUTER_HOME."""
    override = os.environ.get(CONFIG_HOME_ENV)
    if override:
        return Path(override).expanduser()
    return DEFAULT_CONFIG_DIR


def config_path_for_name(name: str, directory: Optional[Path] = None) -> Path:
    """Canonical path of the configuration called ``name``."""
    return Path(directory or config_dir()) / f"{name}{CONFIG_EXTENSION}"


class Configuration(BaseModel):
    """
    A router and the peers it serves.

    Peer names are expected to be unique, but that is checked by the commands
    adding peers, not by this model.

    Attributes:
        router: The central router
        peers: Peers in the order they were added
    """
    model_config = ConfigDict(populate_by_name=True)

    router: Router = Field(..., description="The central router")
    peers: List[Peer] = Field(
        default_factory=list,
        validation_alias=AliasChoices('peers', 'clients'),
        description="Peers connecting to the router"
    )

    @classmethod
    def new(cls, router: Router) -> 'Configuration':
        return cls(router=router, peers=[])

    def push_peer(self, peer: Peer) -> None:
        self.peers.append(peer)

    def find_peer_by_name(self, name: str) -> Optional[Peer]:
        """Return the first peer called ``name``, or None."""
        return next((peer for peer in self.peers if peer.name == name), None)

    def remove_peer_by_name(self, name: str) -> bool:
        """
        Remove every peer called ``name``.

        Returns:
            True if at least one peer was removed
        """
        remaining = [peer for peer in self.peers if peer.name != name]
        removed = len(self.peers) - len(remaining)
        if removed:
            self.peers = remaining
            logger.debug(f"Removed {removed} peer(s) named {name}")
        return removed > 0

    def render_peer_config(self, name: str) -> Optional[str]:
        """
        Render the complete wg-quick configuration for a peer.

        Returns:
            Interface and peer sections separated by a blank line, or None if
            the peer is unknown or has no private key on this side
        """
        peer = self.find_peer_by_name(name)
        if peer is None:
            return None

        interface = peer.render_interface()
        if interface is None:
            return None
        return f"{interface}\n\n{peer.render_peer(self.router)}"

    def render_router_config(self) -> str:
        """Render the router's interface section followed by one section per peer."""
        sections = [self.router.render_interface()]
        sections.extend(self.router.render_peer(peer) for peer in self.peers)
        return "\n\n".join(sections)

    def to_yaml(self) -> str:
        data = self.model_dump(mode='json', exclude_none=True)
        return yaml.safe_dump(data, sort_keys=False, default_flow_style=False, allow_unicode=True)

    @classmethod
    def from_yaml(cls, text: str) -> 'Configuration':
        """
        Parse a configuration from YAML text.

        Raises:
            DeserializationError: If the text is not valid YAML or does not
                describe a configuration
        """
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise DeserializationError(f"Failed to parse YAML: {e}") from e

        if data is None:
            raise DeserializationError("Configuration file is empty")
        if not isinstance(data, dict):
            raise DeserializationError(
                f"Configuration must be a mapping, got {type(data).__name__}"
            )

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise DeserializationError(f"Invalid configuration: {e}") from e


@dataclass(frozen=True)
class ConfigSource:
    """Where a configuration was loaded from."""
    name: str
    path: Path


class ConfigFile:
    """
    A configuration together with the file it belongs to.

    Attributes:
        configuration: The loaded or freshly created configuration
        source: Name and path the configuration was loaded from, None if fresh
    """

    def __init__(self, configuration: Configuration, source: Optional[ConfigSource] = None):
        self.configuration = configuration
        self.source = source

    @classmethod
    def open_from_path(cls, path: Union[str, Path]) -> 'ConfigFile':
        """
        Load a configuration from a YAML file.

        Raises:
            NotAFileError: If path is not a regular file
            InvalidExtensionError: If path does not end in .yaml
            DeserializationError: If the file content is malformed
        """
        path = Path(path)
        if not path.is_file():
            raise NotAFileError(f"Not a file: {path}")
        if path.suffix != CONFIG_EXTENSION:
            raise InvalidExtensionError(
                f"Configuration files must end in {CONFIG_EXTENSION}: {path}"
            )

        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise DeserializationError(f"Failed to read {path}: {e}") from e

        configuration = Configuration.from_yaml(text)
        source = ConfigSource(name=path.stem, path=path)
        logger.info(f"Loaded configuration '{source.name}' from {path} "
                    f"({len(configuration.peers)} peers)")
        return cls(configuration, source)

    @classmethod
    def open_from_name(cls, name: str, config_dir: Optional[Path] = None) -> 'ConfigFile':
        """
        Load the configuration called ``name`` from the configuration directory.

        Raises:
            ConfigNotFoundError: If no such configuration exists
        """
        path = config_path_for_name(name, config_dir)
        if not path.exists():
            raise ConfigNotFoundError(f"Configuration '{name}' not found at {path}")
        return cls.open_from_path(path)

    def save(self) -> None:
        """
        Overwrite the source file with the current configuration.

        Raises:
            NoDestinationError: If the configuration has no source file
            ConfigurationError: If the file cannot be written
        """
        if self.source is None:
            raise NoDestinationError("Configuration has no file to save to")

        text = self.configuration.to_yaml()
        try:
            self.source.path.write_text(text, encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Failed to write {self.source.path}: {e}") from e
        logger.info(f"Saved configuration '{self.source.name}' to {self.source.path}")
