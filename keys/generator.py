"""
Key generation for routers and peers.

Key material is produced by the ``wg`` binary from wireguard-tools. The
capability is exposed through the KeyGenerator interface so that callers
(and tests) can substitute their own implementation.
"""

import logging
import subprocess
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple


logger = logging.getLogger(__name__)


class KeyGenerationError(Exception):
    """Raised when a key pair cannot be generated."""
    pass


class KeyGenerator(ABC):
    """
    Interface for producing WireGuard key pairs.

    Implementations must return matching (private_key, public_key) pairs and
    raise KeyGenerationError on failure.
    """

    @abstractmethod
    def generate_keypair(self) -> Tuple[str, str]:
        """Return a fresh (private_key, public_key) pair."""
        pass

    @abstractmethod
    def public_key(self, private_key: str) -> str:
        """Derive the public key for the given private key."""
        pass


class WgKeyGenerator(KeyGenerator):
    """
    Key generator backed by ``wg genkey`` and ``wg pubkey``.

    Attributes:
        wg_binary: Name or path of the wg executable
        timeout: Seconds to wait for each wg invocation
    """

    def __init__(self, wg_binary: str = "wg", timeout: float = 5):
        self.wg_binary = wg_binary
        self.timeout = timeout

    def _run(self, args: List[str], stdin: Optional[str] = None) -> str:
        """
        Run a wg subcommand and return its stripped stdout.

        Raises:
            KeyGenerationError: If wg is missing, fails, times out or prints nothing
        """
        command = [self.wg_binary, *args]
        try:
            result = subprocess.run(
                command,
                input=stdin,
                capture_output=True,
                text=True,
                check=True,
                timeout=self.timeout
            )
        except FileNotFoundError as e:
            logger.error(f"'{self.wg_binary}' not found, is wireguard-tools installed?")
            raise KeyGenerationError(f"'{self.wg_binary}' command not found") from e
        except subprocess.TimeoutExpired as e:
            logger.error(f"Timeout executing '{' '.join(command)}'")
            raise KeyGenerationError(f"Timeout executing '{' '.join(command)}'") from e
        except subprocess.CalledProcessError as e:
            logger.error(f"'{' '.join(command)}' failed: {e.stderr}")
            raise KeyGenerationError(f"'{' '.join(command)}' failed: {(e.stderr or '').strip()}") from e

        output = result.stdout.strip()
        if not output:
            raise KeyGenerationError(f"'{' '.join(command)}' produced no output")
        return output

    def generate_keypair(self) -> Tuple[str, str]:
        private_key = self._run(["genkey"])
        public_key = self.public_key(private_key)
        logger.debug("Generated new key pair")
        return private_key, public_key

    def public_key(self, private_key: str) -> str:
        return self._run(["pubkey"], stdin=private_key)
