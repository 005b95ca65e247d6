"""
Main entry point for the wg-router command line tool.

Parses arguments, opens the configuration named on the command line and
dispatches to the handlers in cli.commands.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console

from cli import commands
from cli.display import peer_table
from config.parser import ConfigFile, ConfigurationError, config_path_for_name
from keys.generator import KeyGenerationError


logger = logging.getLogger(__name__)


def add_locator_arguments(parser: argparse.ArgumentParser) -> None:
    """Add the mutually exclusive --config / --name options."""
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("-c", "--config", type=Path, help="Path to a .yaml configuration file")
    group.add_argument("-n", "--name", help="Name of a configuration in the configuration directory")


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wg-router",
        description="Manage a WireGuard router and its clients in a YAML file",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    example_parser = subparsers.add_parser("generate-example", help="Generate an example configuration file")
    add_locator_arguments(example_parser)
    example_parser.add_argument("--force", action="store_true", help="Overwrite an existing file")

    list_parser = subparsers.add_parser("list", help="List clients in this configuration")
    add_locator_arguments(list_parser)

    add_parser = subparsers.add_parser("add-client", help="Add a client to the configuration")
    add_locator_arguments(add_parser)
    add_parser.add_argument("client_name", help="Name of client to add")
    add_parser.add_argument("-i", "--internal-address", required=True,
                            help="Internal address for the new client")
    add_parser.add_argument("-a", "--allowed-ips", nargs="+", required=True,
                            help="Subnets routed through the VPN for this client (e.g. 10.0.0.1/32)")
    add_parser.add_argument("-d", "--dns", help="The DNS server to use")
    add_parser.add_argument("-k", "--persistent-keepalive", type=int,
                            help="Persistent keepalive for the client, in seconds")
    add_parser.add_argument("--pub", dest="public_key",
                            help="Use the given public key instead of generating a key pair")
    add_parser.add_argument("--mtu", type=int, help="Interface MTU")
    add_parser.add_argument("--table", help="Routing table: off, auto or a table number")
    add_parser.add_argument("--preup", help="PreUp command")
    add_parser.add_argument("--postup", help="PostUp command")
    add_parser.add_argument("--predown", help="PreDown command")
    add_parser.add_argument("--postdown", help="PostDown command")

    remove_parser = subparsers.add_parser("remove-client", help="Remove a client from the configuration")
    add_locator_arguments(remove_parser)
    remove_parser.add_argument("client_name", help="Name of client to remove")

    router_parser = subparsers.add_parser("router-config", help="Print the router configuration")
    add_locator_arguments(router_parser)

    client_parser = subparsers.add_parser("client-config", help="Print the client configuration")
    add_locator_arguments(client_parser)
    client_parser.add_argument("client_name", help="Name of the client's configuration to print")

    return parser


def locator_path(args: argparse.Namespace) -> Path:
    if args.config is not None:
        return args.config
    return config_path_for_name(args.name)


def open_config(args: argparse.Namespace) -> ConfigFile:
    if args.config is not None:
        return ConfigFile.open_from_path(args.config)
    return ConfigFile.open_from_name(args.name)


def run(args: argparse.Namespace, console: Console) -> None:
    if args.command == "generate-example":
        console.print(commands.generate_example(locator_path(args), force=args.force))
        return

    config_file = open_config(args)

    if args.command == "list":
        console.print(peer_table(config_file.configuration))
    elif args.command == "add-client":
        console.print(commands.add_client(
            config_file,
            args.client_name,
            args.internal_address,
            args.allowed_ips,
            dns=args.dns,
            persistent_keepalive=args.persistent_keepalive,
            public_key=args.public_key,
            mtu=args.mtu,
            table=args.table,
            preup=args.preup,
            postup=args.postup,
            predown=args.predown,
            postdown=args.postdown,
        ))
    elif args.command == "remove-client":
        console.print(commands.remove_client(config_file, args.client_name))
    elif args.command == "router-config":
        # Plain print: rich would soft-wrap long key lines
        print(commands.router_config(config_file))
    elif args.command == "client-config":
        print(commands.client_config(config_file, args.client_name))


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the wg-router program.
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    # Configure logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        run(args, Console(highlight=False, markup=False))
    except (ConfigurationError, commands.CommandError, KeyGenerationError) as e:
        logger.error(f"{args.command} failed: {e}")
        sys.exit(1)
    except ValueError as e:
        # pydantic validation of command line values
        logger.error(f"{args.command} failed: invalid value: {e}")
        sys.exit(1)
    return 0


if __name__ == "__main__":
    sys.exit(main())
