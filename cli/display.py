"""Table output for the list command."""

from rich import box
from rich.table import Table

from config.parser import Configuration


def peer_table(configuration: Configuration) -> Table:
    """Build a table with the router on the first row and one row per peer."""
    table = Table(show_header=True, box=box.SIMPLE)
    table.add_column("Name", style="cyan")
    table.add_column("Internal Address", style="yellow")
    table.add_column("Allowed IPs", style="green")

    router = configuration.router
    table.add_row(router.name, str(router.internal_network), "")

    for peer in configuration.peers:
        table.add_row(
            peer.name,
            str(peer.internal_address),
            ",".join(str(network) for network in peer.allowed_networks),
        )
    return table
