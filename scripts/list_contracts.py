#!/usr/bin/python3
from pathlib import Path
from typing import List, Optional, Tuple

import click

from bridge_deployment.config import ConfigRegistry
from bridge_deployment.constants import SUPPORTED_NETWORKS
from bridge_deployment.options import config_dir_option
from bridge_deployment.registry import DeploymentRecord, LocalTokenTable, read_registry


def _get_registry_entries(
    registry: ConfigRegistry, network: Optional[str] = None
) -> List[Tuple[str, Path, List[DeploymentRecord]]]:
    """Parse the registry files for the given network or all configured networks."""
    registry_entries = list()
    for configured in registry.networks():
        if network and network != configured.value:
            continue
        config = registry.get(configured)
        filepath = config.registry_filepath
        entries = read_registry(filepath) if filepath.exists() else list()
        registry_entries.append((configured.value, filepath, entries))
    return registry_entries


def _display_registry_entries(
    registry_entries: List[Tuple[str, Path, List[DeploymentRecord]]]
) -> None:
    for network, filepath, entries in registry_entries:
        click.secho(f"\n{network.capitalize()} ({filepath})", fg="green")
        if not entries:
            click.secho("    nothing deployed yet", fg="yellow")
        for index, entry in enumerate(entries, start=1):
            click.secho(
                f"    {index}. {entry.name} ({entry.contract_type}) {entry.address}", fg="cyan"
            )

        tokens = LocalTokenTable.for_registry(filepath).read()
        for name, address in sorted(tokens.items()):
            click.secho(f"    token {name} {address}", fg="magenta")


@click.command(name="list-contracts")
@config_dir_option
@click.option(
    "--bridge-network",
    "-b",
    help="Bridge network",
    type=click.Choice(SUPPORTED_NETWORKS),
)
def cli(config_dir, bridge_network):
    """List all contracts in the registries. Optionally filter by network."""
    registry = ConfigRegistry(config_dir)
    _display_registry_entries(_get_registry_entries(registry, bridge_network))


if __name__ == "__main__":
    cli()
