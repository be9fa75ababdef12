#!/usr/bin/python3
import logging

import click
from ape.cli import ConnectedProviderCommand, account_option, network_option

from bridge_deployment.config import ConfigRegistry
from bridge_deployment.confirm import _continue
from bridge_deployment.exceptions import BridgeDeploymentError
from bridge_deployment.options import (
    autosign_option,
    bridge_network_option,
    config_dir_option,
    timeout_option,
)
from bridge_deployment.orchestrator import BridgeOrchestrator, DeploymentContext
from bridge_deployment.provider import ApeChain, is_local_network


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@account_option()
@bridge_network_option
@config_dir_option
@autosign_option
@timeout_option
def cli(network, account, bridge_network, config_dir, autosign, timeout):
    """
    Deploy the Paradise bridge contracts of one network and apply its bridge settings.

    Safe to rerun: contracts already in the registry are reused and settings
    already present on-chain are skipped.

    ape run deploy_bridge --network ethereum:sepolia:infura --bridge-network rinkeby
    """
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    registry = ConfigRegistry(config_dir)
    try:
        config = registry.get(bridge_network)
        backend = ApeChain(account=account, autosign=autosign)
        context = DeploymentContext.create(
            config=config,
            backend=backend,
            autosign=autosign,
            timeout=timeout,
            check_chain_id=not is_local_network(),
        )
        info = backend.describe()
        info.append(f"Config: {registry.filepath(config.network)}")
        info.append(f"Registry: {config.registry_filepath}")
        click.echo("\n".join(info))
        if not autosign:
            _continue()

        orchestrator = BridgeOrchestrator(context)
        result = orchestrator.run()
    except BridgeDeploymentError as e:
        raise click.ClickException(str(e))

    orchestrator.finalize(result)
    click.secho(f"\nBridge {result.bridge.name} at {result.bridge.address}", fg="green")


if __name__ == "__main__":
    cli()
