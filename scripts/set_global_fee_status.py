#!/usr/bin/python3
import logging

import click
from ape.cli import ConnectedProviderCommand, account_option, network_option

from bridge_deployment.bridge import BridgeContract
from bridge_deployment.config import ConfigRegistry, proxy_name
from bridge_deployment.confirmation import TransactionWaiter
from bridge_deployment.exceptions import BridgeDeploymentError
from bridge_deployment.options import (
    autosign_option,
    bridge_address_option,
    bridge_network_option,
    config_dir_option,
    timeout_option,
)
from bridge_deployment.params import Transactor
from bridge_deployment.provider import ApeChain
from bridge_deployment.registry import DeploymentLedger, DeploymentRecord


def _external_proxy(name, contract_type, address, chain_id) -> DeploymentRecord:
    """A bridge proxy that is not in the local registry."""
    return DeploymentRecord(
        chain_id=chain_id,
        name=name,
        contract_type=contract_type,
        address=address,
        abi=list(),
        tx_hash="",
        block_number=0,
        gas_used=0,
        deployer="",
    )


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@account_option()
@bridge_network_option
@bridge_address_option
@config_dir_option
@autosign_option
@timeout_option
@click.option(
    "--status/--no-status",
    help="Enable or disable bridge fees",
    default=True,
    show_default=True,
)
def cli(network, account, bridge_network, bridge_address, config_dir, autosign, timeout, status):
    """Toggle the global fee status of a deployed bridge."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    try:
        config = ConfigRegistry(config_dir).get(bridge_network)
        backend = ApeChain(account=account, autosign=autosign)
        base = next(e.base for e in config.contracts if config.bridge in e.proxy_names)
        if bridge_address:
            proxy = _external_proxy(config.bridge, base, bridge_address, backend.chain_id)
        else:
            ledger = DeploymentLedger(config.registry_filepath, chain_id=backend.chain_id)
            proxy = ledger.resolve(config.bridge)

        transactor = Transactor(
            backend, waiter=TransactionWaiter(backend, timeout=timeout), autosign=autosign
        )
        bridge = BridgeContract(proxy, base, transactor)
        if bridge.global_fee_status() == status:
            click.echo(f"Global fee status of {bridge} is already {status}")
            return
        receipt = bridge.set_global_fee_status(status)
    except BridgeDeploymentError as e:
        raise click.ClickException(str(e))

    click.secho(f"Global fee status set to {status} in {receipt.txn_hash}", fg="green")


if __name__ == "__main__":
    cli()
