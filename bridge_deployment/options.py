from pathlib import Path

import click

from bridge_deployment.constants import (
    DEFAULT_CONFIRMATION_TIMEOUT,
    DEPLOY_CONFIG_DIR,
    SUPPORTED_NETWORKS,
)
from bridge_deployment.types import ChecksumAddress, MinInt

bridge_network_option = click.option(
    "--bridge-network",
    "-b",
    help="Bridge network whose deployment config and registry are used",
    type=click.Choice(SUPPORTED_NETWORKS),
    required=True,
)

config_dir_option = click.option(
    "--config-dir",
    help="Directory holding the per-network deployment YAML files",
    type=click.Path(file_okay=False, exists=True, path_type=Path),
    default=DEPLOY_CONFIG_DIR,
    show_default=True,
)

autosign_option = click.option(
    "--autosign",
    help="Sign and send every transaction without asking",
    is_flag=True,
    default=False,
)

timeout_option = click.option(
    "--timeout",
    "-t",
    help="Seconds to wait for each transaction to be confirmed",
    type=MinInt(1),
    default=DEFAULT_CONFIRMATION_TIMEOUT,
    show_default=True,
)

bridge_address_option = click.option(
    "--bridge-address",
    "-a",
    help="Bridge proxy address; defaults to the one in the network registry",
    type=ChecksumAddress(),
    required=False,
)
