from enum import Enum
from pathlib import Path

import bridge_deployment

#
# Filesystem
#

DEPLOYMENT_DIR = Path(bridge_deployment.__file__).parent
DEPLOY_CONFIG_DIR = DEPLOYMENT_DIR / "deploy_config"
ARTIFACTS_DIR = DEPLOYMENT_DIR.parent / "artifacts"

TOKEN_TABLE_SUFFIX = "-tokens"

#
# Networks
#


class Network(str, Enum):
    RINKEBY = "rinkeby"  # origin chain
    PARADISE = "paradise"  # sidechain
    BSC_TESTNET = "bsctest"

    def __str__(self) -> str:
        return self.value


SUPPORTED_NETWORKS = [network.value for network in Network]

#
# Contracts
#

GAS_LIMIT = 5_500_000

IMPL_PREFIX = "Impl"
UPBEACON_PREFIX = "UpBeacon"
PROXY_SUFFIX = "Proxy"

BEACON_CONTRACT_TYPE = "UpgradeableBeacon"
BEACON_PROXY_CONTRACT_TYPE = "BeaconProxy"
BRIDGE_ERC20_CONTRACT_TYPE = "BridgeERC20"

BRIDGE_APPROVER_ROLE = "BRIDGE_APPROVER_ROLE"

ZERO_ADDRESS = "0x" + "0" * 40
MAX_UINT256 = 2**256 - 1

#
# Transactions
#

TX_SUCCESS_STATUS = 1
DEFAULT_CONFIRMATION_TIMEOUT = 300  # seconds
DEFAULT_POLL_DELAY = 1  # seconds
