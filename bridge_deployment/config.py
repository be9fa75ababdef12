"""
Per-network deployment configuration.

Each supported network has one YAML file in ``deploy_config/`` describing the
contracts to deploy and the bridge settings to apply afterwards. The raw YAML is
validated once and turned into an immutable :class:`DeployConfig`.
"""
import typing
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional, Tuple, Union

from eth_typing import ChecksumAddress
from eth_utils import is_address, to_checksum_address

from bridge_deployment.constants import (
    ARTIFACTS_DIR,
    DEPLOY_CONFIG_DIR,
    IMPL_PREFIX,
    MAX_UINT256,
    PROXY_SUFFIX,
    SUPPORTED_NETWORKS,
    UPBEACON_PREFIX,
    Network,
)
from bridge_deployment.exceptions import ConfigurationError
from bridge_deployment.utils import _load_yaml

#
# Address references
#


class LiteralAddress(NamedTuple):
    address: ChecksumAddress

    def resolve(self, deployer_address: ChecksumAddress) -> ChecksumAddress:
        return self.address


class DeployerSelf:
    """Stands for the address of whichever account runs the deployment."""

    INDICATOR = "deployer"

    def resolve(self, deployer_address: ChecksumAddress) -> ChecksumAddress:
        return deployer_address

    def __eq__(self, other) -> bool:
        return isinstance(other, DeployerSelf)

    def __hash__(self) -> int:
        return hash(self.INDICATOR)

    def __repr__(self) -> str:
        return "DeployerSelf()"


DEPLOYER = DeployerSelf()

AddressReference = Union[LiteralAddress, DeployerSelf]


def parse_address_reference(value: Any, field: str) -> AddressReference:
    if isinstance(value, str) and value.lstrip("$") == DeployerSelf.INDICATOR:
        return DEPLOYER
    if not isinstance(value, str) or not is_address(value):
        raise ConfigurationError(f"'{field}' must be an address or 'deployer', got {value!r}")
    return LiteralAddress(to_checksum_address(value))


#
# Contract list
#


class Single(NamedTuple):
    """One implementation, one beacon and one proxy, all named after ``name``."""

    name: str

    @property
    def base(self) -> str:
        return self.name

    @property
    def proxy_names(self) -> List[str]:
        return [proxy_name(self.name)]


class Grouped(NamedTuple):
    """One implementation and beacon for ``base`` shared by a proxy per child."""

    base: str
    children: Tuple[str, ...]

    @property
    def proxy_names(self) -> List[str]:
        return [proxy_name(child) for child in self.children]


ContractListEntry = Union[Single, Grouped]


def impl_name(base: str) -> str:
    return f"{IMPL_PREFIX}{base}"


def beacon_name(base: str) -> str:
    return f"{UPBEACON_PREFIX}{base}"


def proxy_name(name: str) -> str:
    return f"{name}{PROXY_SUFFIX}"


def _contract_names(contracts: List[ContractListEntry]) -> List[str]:
    """Returns every ledger name the contract list deploys under, rejecting collisions."""
    names = list()
    for entry in contracts:
        names.extend([impl_name(entry.base), beacon_name(entry.base)] + entry.proxy_names)
    seen = set()
    for name in names:
        if name in seen:
            raise ConfigurationError(f"Contract name '{name}' is deployed by more than one entry.")
        seen.add(name)
    return names


def _parse_contract_list(raw: Any) -> List[ContractListEntry]:
    if not isinstance(raw, list) or not raw:
        raise ConfigurationError("'contracts' must be a non-empty list.")

    entries = list()
    for item in raw:
        if isinstance(item, str):
            entries.append(Single(item))
        elif isinstance(item, dict) and len(item) == 1:
            base, children = list(item.items())[0]
            if not isinstance(children, list) or not children:
                raise ConfigurationError(f"Contract group '{base}' must list its children.")
            if len(set(children)) != len(children):
                raise ConfigurationError(f"Contract group '{base}' has duplicate children.")
            entries.append(Grouped(base, tuple(str(child) for child in children)))
        else:
            raise ConfigurationError("Malformed 'contracts' entry in deployment config.")
    return entries


#
# Bridge settings
#


class TokenBridgeConfig(NamedTuple):
    """Per-token bridge policy, in the field order of the on-chain struct."""

    enabled: bool
    burn: bool
    min_bridge_amount: int
    max_bridge_amount: int
    bridge_fee: int

    @classmethod
    def from_dict(cls, data: Dict, field: str) -> "TokenBridgeConfig":
        _check_keys(
            data,
            {"enabled", "burn", "minBridgeAmount", "maxBridgeAmount", "bridgeFee"},
            field,
        )
        return cls(
            enabled=_bool(data["enabled"], f"{field}.enabled"),
            burn=_bool(data["burn"], f"{field}.burn"),
            min_bridge_amount=_amount(data["minBridgeAmount"], f"{field}.minBridgeAmount"),
            max_bridge_amount=_amount(data["maxBridgeAmount"], f"{field}.maxBridgeAmount"),
            bridge_fee=_amount(data["bridgeFee"], f"{field}.bridgeFee"),
        )


class ApprovalConfig(NamedTuple):
    enabled: bool
    transfer_allowed: bool

    @classmethod
    def from_dict(cls, data: Dict, field: str) -> "ApprovalConfig":
        _check_keys(data, {"enabled", "transferAllowed"}, field)
        return cls(
            enabled=_bool(data["enabled"], f"{field}.enabled"),
            transfer_allowed=_bool(data["transferAllowed"], f"{field}.transferAllowed"),
        )


class BridgeableToken(NamedTuple):
    token: str  # literal address or name of a locally deployed token
    target_chain_id: int
    config: TokenBridgeConfig


class BridgeApproval(NamedTuple):
    token: str
    config: ApprovalConfig


class BridgeERC20DeployConfig(NamedTuple):
    name: str
    symbol: str
    decimals: int
    total_supply_with_decimals: int

    @property
    def total_supply(self) -> int:
        return self.total_supply_with_decimals * 10**self.decimals


class DeployConfig(NamedTuple):
    """Everything needed to deploy and set up the bridge on one network."""

    network: Network
    chain_id: int
    contracts: Tuple[ContractListEntry, ...]
    bridge: str
    artifacts_dir: Path
    registry_filename: str
    fee_recipient: Optional[AddressReference] = None
    bridge_running_status: Optional[bool] = None
    global_fee_status: Optional[bool] = None
    bridge_to_native_approval_status: Optional[bool] = None
    native_tokens_bridge_config: Optional[TokenBridgeConfig] = None
    bridge_approvers: Tuple[AddressReference, ...] = ()
    bridgeable_tokens: Tuple[BridgeableToken, ...] = ()
    bridge_approval_configs: Tuple[BridgeApproval, ...] = ()
    bridge_erc20_deploy_configs: Tuple[BridgeERC20DeployConfig, ...] = ()
    deposit_native_tokens_amount_ether: Optional[int] = None

    @property
    def registry_filepath(self) -> Path:
        return self.artifacts_dir / self.registry_filename

    @classmethod
    def from_dict(cls, network: Network, data: Dict) -> "DeployConfig":
        if not isinstance(data, dict):
            raise ConfigurationError(f"Deployment config for '{network}' must be a mapping.")
        _check_keys(data, _CONFIG_KEYS, str(network), required=_REQUIRED_CONFIG_KEYS)

        deployment = data["deployment"] or dict()
        if not isinstance(deployment, dict):
            raise ConfigurationError(f"'deployment' for '{network}' must be a mapping.")
        chain_id = deployment.get("chain_id")
        if not isinstance(chain_id, int):
            raise ConfigurationError(f"chain_id is not set for '{network}'.")

        contracts = _parse_contract_list(data["contracts"])
        contract_names = _contract_names(contracts)
        all_proxies = [name for entry in contracts for name in entry.proxy_names]
        bridge = data.get("bridge") or all_proxies[0]
        if bridge not in all_proxies:
            raise ConfigurationError(f"Bridge '{bridge}' is not one of the deployed proxies.")

        artifacts = data.get("artifacts") or dict()
        artifacts_dir = Path(artifacts.get("dir", ARTIFACTS_DIR))
        registry_filename = artifacts.get("filename", f"{network}.json")

        fee_recipient = data.get("feeRecipient")
        if fee_recipient is not None:
            fee_recipient = parse_address_reference(fee_recipient, "feeRecipient")

        native_config = data.get("nativeTokensBridgeConfig")
        if native_config is not None:
            native_config = TokenBridgeConfig.from_dict(native_config, "nativeTokensBridgeConfig")

        deposit = data.get("depositNativeTokensAmountEther")
        if deposit is not None:
            deposit = _ether_amount(deposit, "depositNativeTokensAmountEther")

        erc20_configs = _parse_erc20_configs(data.get("bridgeERC20DeployConfigs") or [])
        for token in erc20_configs:
            if token.name in contract_names:
                raise ConfigurationError(
                    f"Token name '{token.name}' is already used by a bridge contract."
                )

        return cls(
            network=network,
            chain_id=chain_id,
            contracts=tuple(contracts),
            bridge=bridge,
            artifacts_dir=artifacts_dir,
            registry_filename=registry_filename,
            fee_recipient=fee_recipient,
            bridge_running_status=_optional_bool(data, "bridgeRunningStatus"),
            global_fee_status=_optional_bool(data, "globalFeeStatus"),
            bridge_to_native_approval_status=_optional_bool(data, "bridgeToNativeApprovalStatus"),
            native_tokens_bridge_config=native_config,
            bridge_approvers=_parse_approvers(data.get("bridgeApprovers") or []),
            bridgeable_tokens=_parse_bridgeable_tokens(data.get("bridgeableTokens") or []),
            bridge_approval_configs=_parse_approval_configs(
                data.get("bridgeApprovalConfigs") or []
            ),
            bridge_erc20_deploy_configs=erc20_configs,
            deposit_native_tokens_amount_ether=deposit,
        )

    @classmethod
    def from_yaml(cls, network: Network, filepath: Path) -> "DeployConfig":
        return cls.from_dict(network, _load_yaml(filepath))


_REQUIRED_CONFIG_KEYS = {"deployment", "contracts"}
_CONFIG_KEYS = _REQUIRED_CONFIG_KEYS | {
    "artifacts",
    "bridge",
    "feeRecipient",
    "bridgeRunningStatus",
    "globalFeeStatus",
    "bridgeToNativeApprovalStatus",
    "nativeTokensBridgeConfig",
    "bridgeApprovers",
    "bridgeableTokens",
    "bridgeApprovalConfigs",
    "bridgeERC20DeployConfigs",
    "depositNativeTokensAmountEther",
}


def _check_keys(data: Any, allowed: typing.Set[str], field: str, required=None) -> None:
    if not isinstance(data, dict):
        raise ConfigurationError(f"'{field}' must be a mapping.")
    required = allowed if required is None else required
    missing = required - set(data)
    if missing:
        raise ConfigurationError(f"'{field}' is missing {', '.join(sorted(missing))}.")
    unknown = set(data) - allowed
    if unknown:
        raise ConfigurationError(f"'{field}' has unknown keys {', '.join(sorted(unknown))}.")


def _bool(value: Any, field: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigurationError(f"'{field}' must be true or false, got {value!r}")
    return value


def _optional_bool(data: Dict, key: str) -> Optional[bool]:
    value = data.get(key)
    return None if value is None else _bool(value, key)


def _amount(value: Any, field: str) -> int:
    if value == "max":
        return MAX_UINT256
    if isinstance(value, str):
        try:
            value = int(value, 0)
        except ValueError:
            raise ConfigurationError(f"'{field}' is not a valid integer: {value!r}")
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= MAX_UINT256:
        raise ConfigurationError(f"'{field}' must be an unsigned integer, got {value!r}")
    return value


def _ether_amount(value: Any, field: str) -> int:
    if value == "max":
        raise ConfigurationError(f"'{field}' must be a number of ether, not 'max'.")
    value = _amount(value, field)
    if value * 10**18 > MAX_UINT256:
        raise ConfigurationError(f"'{field}' is too large to be expressed in wei.")
    return value


def _token_identifier(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value:
        raise ConfigurationError(f"'{field}' must be a token address or token name.")
    return to_checksum_address(value) if is_address(value) else value


def _ensure_unique(identifiers: List[str], field: str) -> None:
    seen = set()
    for identifier in identifiers:
        if identifier in seen:
            raise ConfigurationError(f"Duplicate token '{identifier}' in '{field}'.")
        seen.add(identifier)


def _parse_approvers(raw: List) -> Tuple[AddressReference, ...]:
    approvers = list()
    for index, value in enumerate(raw):
        approver = parse_address_reference(value, f"bridgeApprovers[{index}]")
        if approver not in approvers:
            approvers.append(approver)
    return tuple(approvers)


def _parse_bridgeable_tokens(raw: List) -> Tuple[BridgeableToken, ...]:
    tokens = list()
    for index, item in enumerate(raw):
        field = f"bridgeableTokens[{index}]"
        _check_keys(item, {"token", "targetChainId", "config"}, field)
        target_chain_id = item["targetChainId"]
        if isinstance(target_chain_id, bool) or not isinstance(target_chain_id, int):
            raise ConfigurationError(f"'{field}.targetChainId' must be an integer.")
        tokens.append(
            BridgeableToken(
                token=_token_identifier(item["token"], f"{field}.token"),
                target_chain_id=target_chain_id,
                config=TokenBridgeConfig.from_dict(item["config"], f"{field}.config"),
            )
        )
    _ensure_unique([t.token for t in tokens], "bridgeableTokens")
    return tuple(tokens)


def _parse_approval_configs(raw: List) -> Tuple[BridgeApproval, ...]:
    approvals = list()
    for index, item in enumerate(raw):
        field = f"bridgeApprovalConfigs[{index}]"
        _check_keys(item, {"token", "config"}, field)
        approvals.append(
            BridgeApproval(
                token=_token_identifier(item["token"], f"{field}.token"),
                config=ApprovalConfig.from_dict(item["config"], f"{field}.config"),
            )
        )
    _ensure_unique([a.token for a in approvals], "bridgeApprovalConfigs")
    return tuple(approvals)


def _parse_erc20_configs(raw: List) -> Tuple[BridgeERC20DeployConfig, ...]:
    configs = list()
    for index, item in enumerate(raw):
        field = f"bridgeERC20DeployConfigs[{index}]"
        _check_keys(item, {"name", "symbol", "decimals", "totalSupplyWithDecimals"}, field)
        decimals = _amount(item["decimals"], f"{field}.decimals")
        if decimals > 255:
            raise ConfigurationError(f"'{field}.decimals' must fit in a uint8.")
        configs.append(
            BridgeERC20DeployConfig(
                name=str(item["name"]),
                symbol=str(item["symbol"]),
                decimals=decimals,
                total_supply_with_decimals=_amount(
                    item["totalSupplyWithDecimals"], f"{field}.totalSupplyWithDecimals"
                ),
            )
        )
    _ensure_unique([c.name for c in configs], "bridgeERC20DeployConfigs")
    return tuple(configs)


#
# Registry
#


def parse_network(value: Union[str, Network]) -> Network:
    try:
        return Network(value)
    except ValueError:
        raise ConfigurationError(
            f"Unconfigured network: '{value}' (expected one of {', '.join(SUPPORTED_NETWORKS)})"
        )


class ConfigRegistry:
    """
    Loads and caches one :class:`DeployConfig` per network.

    A network is registered when its YAML file exists in ``config_dir``.
    """

    def __init__(self, config_dir: Path = DEPLOY_CONFIG_DIR):
        self.config_dir = Path(config_dir)
        self._configs: Dict[Network, DeployConfig] = dict()

    def filepath(self, network: Network) -> Path:
        return self.config_dir / f"{network.value}.yml"

    def networks(self) -> List[Network]:
        return [network for network in Network if self.filepath(network).exists()]

    def get(self, network: Union[str, Network]) -> DeployConfig:
        network = parse_network(network)
        if network in self._configs:
            return self._configs[network]

        filepath = self.filepath(network)
        if not filepath.exists():
            raise ConfigurationError(f"Unconfigured network: '{network}' ({filepath} not found)")
        config = DeployConfig.from_yaml(network, filepath)
        self._configs[network] = config
        return config
