"""
Post-deployment setup of the bridge contract.

The steps run in a fixed order and each one reads on-chain state before
sending anything, so a run that was interrupted can simply be started again.
"""
import logging
from typing import Dict, List, NamedTuple

from eth_typing import ChecksumAddress
from web3 import Web3

from bridge_deployment.bridge import BridgeContract
from bridge_deployment.config import DeployConfig
from bridge_deployment.constants import BRIDGE_ERC20_CONTRACT_TYPE
from bridge_deployment.params import Deployer
from bridge_deployment.registry import LocalTokenTable

logger = logging.getLogger(__name__)


class StepResult(NamedTuple):
    step: str
    transactions: int
    detail: str = ""


class BridgeConfigurator:
    """Applies a network's bridge settings to a deployed bridge, once."""

    STEPS = (
        "grant_bridge_approvers",
        "deploy_bridge_erc20_tokens",
        "add_bridgeable_tokens",
        "add_bridge_approval_configs",
        "deposit_native_tokens",
        "set_native_tokens_bridge_config",
        "set_bridge_to_native_approval_status",
        "set_global_fee_status",
    )

    def __init__(
        self,
        config: DeployConfig,
        bridge: BridgeContract,
        deployer: Deployer,
        token_table: LocalTokenTable,
    ):
        self.config = config
        self.bridge = bridge
        self.deployer = deployer
        self.token_table = token_table
        self._applied = False
        self._deposited = False

    def apply(self) -> List[StepResult]:
        if self._applied:
            raise RuntimeError(f"Settings were already applied to {self.bridge}")
        self._applied = True

        results = list()
        for step in self.STEPS:
            logger.info("%s...", step)
            result = getattr(self, step)()
            logger.info("%s: %d transaction(s) %s", step, result.transactions, result.detail)
            results.append(result)
        return results

    def grant_bridge_approvers(self) -> StepResult:
        step = "grant_bridge_approvers"
        if not self.config.bridge_approvers:
            return StepResult(step, 0, "no approvers configured")

        role = self.bridge.approver_role()
        granted = 0
        for reference in self.config.bridge_approvers:
            approver = reference.resolve(self.deployer.address)
            if self.bridge.has_role(role, approver):
                logger.info("%s already holds the approver role", approver)
                continue
            self.bridge.grant_role(role, approver)
            granted += 1
        return StepResult(step, granted)

    def deploy_bridge_erc20_tokens(self) -> StepResult:
        step = "deploy_bridge_erc20_tokens"
        if not self.config.bridge_erc20_deploy_configs:
            return StepResult(step, 0, "no tokens configured")

        deployed: Dict[str, ChecksumAddress] = dict()
        created = 0
        for token in self.config.bridge_erc20_deploy_configs:
            record = self.deployer.deploy(
                token.name,
                BRIDGE_ERC20_CONTRACT_TYPE,
                [token.name, token.symbol, token.decimals, token.total_supply, self.bridge.address],
            )
            deployed[token.name] = record.address
            created += int(record.newly_deployed)

        known = self.token_table.read()
        if any(known.get(name) != address for name, address in deployed.items()):
            self.token_table.update(deployed)
        return StepResult(step, created, f"{len(deployed)} token(s) in {self.token_table.filepath}")

    def add_bridgeable_tokens(self) -> StepResult:
        step = "add_bridgeable_tokens"
        if not self.config.bridgeable_tokens:
            return StepResult(step, 0, "no tokens configured")

        tokens, chain_ids, configs = list(), list(), list()
        for entry in self.config.bridgeable_tokens:
            token = self.token_table.resolve(entry.token)
            if self.bridge.bridgeable_token_config(token, entry.target_chain_id) == entry.config:
                logger.info("%s is already bridgeable to chain %d", token, entry.target_chain_id)
                continue
            tokens.append(token)
            chain_ids.append(entry.target_chain_id)
            configs.append(entry.config)

        if not tokens:
            return StepResult(step, 0, "all tokens registered")
        self.bridge.add_bridgeable_tokens(tokens, chain_ids, configs)
        return StepResult(step, 1, f"{len(tokens)} token(s)")

    def add_bridge_approval_configs(self) -> StepResult:
        step = "add_bridge_approval_configs"
        if not self.config.bridge_approval_configs:
            return StepResult(step, 0, "no approval configs configured")

        tokens, configs = list(), list()
        for entry in self.config.bridge_approval_configs:
            token = self.token_table.resolve(entry.token)
            if self.bridge.approval_config(token) == entry.config:
                continue
            tokens.append(token)
            configs.append(entry.config)

        if not tokens:
            return StepResult(step, 0, "all approval configs registered")
        self.bridge.add_bridge_approval_config(tokens, configs)
        return StepResult(step, 1, f"{len(tokens)} token(s)")

    def deposit_native_tokens(self) -> StepResult:
        step = "deposit_native_tokens"
        amount = self.config.deposit_native_tokens_amount_ether
        if not amount:
            return StepResult(step, 0, "no deposit configured")
        if self._deposited:
            return StepResult(step, 0, "already deposited in this run")

        value = Web3.to_wei(amount, "ether")
        balance = self.bridge.balance()
        if balance >= value:
            return StepResult(step, 0, f"bridge already holds {balance} wei")

        self.bridge.deposit_native_tokens(value)
        self._deposited = True
        return StepResult(step, 1, f"{value} wei")

    def set_native_tokens_bridge_config(self) -> StepResult:
        step = "set_native_tokens_bridge_config"
        desired = self.config.native_tokens_bridge_config
        if desired is None or self.bridge.native_tokens_bridge_config() == desired:
            return StepResult(step, 0)
        self.bridge.set_native_tokens_bridge_config(desired)
        return StepResult(step, 1)

    def set_bridge_to_native_approval_status(self) -> StepResult:
        step = "set_bridge_to_native_approval_status"
        desired = self.config.bridge_to_native_approval_status
        if desired is None or self.bridge.bridge_to_native_approval_status() == desired:
            return StepResult(step, 0)
        self.bridge.set_bridge_to_native_approval_status(desired)
        return StepResult(step, 1)

    def set_global_fee_status(self) -> StepResult:
        step = "set_global_fee_status"
        desired = self.config.global_fee_status
        if desired is None or self.bridge.global_fee_status() == desired:
            return StepResult(step, 0)
        self.bridge.set_global_fee_status(desired)
        return StepResult(step, 1)
