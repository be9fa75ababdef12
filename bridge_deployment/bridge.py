"""
The bridge contract as seen by the setup steps.

Calls go to the proxy address using the implementation's interface.
"""
from typing import List, Optional, Sequence

from eth_typing import ChecksumAddress

from bridge_deployment.chain import Receipt
from bridge_deployment.config import ApprovalConfig, TokenBridgeConfig
from bridge_deployment.constants import BRIDGE_APPROVER_ROLE
from bridge_deployment.params import Transactor
from bridge_deployment.registry import DeploymentRecord


class BridgeContract:
    def __init__(self, proxy: DeploymentRecord, contract_type: str, transactor: Transactor):
        self.name = proxy.name
        self.address = proxy.address
        self.contract_type = contract_type
        self.transactor = transactor

    def __repr__(self) -> str:
        return f"<{self.contract_type} {self.name} at {self.address}>"

    def _call(self, method: str, *args):
        return self.transactor.call(self, method, *args)

    def _transact(self, method: str, *args, value: int = 0) -> Receipt:
        return self.transactor.transact(self, method, *args, value=value)

    def balance(self) -> int:
        return self.transactor.backend.get_balance(self.address)

    # roles

    def approver_role(self) -> bytes:
        return self._call(BRIDGE_APPROVER_ROLE)

    def has_role(self, role: bytes, account: ChecksumAddress) -> bool:
        return bool(self._call("hasRole", role, account))

    def grant_role(self, role: bytes, account: ChecksumAddress) -> Receipt:
        return self._transact("grantRole", role, account)

    # bridgeable tokens

    def bridgeable_token_config(
        self, token: ChecksumAddress, target_chain_id: int
    ) -> Optional[TokenBridgeConfig]:
        result = self._call("bridgeableTokens", token, target_chain_id)
        return TokenBridgeConfig(*result) if result else None

    def add_bridgeable_tokens(
        self,
        tokens: List[ChecksumAddress],
        target_chain_ids: List[int],
        configs: Sequence[TokenBridgeConfig],
    ) -> Receipt:
        return self._transact(
            "addBridgeableTokens", tokens, target_chain_ids, [tuple(c) for c in configs]
        )

    # approval configs

    def approval_config(self, token: ChecksumAddress) -> Optional[ApprovalConfig]:
        result = self._call("bridgeApprovalConfig", token)
        return ApprovalConfig(*result) if result else None

    def add_bridge_approval_config(
        self, tokens: List[ChecksumAddress], configs: Sequence[ApprovalConfig]
    ) -> Receipt:
        return self._transact("addBridgeApprovalConfig", tokens, [tuple(c) for c in configs])

    # native tokens

    def native_tokens_bridge_config(self) -> Optional[TokenBridgeConfig]:
        result = self._call("nativeTokensBridgeConfig")
        return TokenBridgeConfig(*result) if result else None

    def set_native_tokens_bridge_config(self, config: TokenBridgeConfig) -> Receipt:
        return self._transact("setNativeTokensBridgeConfig", tuple(config))

    def deposit_native_tokens(self, value: int) -> Receipt:
        return self._transact("depositNativeTokens", value=value)

    # flags

    def global_fee_status(self) -> bool:
        return bool(self._call("globalFeeStatus"))

    def set_global_fee_status(self, status: bool) -> Receipt:
        return self._transact("setGlobalFeeStatus", status)

    def bridge_to_native_approval_status(self) -> bool:
        return bool(self._call("bridgeToNativeApprovalStatus"))

    def set_bridge_to_native_approval_status(self, status: bool) -> Receipt:
        return self._transact("setBridgeToNativeApprovalStatus", status)
