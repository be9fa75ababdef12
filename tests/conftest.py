from collections import defaultdict
from typing import Any, Dict, List, NamedTuple, Optional, Sequence

import pytest
from eth_utils import keccak, to_checksum_address

from bridge_deployment.chain import ChainBackend, PendingTransaction, Receipt
from bridge_deployment.config import DeployConfig
from bridge_deployment.constants import Network
from bridge_deployment.exceptions import SubmissionError
from bridge_deployment.orchestrator import DeploymentContext

CHAIN_ID = 97
DEPLOYER = to_checksum_address("0x" + "d" * 40)
OTHER_APPROVER = to_checksum_address("0x" + "a" * 40)
TOKEN_ADDRESS = to_checksum_address("0x" + "7" * 40)

OPEN_TOKEN_CONFIG = {
    "enabled": True,
    "burn": False,
    "minBridgeAmount": 0,
    "maxBridgeAmount": 0,
    "bridgeFee": 0,
}


class SentTransaction(NamedTuple):
    kind: str  # "deploy" or "transact"
    contract_type: str
    method: Optional[str]
    args: tuple
    value: int = 0
    address: Optional[str] = None


class FakeContract:
    def __init__(self, contract_type: str, args: Sequence[Any]):
        self.contract_type = contract_type
        self.args = tuple(args)
        self.roles = set()
        self.bridgeable_tokens = dict()
        self.approval_configs = dict()
        self.native_config = None
        self.global_fee_status = False
        self.bridge_to_native_approval_status = False


class FakeChain(ChainBackend):
    """
    An in-memory chain that mines every transaction immediately and
    implements just enough of the bridge surface for the setup steps.
    """

    def __init__(self, chain_id: int = CHAIN_ID, account: str = DEPLOYER):
        self._chain_id = chain_id
        self._account = account
        self._nonce = 0
        self.contracts: Dict[str, FakeContract] = dict()
        self.balances: Dict[str, int] = defaultdict(int)
        self.receipts: Dict[str, Receipt] = dict()
        self.transactions: List[SentTransaction] = list()
        self._failures: List[str] = list()

    @property
    def chain_id(self) -> int:
        return self._chain_id

    @property
    def account_address(self) -> str:
        return self._account

    def fail_next(self, kind: str) -> None:
        """Makes the next submission "revert", raise on "submit", or never confirm ("pending")."""
        self._failures.append(kind)

    def deployments_of(self, contract_type: str) -> List[SentTransaction]:
        return [t for t in self.transactions if t.kind == "deploy" and t.contract_type == contract_type]

    def calls_to(self, method: str) -> List[SentTransaction]:
        return [t for t in self.transactions if t.kind == "transact" and t.method == method]

    def _submit(self, txn: SentTransaction, contract_address: Optional[str] = None) -> PendingTransaction:
        failure = self._failures.pop(0) if self._failures else None
        if failure == "submit":
            raise SubmissionError("nonce too low")

        self._nonce += 1
        txn_hash = "0x" + keccak(text=f"{self._chain_id}:{self._nonce}").hex()
        self.transactions.append(txn)
        if failure == "pending":
            return PendingTransaction(txn_hash=txn_hash)

        status = 0 if failure == "revert" else 1
        self.receipts[txn_hash] = Receipt(
            txn_hash=txn_hash,
            status=status,
            block_number=self._nonce,
            gas_used=21_000 * self._nonce,
            sender=self._account,
            contract_address=contract_address if status else None,
        )
        return PendingTransaction(txn_hash=txn_hash)

    def deploy(self, contract_type: str, args: Sequence[Any], gas_limit: int) -> PendingTransaction:
        address = to_checksum_address(f"0x{0x1000 + self._nonce + 1:040x}")
        pending = self._submit(
            SentTransaction("deploy", contract_type, None, tuple(args)), contract_address=address
        )
        receipt = self.receipts.get(pending.txn_hash)
        if receipt is not None and receipt.status == 1:
            self.contracts[address] = FakeContract(contract_type, args)
        return pending

    def transact(self, address, contract_type, method, args, value=0) -> PendingTransaction:
        pending = self._submit(
            SentTransaction("transact", contract_type, method, tuple(args), value, address)
        )
        receipt = self.receipts.get(pending.txn_hash)
        if receipt is not None and receipt.status == 1:
            self._apply(self.contracts[address], address, method, args, value)
        return pending

    def _apply(self, contract: FakeContract, address: str, method: str, args, value: int) -> None:
        if method == "grantRole":
            contract.roles.add(tuple(args))
        elif method == "addBridgeableTokens":
            tokens, chain_ids, configs = args
            for token, chain_id, config in zip(tokens, chain_ids, configs):
                contract.bridgeable_tokens[(token, chain_id)] = tuple(config)
        elif method == "addBridgeApprovalConfig":
            tokens, configs = args
            for token, config in zip(tokens, configs):
                contract.approval_configs[token] = tuple(config)
        elif method == "setNativeTokensBridgeConfig":
            contract.native_config = tuple(args[0])
        elif method == "depositNativeTokens":
            self.balances[address] += value
        elif method == "setGlobalFeeStatus":
            contract.global_fee_status = args[0]
        elif method == "setBridgeToNativeApprovalStatus":
            contract.bridge_to_native_approval_status = args[0]
        else:
            raise AssertionError(f"unexpected transaction {method}")

    def call(self, address, contract_type, method, args=()) -> Any:
        contract = self.contracts[address]
        if method == "BRIDGE_APPROVER_ROLE":
            return keccak(text="BRIDGE_APPROVER_ROLE")
        if method == "hasRole":
            return tuple(args) in contract.roles
        if method == "bridgeableTokens":
            return contract.bridgeable_tokens.get(tuple(args), (False, False, 0, 0, 0))
        if method == "bridgeApprovalConfig":
            return contract.approval_configs.get(args[0], (False, False))
        if method == "nativeTokensBridgeConfig":
            return contract.native_config or (False, False, 0, 0, 0)
        if method == "globalFeeStatus":
            return contract.global_fee_status
        if method == "bridgeToNativeApprovalStatus":
            return contract.bridge_to_native_approval_status
        raise AssertionError(f"unexpected call {method}")

    def get_receipt(self, txn_hash: str) -> Optional[Receipt]:
        return self.receipts.get(txn_hash)

    def get_balance(self, address) -> int:
        return self.balances[address]

    def get_abi(self, contract_type: str) -> List[Dict]:
        return [
            {"type": "function", "name": "version", "inputs": [], "outputs": []},
            {"type": "constructor", "inputs": []},
        ]


# Fixtures
@pytest.fixture
def chain():
    return FakeChain()


@pytest.fixture
def config_data(tmp_path):
    return {
        "deployment": {"name": "test", "chain_id": CHAIN_ID},
        "artifacts": {"dir": str(tmp_path / "artifacts"), "filename": "bsctest.json"},
        "contracts": ["ParadiseBridge"],
    }


@pytest.fixture
def make_config(config_data):
    def _make_config(**settings) -> DeployConfig:
        data = dict(config_data)
        data.update(settings)
        return DeployConfig.from_dict(Network.BSC_TESTNET, data)

    return _make_config


@pytest.fixture
def make_context(chain):
    def _make_context(config: DeployConfig, timeout: float = 1) -> DeploymentContext:
        return DeploymentContext.create(config, chain, autosign=True, timeout=timeout)

    return _make_context
