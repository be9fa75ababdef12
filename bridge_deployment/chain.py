"""
The signer and network provider seen by the deployment code.

Everything that touches a node goes through a :class:`ChainBackend` so that the
deployer, the orchestrator and the setup steps can be driven by ape on a live
network or by an in-memory double in tests.
"""
from abc import ABC, abstractmethod
from typing import Any, List, NamedTuple, Optional, Sequence

from eth_typing import ChecksumAddress
from eth_typing import ABI


class PendingTransaction(NamedTuple):
    """A submitted transaction whose receipt may not exist yet."""

    txn_hash: str
    description: str = ""


class Receipt(NamedTuple):
    txn_hash: str
    status: int
    block_number: int
    gas_used: int
    sender: ChecksumAddress
    contract_address: Optional[ChecksumAddress] = None


class ChainBackend(ABC):
    """Active account plus transaction submission channel for one network."""

    @property
    @abstractmethod
    def chain_id(self) -> int:
        raise NotImplementedError

    @property
    @abstractmethod
    def account_address(self) -> ChecksumAddress:
        raise NotImplementedError

    @abstractmethod
    def deploy(
        self, contract_type: str, args: Sequence[Any], gas_limit: int
    ) -> PendingTransaction:
        """Submits a contract-creation transaction."""
        raise NotImplementedError

    @abstractmethod
    def transact(
        self,
        address: ChecksumAddress,
        contract_type: str,
        method: str,
        args: Sequence[Any],
        value: int = 0,
    ) -> PendingTransaction:
        """Submits a state-changing contract call."""
        raise NotImplementedError

    @abstractmethod
    def call(
        self, address: ChecksumAddress, contract_type: str, method: str, args: Sequence[Any] = ()
    ) -> Any:
        """Executes a read-only contract call."""
        raise NotImplementedError

    @abstractmethod
    def get_receipt(self, txn_hash: str) -> Optional[Receipt]:
        """Returns the receipt of a mined transaction, or None while it is pending."""
        raise NotImplementedError

    @abstractmethod
    def get_balance(self, address: ChecksumAddress) -> int:
        raise NotImplementedError

    @abstractmethod
    def get_abi(self, contract_type: str) -> ABI:
        raise NotImplementedError

    def describe(self) -> List[str]:
        return [f"Account: {self.account_address}", f"Chain ID: {self.chain_id}"]
