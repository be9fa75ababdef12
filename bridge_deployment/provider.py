"""
:class:`ChainBackend` implemented with ape.

Contract types are looked up in the ape project first and then in its
dependencies (OpenZeppelin provides the beacon and proxy contracts).
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

from ape import networks, project
from ape.api import AccountAPI, ReceiptAPI
from ape.api.networks import LOCAL_NETWORK_NAME
from ape.contracts import ContractContainer
from ape.exceptions import ApeException, TransactionNotFoundError
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address
from eth_typing import ABI

from bridge_deployment.chain import ChainBackend, PendingTransaction, Receipt
from bridge_deployment.exceptions import SubmissionError

logger = logging.getLogger(__name__)


def is_local_network() -> bool:
    return networks.provider.network.name == LOCAL_NETWORK_NAME


def _get_dependency_contract_container(contract: str) -> ContractContainer:
    for dependency_name, dependency_versions in project.dependencies.items():
        if len(dependency_versions) > 1:
            raise ValueError(f"Ambiguous {dependency_name} dependency for {contract}")
        try:
            dependency_api = list(dependency_versions.values())[0]
            contract_container = getattr(dependency_api, contract)
            return contract_container
        except AttributeError:
            continue
    raise ValueError(f"No contract found with name '{contract}'.")


def get_contract_container(contract: str) -> ContractContainer:
    try:
        contract_container = getattr(project, contract)
    except AttributeError:
        # not in root project; check dependencies
        contract_container = _get_dependency_contract_container(contract)

    return contract_container


def _to_receipt(receipt: ReceiptAPI) -> Receipt:
    contract_address = receipt.contract_address
    return Receipt(
        txn_hash=receipt.txn_hash,
        status=int(receipt.status),
        block_number=receipt.block_number,
        gas_used=receipt.gas_used,
        sender=to_checksum_address(receipt.transaction.sender),
        contract_address=to_checksum_address(contract_address) if contract_address else None,
    )


class ApeChain(ChainBackend):
    """The connected ape provider and a selected ape account."""

    def __init__(self, account: AccountAPI, autosign: bool = False):
        self._account = account
        if autosign:
            self._account.set_autosign(True)
        self._receipts: Dict[str, ReceiptAPI] = dict()

    @property
    def chain_id(self) -> int:
        return networks.provider.chain_id

    @property
    def account_address(self) -> ChecksumAddress:
        return to_checksum_address(self._account.address)

    def _track(self, receipt: ReceiptAPI) -> PendingTransaction:
        self._receipts[receipt.txn_hash] = receipt
        return PendingTransaction(txn_hash=receipt.txn_hash)

    def deploy(self, contract_type: str, args: Sequence[Any], gas_limit: int) -> PendingTransaction:
        container = get_contract_container(contract_type)
        try:
            instance = self._account.deploy(container, *args, gas_limit=gas_limit, publish=False)
        except ApeException as e:
            raise SubmissionError(str(e)) from e
        return self._track(instance.receipt)

    def transact(
        self,
        address: ChecksumAddress,
        contract_type: str,
        method: str,
        args: Sequence[Any],
        value: int = 0,
    ) -> PendingTransaction:
        instance = get_contract_container(contract_type).at(address)
        handler = getattr(instance, method)
        try:
            receipt = handler(*args, sender=self._account, value=value)
        except ApeException as e:
            raise SubmissionError(str(e)) from e
        return self._track(receipt)

    def call(
        self, address: ChecksumAddress, contract_type: str, method: str, args: Sequence[Any] = ()
    ) -> Any:
        instance = get_contract_container(contract_type).at(address)
        return getattr(instance, method)(*args)

    def get_receipt(self, txn_hash: str) -> Optional[Receipt]:
        receipt = self._receipts.get(txn_hash)
        if receipt is None:
            try:
                receipt = networks.provider.get_receipt(txn_hash, timeout=0)
            except TransactionNotFoundError:
                return None
        return _to_receipt(receipt)

    def get_balance(self, address: ChecksumAddress) -> int:
        return networks.provider.get_balance(address)

    def get_abi(self, contract_type: str) -> ABI:
        contract_abi: List[Dict] = list()
        for entry in get_contract_container(contract_type).contract_type.abi:
            contract_abi.append(entry.model_dump(mode="json", by_alias=True))
        return contract_abi

    def describe(self) -> List[str]:
        network = networks.provider.network
        return [
            f"Account: {self.account_address}",
            f"Ecosystem: {network.ecosystem.name}",
            f"Network: {network.name}",
            f"Chain ID: {self.chain_id}",
            f"Gas Price: {networks.provider.gas_price}",
        ]
