import logging
from typing import Any, List, Optional, Sequence

from eth_typing import ChecksumAddress

from bridge_deployment.chain import ChainBackend, Receipt
from bridge_deployment.confirm import _confirm_resolution, _continue
from bridge_deployment.confirmation import TransactionWaiter
from bridge_deployment.constants import GAS_LIMIT
from bridge_deployment.exceptions import (
    ContractNotFound,
    DeploymentError,
    SubmissionError,
    TransactionFailedError,
    TransactionTimeoutError,
)
from bridge_deployment.registry import DeploymentLedger, DeploymentRecord

logger = logging.getLogger(__name__)


class Transactor:
    """
    The deployment account plus awaited, annotated transaction execution.

    Every transaction is confirmed before ``transact`` returns, so calls made
    through one transactor are strictly ordered.
    """

    def __init__(
        self,
        backend: ChainBackend,
        waiter: Optional[TransactionWaiter] = None,
        autosign: bool = False,
    ):
        self.backend = backend
        self.waiter = waiter or TransactionWaiter(backend)
        if autosign:
            logger.warning("Autosign is enabled. Transactions will be sent without confirmation.")
        self._autosign = autosign

    @property
    def address(self) -> ChecksumAddress:
        """Returns the transactor account address."""
        return self.backend.account_address

    def transact(self, contract, method: str, *args, value: int = 0) -> Receipt:
        description = f"{contract.name}[{contract.address[:10]}].{method}"
        if args:
            pretty_args = "\n\t".join(repr(arg) for arg in args)
            message = f"Transacting {description} with arguments:\n\t{pretty_args}"
        else:
            message = f"Transacting {description} with no arguments"
        if value:
            message = f"{message}\n\tvalue={value}"
        logger.info(message)
        if not self._autosign:
            _continue()

        try:
            txn = self.backend.transact(
                contract.address, contract.contract_type, method, args, value=value
            )
        except SubmissionError as e:
            raise TransactionFailedError(f"Could not send {description}: {e}") from e
        return self.waiter.wait(txn._replace(description=description))

    def call(self, contract, method: str, *args) -> Any:
        return self.backend.call(contract.address, contract.contract_type, method, args)


class Deployer(Transactor):
    """
    Creates contracts under registry names, reusing any that the ledger already knows.
    """

    def __init__(
        self,
        backend: ChainBackend,
        ledger: DeploymentLedger,
        waiter: Optional[TransactionWaiter] = None,
        autosign: bool = False,
        gas_limit: int = GAS_LIMIT,
    ):
        super().__init__(backend=backend, waiter=waiter, autosign=autosign)
        self.ledger = ledger
        self.gas_limit = gas_limit
        self.deployments: List[DeploymentRecord] = list()

    def deploy(
        self, name: str, contract_type: str, args: Sequence[Any] = (), force: bool = False
    ) -> DeploymentRecord:
        logger.info('Deploying contract "%s" ("%s")...', name, contract_type)
        if not force:
            try:
                record = self.ledger.resolve(name)
            except ContractNotFound:
                pass
            else:
                self._report(record)
                self.deployments.append(record)
                return record

        record = self._deploy_contract(name, contract_type, list(args))
        self.ledger.record(record)
        self._report(record)
        self.deployments.append(record)
        return record

    def _deploy_contract(
        self, name: str, contract_type: str, args: List[Any]
    ) -> DeploymentRecord:
        if not self._autosign:
            _confirm_resolution(args, name, contract_type)

        try:
            txn = self.backend.deploy(contract_type, args, gas_limit=self.gas_limit)
            receipt = self.waiter.wait(txn._replace(description=f"deploy {name}"))
        except (SubmissionError, TransactionFailedError, TransactionTimeoutError) as e:
            raise DeploymentError(name, f"Deployment of {name} ({contract_type}) failed: {e}") from e

        if not receipt.contract_address:
            raise DeploymentError(name, f"Receipt {receipt.txn_hash} has no contract address")

        return DeploymentRecord(
            chain_id=self.backend.chain_id,
            name=name,
            contract_type=contract_type,
            address=receipt.contract_address,
            abi=self.backend.get_abi(contract_type),
            tx_hash=receipt.txn_hash,
            block_number=receipt.block_number,
            gas_used=receipt.gas_used,
            deployer=receipt.sender,
            newly_deployed=True,
        )

    def _report(self, record: DeploymentRecord) -> None:
        logger.info(
            '%s contract "%s" ("%s") deployed at "%s"\n - tx: "%s"\n - gas: %s\n - deployer: "%s"',
            "[New]" if record.newly_deployed else "[Reused]",
            record.name,
            record.contract_type,
            record.address,
            record.tx_hash,
            record.gas_used,
            record.deployer,
        )
