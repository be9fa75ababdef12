"""Blocking wait for transaction receipts."""
import logging
import time

from bridge_deployment.chain import ChainBackend, PendingTransaction, Receipt
from bridge_deployment.constants import (
    DEFAULT_CONFIRMATION_TIMEOUT,
    DEFAULT_POLL_DELAY,
    TX_SUCCESS_STATUS,
)
from bridge_deployment.exceptions import TransactionFailedError, TransactionTimeoutError

logger = logging.getLogger(__name__)


class TransactionWaiter:
    """
    Waits for one transaction at a time and maps its receipt to success or failure.

    The wait is bounded: a transaction without a receipt after ``timeout``
    seconds raises :class:`TransactionTimeoutError` instead of blocking forever.
    """

    def __init__(
        self,
        backend: ChainBackend,
        timeout: float = DEFAULT_CONFIRMATION_TIMEOUT,
        poll_delay: float = DEFAULT_POLL_DELAY,
    ):
        if timeout <= 0:
            raise ValueError(f"Confirmation timeout must be positive, got {timeout}")
        self.backend = backend
        self.timeout = timeout
        self.poll_delay = poll_delay

    def wait(self, txn: PendingTransaction) -> Receipt:
        logger.debug("Waiting for %s (timeout %ss)", txn.txn_hash, self.timeout)
        deadline = time.monotonic() + self.timeout
        while True:
            receipt = self.backend.get_receipt(txn.txn_hash)
            if receipt is not None:
                break
            if time.monotonic() >= deadline:
                raise TransactionTimeoutError(txn.txn_hash, self.timeout)
            time.sleep(self.poll_delay)

        logger.info(
            "Transaction %s confirmed (block: %d gasUsed: %d)",
            receipt.txn_hash,
            receipt.block_number,
            receipt.gas_used,
        )
        if receipt.status != TX_SUCCESS_STATUS:
            label = f" ({txn.description})" if txn.description else ""
            raise TransactionFailedError(
                f"Transaction {receipt.txn_hash}{label} failed with status {receipt.status}",
                receipt=receipt,
            )
        return receipt
