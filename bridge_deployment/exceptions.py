class BridgeDeploymentError(Exception):
    """Base class for every error raised while deploying or configuring the bridge."""


class ConfigurationError(BridgeDeploymentError, ValueError):
    """Unknown network or malformed network configuration."""


class ContractNotFound(BridgeDeploymentError, LookupError):
    """No deployment record could be located for a contract name."""

    def __init__(self, name: str, msg: str = None):
        super().__init__(msg or f"No deployment found for '{name}'")
        self.name = name


class SubmissionError(BridgeDeploymentError):
    """The network refused a transaction before it was mined."""


class DeploymentError(BridgeDeploymentError):
    """A contract-creation transaction could not be sent or did not succeed."""

    def __init__(self, name: str, msg: str):
        super().__init__(msg)
        self.name = name


class TransactionFailedError(BridgeDeploymentError):
    """A transaction was mined with a non-success status."""

    def __init__(self, msg: str, receipt=None):
        super().__init__(msg)
        self.receipt = receipt


class TransactionTimeoutError(BridgeDeploymentError, TimeoutError):
    """No receipt became available before the confirmation timeout."""

    def __init__(self, txn_hash: str, timeout: float):
        super().__init__(f"Transaction {txn_hash} was not confirmed within {timeout} seconds")
        self.txn_hash = txn_hash
        self.timeout = timeout
