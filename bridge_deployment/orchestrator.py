import logging
from typing import Dict, List, NamedTuple, Optional, Sequence

from bridge_deployment.bridge import BridgeContract
from bridge_deployment.chain import ChainBackend
from bridge_deployment.config import (
    ContractListEntry,
    DeployConfig,
    Grouped,
    Single,
    beacon_name,
    impl_name,
    proxy_name,
)
from bridge_deployment.configure import BridgeConfigurator, StepResult
from bridge_deployment.confirmation import TransactionWaiter
from bridge_deployment.constants import (
    BEACON_CONTRACT_TYPE,
    BEACON_PROXY_CONTRACT_TYPE,
    DEFAULT_CONFIRMATION_TIMEOUT,
    ZERO_ADDRESS,
)
from bridge_deployment.exceptions import ConfigurationError, DeploymentError
from bridge_deployment.params import Deployer
from bridge_deployment.registry import DeploymentLedger, DeploymentRecord, LocalTokenTable

logger = logging.getLogger(__name__)


class DeploymentContext(NamedTuple):
    """Everything one deployment run works with, built once and passed down."""

    config: DeployConfig
    backend: ChainBackend
    ledger: DeploymentLedger
    token_table: LocalTokenTable
    deployer: Deployer

    @classmethod
    def create(
        cls,
        config: DeployConfig,
        backend: ChainBackend,
        autosign: bool = False,
        timeout: float = DEFAULT_CONFIRMATION_TIMEOUT,
        check_chain_id: bool = True,
        ledger: Optional[DeploymentLedger] = None,
    ) -> "DeploymentContext":
        if check_chain_id and config.chain_id != backend.chain_id:
            raise ConfigurationError(
                f"chain_id for '{config.network}' ({config.chain_id}) does not match "
                f"chain_id of current network ({backend.chain_id})."
            )
        if ledger is None:
            ledger = DeploymentLedger(config.registry_filepath, chain_id=backend.chain_id)
        waiter = TransactionWaiter(backend, timeout=timeout)
        deployer = Deployer(backend=backend, ledger=ledger, waiter=waiter, autosign=autosign)
        return cls(
            config=config,
            backend=backend,
            ledger=ledger,
            token_table=LocalTokenTable.for_registry(config.registry_filepath),
            deployer=deployer,
        )


class DeploymentResult(NamedTuple):
    deployments: Dict[str, DeploymentRecord]
    bridge: BridgeContract
    steps: List[StepResult]

    @property
    def new_deployments(self) -> List[DeploymentRecord]:
        return [r for r in self.deployments.values() if r.newly_deployed]

    @property
    def transaction_count(self) -> int:
        return len(self.new_deployments) + sum(step.transactions for step in self.steps)


def _require_address(record: DeploymentRecord, dependent: str) -> str:
    if not record.address or record.address == ZERO_ADDRESS:
        raise DeploymentError(
            dependent, f"Cannot deploy {dependent}: {record.name} has no address"
        )
    return record.address


class BridgeOrchestrator:
    """
    Deploys the bridge contracts of one network in dependency order and
    then applies the network's bridge settings.

    Each contract list entry becomes an implementation, an upgradeable beacon
    pointing at it and one beacon proxy per instance::

        ImplParadiseBridge <- UpBeaconParadiseBridge <- ParadiseBridgeProxy
    """

    def __init__(self, context: DeploymentContext):
        self.context = context
        self.config = context.config
        self.deployer = context.deployer
        self._ran = False

    def _implementation_args(self) -> List:
        running = self.config.bridge_running_status
        return [] if running is None else [running]

    def _deploy_base(self, base: str) -> Dict[str, DeploymentRecord]:
        implementation = self.deployer.deploy(
            impl_name(base), base, self._implementation_args()
        )
        beacon_args = [_require_address(implementation, beacon_name(base))]
        beacon = self.deployer.deploy(beacon_name(base), BEACON_CONTRACT_TYPE, beacon_args)
        return {implementation.name: implementation, beacon.name: beacon}

    def _deploy_proxy(self, name: str, beacon: DeploymentRecord) -> DeploymentRecord:
        proxy_args = [_require_address(beacon, proxy_name(name)), b""]
        return self.deployer.deploy(proxy_name(name), BEACON_PROXY_CONTRACT_TYPE, proxy_args)

    def deploy_grouped(self, contracts: Sequence[ContractListEntry]) -> Dict[str, DeploymentRecord]:
        results = dict()
        for entry in contracts:
            if isinstance(entry, Single):
                instances = [entry.name]
            elif isinstance(entry, Grouped):
                instances = list(entry.children)
            else:
                raise TypeError(f"Unknown contract list entry {entry!r}")

            logger.info(">> Deploying %s for %s", entry.base, ", ".join(instances))
            base_records = self._deploy_base(entry.base)
            results.update(base_records)
            beacon = base_records[beacon_name(entry.base)]
            for instance in instances:
                proxy = self._deploy_proxy(instance, beacon)
                results[proxy.name] = proxy
        return results

    def bridge_contract(self, deployments: Dict[str, DeploymentRecord]) -> BridgeContract:
        bridge_name = self.config.bridge
        for entry in self.config.contracts:
            if bridge_name in entry.proxy_names:
                return BridgeContract(deployments[bridge_name], entry.base, self.deployer)
        raise ConfigurationError(f"Bridge '{bridge_name}' is not one of the deployed proxies.")

    def run(self) -> DeploymentResult:
        if self._ran:
            raise RuntimeError("This orchestrator has already run; create a new one to rerun.")
        self._ran = True

        logger.info("<deploy and set up bridge on %s>", self.config.network)
        deployments = self.deploy_grouped(self.config.contracts)
        bridge = self.bridge_contract(deployments)
        configurator = BridgeConfigurator(
            config=self.config,
            bridge=bridge,
            deployer=self.deployer,
            token_table=self.context.token_table,
        )
        steps = configurator.apply()

        # auxiliary tokens are deployed by the configurator
        for record in self.deployer.deployments:
            deployments.setdefault(record.name, record)

        logger.info(">>> CONTRACTS SETUP DONE <<<")
        return DeploymentResult(deployments=deployments, bridge=bridge, steps=steps)

    def finalize(self, result: DeploymentResult) -> List[str]:
        """Logs and returns one summary line per contract plus the transaction total."""
        lines = list()
        for name, record in sorted(result.deployments.items()):
            status = "new" if record.newly_deployed else "reused"
            lines.append(f"{name} ({record.contract_type}) {record.address} [{status}]")
        for step in result.steps:
            if step.transactions:
                lines.append(f"{step.step}: {step.transactions} transaction(s)")
        lines.append(f"{result.transaction_count} transaction(s) sent on {self.config.network}")
        for line in lines:
            logger.info(line)
        return lines
