import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Mapping, NamedTuple, Optional, Sequence

from eth_typing import ChecksumAddress
from eth_utils import is_address, to_checksum_address
from eth_typing import ABI

from bridge_deployment.constants import TOKEN_TABLE_SUFFIX
from bridge_deployment.exceptions import ContractNotFound
from bridge_deployment.utils import _load_json, _write_json

logger = logging.getLogger(__name__)

ChainId = int
ContractName = str


class DeploymentRecord(NamedTuple):
    """A contract created on one chain under a registry name."""

    chain_id: ChainId
    name: ContractName
    contract_type: str
    address: ChecksumAddress
    abi: ABI
    tx_hash: str
    block_number: int
    gas_used: int
    deployer: str
    newly_deployed: bool = False


def read_registry(filepath: Path) -> List[DeploymentRecord]:
    data = _load_json(filepath)
    records = list()
    for chain_id, entries in data.items():
        for contract_name, artifacts in entries.items():
            record = DeploymentRecord(
                chain_id=int(chain_id),
                name=contract_name,
                contract_type=artifacts.get("contract_type", contract_name),
                address=artifacts["address"],
                abi=artifacts["abi"],
                tx_hash=artifacts["tx_hash"],
                block_number=artifacts["block_number"],
                gas_used=artifacts.get("gas_used", 0),
                deployer=artifacts["deployer"],
            )
            records.append(record)
    return records


def write_registry(records: List[DeploymentRecord], filepath: Path) -> Path:
    """Writes a complete registry file, replacing whatever was there."""
    # common order keeps registry diffs readable
    records = sorted(records, key=lambda r: (str(r.chain_id), r.name))

    data = defaultdict(dict)
    for record in records:
        record_abi = list(record.abi)
        record_abi.sort(key=lambda d: (d["type"], d.get("name", "")))

        data[str(record.chain_id)][record.name] = {
            "contract_type": record.contract_type,
            "address": record.address,
            "abi": record_abi,
            "tx_hash": record.tx_hash,
            "block_number": int(record.block_number),
            "gas_used": int(record.gas_used),
            "deployer": record.deployer,
        }

    return _write_json(dict(data), filepath)


#
# Locators
#


class ContractLocator(ABC):
    """One place a deployment record may be found."""

    @abstractmethod
    def locate(self, name: ContractName) -> Optional[DeploymentRecord]:
        raise NotImplementedError


class SessionLocator(ContractLocator):
    """Records created or resolved by this process."""

    def __init__(self):
        self._records: Dict[ContractName, DeploymentRecord] = dict()

    def add(self, record: DeploymentRecord) -> None:
        self._records[record.name] = record

    def locate(self, name: ContractName) -> Optional[DeploymentRecord]:
        return self._records.get(name)


class RegistryFileLocator(ContractLocator):
    """Records persisted in a registry file, filtered to one chain."""

    def __init__(self, filepath: Path, chain_id: ChainId):
        self.filepath = filepath
        self.chain_id = chain_id

    def records(self) -> List[DeploymentRecord]:
        if not self.filepath.exists():
            return list()
        return [r for r in read_registry(self.filepath) if r.chain_id == self.chain_id]

    def locate(self, name: ContractName) -> Optional[DeploymentRecord]:
        for record in self.records():
            if record.name == name:
                return record
        return None


class DeploymentLedger:
    """
    Per-network record of created contracts.

    Lookups try each locator in order and only fail once all of them miss.
    Writes always go to the registry file and overwrite the entry of the same
    name; other entries are kept.
    """

    def __init__(
        self,
        filepath: Path,
        chain_id: ChainId,
        locators: Optional[Sequence[ContractLocator]] = None,
    ):
        self.filepath = filepath
        self.chain_id = chain_id
        self.session = SessionLocator()
        self.file_locator = RegistryFileLocator(filepath=filepath, chain_id=chain_id)
        if locators is None:
            locators = [self.session, self.file_locator]
        self.locators = list(locators)

    def resolve(self, name: ContractName) -> DeploymentRecord:
        for locator in self.locators:
            record = locator.locate(name)
            if record is not None:
                self.session.add(record)
                return record._replace(newly_deployed=False)
        raise ContractNotFound(name, f"No deployment of '{name}' on chain {self.chain_id}")

    def exists(self, name: ContractName) -> bool:
        try:
            self.resolve(name)
        except ContractNotFound:
            return False
        return True

    def record(self, record: DeploymentRecord) -> Path:
        if record.chain_id != self.chain_id:
            raise ValueError(f"Record for chain {record.chain_id} written to {self.chain_id} ledger")
        records = read_registry(self.filepath) if self.filepath.exists() else list()
        records = [r for r in records if (r.chain_id, r.name) != (record.chain_id, record.name)]
        records.append(record._replace(newly_deployed=False))

        logger.info("Recording %s at %s in %s", record.name, record.address, self.filepath)
        write_registry(records, self.filepath)
        self.session.add(record)
        return self.filepath

    def records(self) -> List[DeploymentRecord]:
        return self.file_locator.records()


class LocalTokenTable:
    """
    Persisted map of locally deployed token names to their addresses.

    Entries are only ever added or updated, never removed.
    """

    def __init__(self, filepath: Path):
        self.filepath = filepath

    @classmethod
    def for_registry(cls, registry_filepath: Path) -> "LocalTokenTable":
        name = f"{registry_filepath.stem}{TOKEN_TABLE_SUFFIX}.json"
        return cls(registry_filepath.with_name(name))

    def read(self) -> Dict[str, ChecksumAddress]:
        if not self.filepath.exists():
            return dict()
        return dict(_load_json(self.filepath))

    def get(self, name: str) -> Optional[ChecksumAddress]:
        return self.read().get(name)

    def update(self, tokens: Mapping[str, ChecksumAddress]) -> Dict[str, ChecksumAddress]:
        table = self.read()
        table.update({name: to_checksum_address(address) for name, address in tokens.items()})
        _write_json(table, self.filepath)
        return table

    def resolve(self, identifier: str) -> str:
        """Returns the address of a named local token, otherwise the identifier unchanged."""
        address = self.get(identifier)
        if address is not None:
            return to_checksum_address(address)
        if is_address(identifier):
            return to_checksum_address(identifier)
        logger.warning("Token '%s' is not in %s and is not an address", identifier, self.filepath)
        return identifier
