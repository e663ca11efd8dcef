"""
Contract State Manager

A deterministic in-process execution environment for HopeSwap contracts.

Responsibilities:
  - Address space: maps addresses to contract objects
  - Deployment with CREATE (deployer + nonce) and CREATE2 (salt + init code)
    address rules
  - Block clock (number + timestamp)
  - Append-only event log
  - State snapshots and reverts, giving every external call all-or-nothing
    semantics through ``Chain.atomic()``
"""

from __future__ import annotations

import copy
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Set, Type, TypeVar

from ..crypto.address import normalize_address
from ..crypto.contract import generate_contract_address, generate_contract_address_create2
from ..exceptions import AddressCollision, ContractNotFound

logger = logging.getLogger(__name__)

C = TypeVar("C", bound="Contract")
E = TypeVar("E")


class Contract:
    """
    Base class for anything deployed at an address inside a Chain.

    All instance attributes except ``chain`` and ``address`` are contract
    storage. Storage values are immutable or flat containers of immutable
    values (and contract references); snapshots copy one level deep.
    """

    _TRANSIENT = frozenset({"chain", "address"})

    def __init__(self, chain: Chain, address: str):
        self.chain = chain
        self.address = address

    # Contracts are identities. Snapshots of storage that references another
    # contract keep the reference instead of cloning the contract.
    def __copy__(self):
        return self

    def snapshot_state(self) -> Dict[str, Any]:
        return {k: copy.copy(v) for k, v in vars(self).items() if k not in self._TRANSIENT}

    def restore_state(self, state: Dict[str, Any]) -> None:
        for key in [k for k in vars(self) if k not in self._TRANSIENT]:
            del self.__dict__[key]
        self.__dict__.update(state)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} at {self.address}>"


@dataclass
class Snapshot:
    event_count: int
    block_number: int
    block_timestamp: int
    storage: Dict[str, Dict[str, Any]] = field(default_factory=dict)  # pre-images
    nonces: Dict[str, Optional[int]] = field(default_factory=dict)  # None: unset
    deployed: Set[str] = field(default_factory=set)


class Chain:
    """
    Deterministic single-threaded execution environment.

    Calls are fully serialised; nested calls (for example a flash-swap
    callback) run on the same stack and share the same snapshot journal.
    """

    def __init__(self, chain_id: int = 1, timestamp: Optional[int] = None):
        self.chain_id = chain_id
        self.block_number = 0
        self.block_timestamp = int(time.time()) if timestamp is None else int(timestamp)
        self._contracts: Dict[str, Contract] = {}
        self._nonces: Dict[str, int] = {}
        self._events: List[Any] = []
        self._snapshots: List[Snapshot] = []

    # -- Block clock ----------------------------------------------------------

    def mine(self, seconds: int = 0) -> int:
        """Close the current block and advance the clock by ``seconds``."""
        if seconds < 0:
            raise ValueError("Block time cannot move backwards")
        self.block_number += 1
        self.block_timestamp += seconds
        return self.block_timestamp

    def set_timestamp(self, timestamp: int) -> None:
        """Start a new block at an absolute timestamp."""
        if timestamp < self.block_timestamp:
            raise ValueError(
                f"Timestamp {timestamp} is before current block time {self.block_timestamp}"
            )
        self.block_number += 1
        self.block_timestamp = int(timestamp)

    # -- Address space --------------------------------------------------------

    def deploy(self, deployer: str, build: Callable[[Chain, str], C]) -> C:
        """
        Deploy a contract at the CREATE address of (deployer, nonce).

        Args:
            deployer: Deploying account
            build: Called with (chain, address); returns the contract object

        Returns:
            The deployed contract
        """
        deployer = normalize_address(deployer)
        with self.atomic():
            nonce = self._nonces.get(deployer, 0)
            self._snapshots[-1].nonces.setdefault(deployer, self._nonces.get(deployer))
            self._nonces[deployer] = nonce + 1
            address = generate_contract_address(deployer, nonce)
            return self._install(address, build)

    def deploy_create2(
        self,
        deployer: str,
        salt: bytes,
        init_code_hash: bytes,
        build: Callable[[Chain, str], C],
    ) -> C:
        """Deploy a contract at the CREATE2 address of (deployer, salt, init code)."""
        with self.atomic():
            address = generate_contract_address_create2(deployer, salt, init_code_hash)
            return self._install(address, build)

    def _install(self, address: str, build: Callable[[Chain, str], C]) -> C:
        if address in self._contracts:
            raise AddressCollision(f"Address {address} already holds a contract")
        contract = build(self, address)
        self._contracts[address] = contract
        if self._snapshots:
            self._snapshots[-1].deployed.add(address)
        logger.debug("Deployed %s at %s", type(contract).__name__, address)
        return contract

    def has_contract(self, address: str) -> bool:
        return normalize_address(address) in self._contracts

    def get_contract(self, address: str, kind: Optional[Type[C]] = None) -> C:
        """
        Resolve the contract at ``address``.

        Raises:
            ContractNotFound: if nothing (or nothing of type ``kind``) lives there
        """
        contract = self._contracts.get(normalize_address(address))
        if contract is None:
            raise ContractNotFound(f"No contract at {address}")
        if kind is not None and not isinstance(contract, kind):
            raise ContractNotFound(f"Contract at {address} is not a {kind.__name__}")
        return contract

    def nonce_of(self, address: str) -> int:
        return self._nonces.get(normalize_address(address), 0)

    # -- Events ---------------------------------------------------------------

    def emit(self, event: Any) -> None:
        self._events.append(event)

    @property
    def events(self) -> List[Any]:
        return list(self._events)

    def events_of(self, kind: Type[E]) -> List[E]:
        return [e for e in self._events if isinstance(e, kind)]

    # -- Snapshots ------------------------------------------------------------

    def snapshot(self) -> int:
        """
        Create state snapshot for revert.

        Only the block clock and the event cursor are captured up front.
        Contract storage, deployments and nonces are journaled as they are
        written, so a snapshot costs the same however many contracts exist.

        Returns:
            Snapshot ID
        """
        self._snapshots.append(Snapshot(
            event_count=len(self._events),
            block_number=self.block_number,
            block_timestamp=self.block_timestamp,
        ))
        return len(self._snapshots) - 1

    def touch(self, contract: Contract) -> None:
        """
        Journal ``contract``'s storage before it is written.

        Must be called before the first write inside a snapshot; ``atomic``
        does this for the contracts it is given.
        """
        if not self._snapshots:
            return
        journal = self._snapshots[-1]
        address = contract.address
        if address not in journal.storage and address not in journal.deployed:
            journal.storage[address] = contract.snapshot_state()

    def revert(self, snapshot_id: int) -> None:
        """
        Revert state to snapshot, dropping it and every newer snapshot.

        Args:
            snapshot_id: Snapshot ID from snapshot()
        """
        if snapshot_id < 0 or snapshot_id >= len(self._snapshots):
            raise ValueError(f"Invalid snapshot ID: {snapshot_id}")

        # Newest first, so the oldest pre-image of a contract is applied last
        for journal in reversed(self._snapshots[snapshot_id:]):
            for address, storage in journal.storage.items():
                self._contracts[address].restore_state(storage)
            for address in journal.deployed:
                del self._contracts[address]
            for address, nonce in journal.nonces.items():
                if nonce is None:
                    self._nonces.pop(address, None)
                else:
                    self._nonces[address] = nonce

        snapshot = self._snapshots[snapshot_id]
        del self._events[snapshot.event_count:]
        self.block_number = snapshot.block_number
        self.block_timestamp = snapshot.block_timestamp

        del self._snapshots[snapshot_id:]

    def commit(self, snapshot_id: int) -> None:
        """
        Forget a snapshot (and every newer one) without reverting.

        Their journals fold into the enclosing snapshot, if any, so an outer
        revert still undoes the committed writes.
        """
        if snapshot_id < 0 or snapshot_id >= len(self._snapshots):
            raise ValueError(f"Invalid snapshot ID: {snapshot_id}")

        committed = self._snapshots[snapshot_id:]
        del self._snapshots[snapshot_id:]
        if not self._snapshots:
            return

        parent = self._snapshots[-1]
        for journal in committed:
            for address, storage in journal.storage.items():
                if address not in parent.deployed:
                    parent.storage.setdefault(address, storage)
            parent.deployed.update(journal.deployed)
            for address, nonce in journal.nonces.items():
                parent.nonces.setdefault(address, nonce)

    @contextmanager
    def atomic(self, *contracts: Contract) -> Iterator[None]:
        """
        Run a block of contract code; any exception reverts it completely.

        Args:
            contracts: Contracts the block writes to
        """
        snapshot_id = self.snapshot()
        for contract in contracts:
            self.touch(contract)
        try:
            yield
        except Exception as e:
            self.revert(snapshot_id)
            logger.debug("Reverted to snapshot %d: %s: %s", snapshot_id, type(e).__name__, e)
            raise
        else:
            self.commit(snapshot_id)
