"""
VESTLOCK Transaction Adapter

Derives a ``TransitionContext`` from a host transaction view the way the
deployed lock script reads its own transaction:

    - governed cells are the inputs/outputs locked by this script
    - the script args are the record configuration
    - every input cell's lock hash counts as a presented credential
      (proxy-lock pattern: spending a cell proves control of its lock)
    - the trusted time point is the highest header dependency

The views are plain data; producing them from a node is the host's job.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from vestlock.errors import InvalidTransactionStructure
from vestlock.hardening import CryptoUtils
from vestlock.observability import LogComponent, get_logger
from vestlock.validator import TransitionContext, TransitionOutcome, validate_transition

logger = get_logger("adapter", LogComponent.TRANSACTION)


@dataclass(frozen=True)
class CellView:
    """A transaction input or output as seen by the lock script."""
    lock_hash: bytes
    data: bytes = b""


@dataclass(frozen=True)
class HeaderView:
    """A header dependency; ``number`` is its time point."""
    number: int


@dataclass(frozen=True)
class TransactionView:
    """The parts of a transaction the vesting lock reads."""
    script_hash: bytes
    script_args: bytes
    inputs: Sequence[CellView] = field(default_factory=tuple)
    outputs: Sequence[CellView] = field(default_factory=tuple)
    header_deps: Sequence[HeaderView] = field(default_factory=tuple)

    def governed(self, cells: Sequence[CellView]) -> List[CellView]:
        """Cells locked by this script."""
        return [c for c in cells if CryptoUtils.secure_compare(bytes(c.lock_hash), self.script_hash)]


def trusted_time(header_deps: Sequence[HeaderView]) -> int:
    """Highest time point among the header dependencies."""
    if not header_deps:
        raise InvalidTransactionStructure("Transaction carries no header dependencies")
    return max(h.number for h in header_deps)


def context_from_transaction(tx: TransactionView) -> TransitionContext:
    """Build the validation context for ``tx``."""
    governed_inputs = tx.governed(tx.inputs)
    governed_outputs = tx.governed(tx.outputs)

    if not governed_inputs:
        raise InvalidTransactionStructure("No input cell is governed by this script")

    successor: Optional[CellView] = governed_outputs[0] if len(governed_outputs) == 1 else None
    now = trusted_time(tx.header_deps)

    logger.debug(
        "Transaction view resolved",
        governed_inputs=len(governed_inputs),
        governed_outputs=len(governed_outputs),
        header_deps=len(tx.header_deps),
        trusted_now=now,
    )

    return TransitionContext(
        old_config=tx.script_args,
        old_state=governed_inputs[0].data,
        trusted_now=now,
        credentials=frozenset(bytes(c.lock_hash) for c in tx.inputs),
        new_config=tx.script_args if successor is not None else None,
        new_state=successor.data if successor is not None else None,
        governed_inputs=len(governed_inputs),
        governed_outputs=len(governed_outputs),
    )


def validate_transaction(tx: TransactionView, **options: Any) -> TransitionOutcome:
    """Validate ``tx`` as the vesting lock script would."""
    return validate_transition(context_from_transaction(tx), **options)
