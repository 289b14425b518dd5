"""
VESTLOCK: Vesting Lock Transition Validator

The validation core of an on-chain vesting arrangement. Given the proposed
transition of a single vesting record (one cell), VESTLOCK decides whether it
is a legal vesting operation. Every accepted transition moves real value, so
every check fails closed.

Architecture
────────────

    ┌─────────────────────────────────────────────────────────────────────────┐
    │                       VESTING LOCK VALIDATOR                             │
    │                                                                          │
    │  ORCHESTRATION                                                           │
    │    validator.py      Transition classifier and the four rules           │
    │    transaction.py    Context from a host transaction view               │
    │                                                                          │
    │  DOMAIN                                                                  │
    │    authorization.py  Creator / beneficiary / permissionless classes     │
    │    schedule.py       Linear vesting with cliff and termination          │
    │    layout.py         Fixed-width configuration and state records        │
    │                                                                          │
    │  FOUNDATION                                                              │
    │    errors.py         Closed rejection taxonomy with host exit codes     │
    │    hardening.py      Checked u64 arithmetic, invariant checks           │
    │    config.py         YAML + environment configuration                   │
    │    observability.py  Structured JSON logging                            │
    │                                                                          │
    └─────────────────────────────────────────────────────────────────────────┘

Core Concepts
─────────────

    Record: One cell holding immutable configuration (88 bytes of lock args)
    and mutable state (32 bytes of cell data).

    Trusted time: A monotonic time point taken from the transaction's header
    dependencies. The record remembers the highest one it has seen and
    rejects anything older (stale header).

    Termination: The creator's one-shot, all-or-nothing reclaim of the
    unvested balance. Afterwards the rest vests to the beneficiary at once.

Design Principles
─────────────────

    Fail Closed: Any unrecognised shape is rejected. There is no partial
    application of a transition.

    Pure Validation: No I/O and no state between calls. Records of different
    cells can be validated concurrently by the host without coordination.

Copyright (c) 2026 Momentum. All rights reserved.
"""

__version__ = "0.1.0"


def __getattr__(name):
    """Lazy import VESTLOCK modules on first access."""

    if name in ("ErrorCode", "VestingError", "MalformedLayout", "InvalidTransactionStructure",
                "InvalidAmount", "InsufficientVested", "AlreadyTerminated",
                "InvalidEpochOrdering", "StaleHeader", "Unauthorized",
                "VestingArithmeticError", "error_for_code"):
        from vestlock import errors
        return getattr(errors, name)

    if name in ("VestingConfig", "VestingState", "CONFIG_LEN", "STATE_LEN"):
        from vestlock import layout
        return getattr(layout, name)

    if name in ("vested_amount", "vested_for", "unvested_amount"):
        from vestlock import schedule
        return getattr(schedule, name)

    if name in ("AuthorizationClass", "classify_authorization"):
        from vestlock import authorization
        return getattr(authorization, name)

    if name in ("RecordPhase", "TransitionKind", "TransitionContext", "TransitionOutcome",
                "classify_transition", "validate_transition", "validate_creation",
                "program_entry"):
        from vestlock import validator
        return getattr(validator, name)

    if name in ("CellView", "HeaderView", "TransactionView", "context_from_transaction",
                "validate_transaction"):
        from vestlock import transaction
        return getattr(transaction, name)

    raise AttributeError(f"module 'vestlock' has no attribute '{name}'")


__all__ = [
    "__version__",
    # Errors
    "ErrorCode",
    "VestingError",
    "MalformedLayout",
    "InvalidTransactionStructure",
    "InvalidAmount",
    "InsufficientVested",
    "AlreadyTerminated",
    "InvalidEpochOrdering",
    "StaleHeader",
    "Unauthorized",
    "VestingArithmeticError",
    # Layout
    "VestingConfig",
    "VestingState",
    # Calculator
    "vested_amount",
    # Authorization
    "AuthorizationClass",
    "classify_authorization",
    # Validator
    "RecordPhase",
    "TransitionKind",
    "TransitionContext",
    "TransitionOutcome",
    "validate_transition",
    "validate_creation",
    "program_entry",
    # Adapter
    "TransactionView",
    "validate_transaction",
]
