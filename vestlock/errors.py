"""
VESTLOCK Error Taxonomy

Closed set of rejection reasons produced by the transition validator. Every
error is terminal for the transaction being validated: nothing in this
package catches and recovers from one. The host runtime consumes the numeric
code through ``VestingError.code`` and translates it into its own exit
convention.

Codes:

    10  MalformedLayout               buffer width does not match the layout
    13  InvalidTransactionStructure   wrong governed cell shape or no-op
    20  InvalidAmount                 claim or termination arithmetic
    21  InsufficientVested            claim exceeds the vested amount
    22  AlreadyTerminated             second termination attempt
    23  InvalidEpochOrdering          start <= cliff <= end violated
    24  StaleHeader                   trusted time regressed
    25  Unauthorized                  credentials do not permit the change
    28  VestingArithmeticError        vesting product overflow refused by policy

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Dict, Optional, Type


class ErrorCode(IntEnum):
    """Host-facing rejection codes."""
    MALFORMED_LAYOUT = 10
    INVALID_TRANSACTION_STRUCTURE = 13
    INVALID_AMOUNT = 20
    INSUFFICIENT_VESTED = 21
    ALREADY_TERMINATED = 22
    INVALID_EPOCH_ORDERING = 23
    STALE_HEADER = 24
    UNAUTHORIZED = 25
    ARITHMETIC_ERROR = 28


# =============================================================================
# EXCEPTION HIERARCHY
# =============================================================================

class VestingError(Exception):
    """Base exception for every rejected transition."""

    code: ErrorCode = ErrorCode.INVALID_TRANSACTION_STRUCTURE

    def __init__(self, message: str, **details: Any):
        self.message = message
        self.details: Dict[str, Any] = details
        super().__init__(f"[{self.code.name}] {message}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": int(self.code),
            "name": self.code.name,
            "message": self.message,
            "details": dict(self.details),
        }


class MalformedLayout(VestingError):
    """Configuration or state buffer has the wrong width or field range."""
    code = ErrorCode.MALFORMED_LAYOUT


class InvalidTransactionStructure(VestingError):
    """Governed input/output shape is wrong, or the transition is a no-op."""
    code = ErrorCode.INVALID_TRANSACTION_STRUCTURE


class InvalidAmount(VestingError):
    """Claim or termination amounts violate the accounting rules."""
    code = ErrorCode.INVALID_AMOUNT


class InsufficientVested(VestingError):
    """Beneficiary claim exceeds the vested amount."""
    code = ErrorCode.INSUFFICIENT_VESTED


class AlreadyTerminated(VestingError):
    """Creator attempted a second termination."""
    code = ErrorCode.ALREADY_TERMINATED


class InvalidEpochOrdering(VestingError):
    """Configuration violates start <= cliff <= end, or start == end."""
    code = ErrorCode.INVALID_EPOCH_ORDERING


class StaleHeader(VestingError):
    """Trusted time is older than the recorded high-water mark."""
    code = ErrorCode.STALE_HEADER


class Unauthorized(VestingError):
    """Presented credentials do not permit the attempted change."""
    code = ErrorCode.UNAUTHORIZED


class VestingArithmeticError(VestingError):
    """Vesting product overflow that the active policy refuses."""
    code = ErrorCode.ARITHMETIC_ERROR


_ERRORS_BY_CODE: Dict[ErrorCode, Type[VestingError]] = {
    cls.code: cls
    for cls in (
        MalformedLayout,
        InvalidTransactionStructure,
        InvalidAmount,
        InsufficientVested,
        AlreadyTerminated,
        InvalidEpochOrdering,
        StaleHeader,
        Unauthorized,
        VestingArithmeticError,
    )
}


def error_for_code(code: int) -> Optional[Type[VestingError]]:
    """Look up the exception class for a host exit code."""
    try:
        return _ERRORS_BY_CODE[ErrorCode(code)]
    except ValueError:
        return None
