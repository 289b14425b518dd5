"""
VESTLOCK Validation and Hardening Module

Input validation, unsigned 64-bit arithmetic and invariant enforcement shared
by the codec, the vesting calculator and the transition validator.

1. Field validation with structured results
2. Constant-time credential comparison
3. Checked u64 arithmetic (no silent wrapping)
4. Transition invariant enforcement

Security Model:
    - All record bytes are untrusted until decoded and validated
    - Credential hashes are compared in constant time
    - Arithmetic never wraps; overflow is reported to the caller
    - Every invariant violation raises a taxonomy error

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass, field
from typing import Any, List, Optional, Type

from vestlock.errors import InvalidAmount, MalformedLayout, VestingError


U64_MAX = (1 << 64) - 1
LOCK_HASH_LEN = 32


# =============================================================================
# VALIDATION RESULT
# =============================================================================

@dataclass
class FieldIssue:
    """A single field-level validation failure."""
    field: str
    message: str
    value: Any = None

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


@dataclass
class ValidationResult:
    """Result of a validation operation."""
    is_valid: bool
    errors: List[FieldIssue] = field(default_factory=list)
    sanitized_value: Any = None

    def raise_if_invalid(self, error_cls: Type[VestingError] = MalformedLayout) -> None:
        """Raise ``error_cls`` if validation failed."""
        if not self.is_valid:
            messages = "; ".join(str(e) for e in self.errors)
            raise error_cls(messages, fields=[e.field for e in self.errors])

    @classmethod
    def success(cls, sanitized_value: Any = None) -> "ValidationResult":
        return cls(is_valid=True, sanitized_value=sanitized_value)

    @classmethod
    def failure(cls, errors: List[FieldIssue]) -> "ValidationResult":
        return cls(is_valid=False, errors=errors)


# =============================================================================
# INPUT VALIDATORS
# =============================================================================

class Validators:
    """Collection of input validators for record fields."""

    @classmethod
    def validate_u64(cls, value: Any, field_name: str) -> ValidationResult:
        """Validate an unsigned 64-bit integer."""
        # bool is an int subclass but never a legitimate amount or epoch
        if isinstance(value, bool) or not isinstance(value, int):
            return ValidationResult.failure([
                FieldIssue(field_name, f"Expected int, got {type(value).__name__}", value)
            ])
        if value < 0 or value > U64_MAX:
            return ValidationResult.failure([
                FieldIssue(field_name, "Out of unsigned 64-bit range", value)
            ])
        return ValidationResult.success(value)

    @classmethod
    def validate_bytes(
        cls,
        value: Any,
        field_name: str,
        exact_length: Optional[int] = None,
    ) -> ValidationResult:
        """Validate a bytes-like value, accepting hex strings."""
        if isinstance(value, str):
            text = value[2:] if value.startswith("0x") else value
            try:
                value = bytes.fromhex(text)
            except ValueError:
                return ValidationResult.failure([
                    FieldIssue(field_name, "Invalid hex string", value)
                ])

        if isinstance(value, (bytearray, memoryview)):
            value = bytes(value)

        if not isinstance(value, bytes):
            return ValidationResult.failure([
                FieldIssue(field_name, f"Expected bytes, got {type(value).__name__}", value)
            ])

        if exact_length is not None and len(value) != exact_length:
            return ValidationResult.failure([
                FieldIssue(
                    field_name,
                    f"Expected exactly {exact_length} bytes, got {len(value)}",
                    value,
                )
            ])

        return ValidationResult.success(value)

    @classmethod
    def validate_lock_hash(cls, value: Any, field_name: str) -> ValidationResult:
        """Validate a 32-byte credential (lock script) hash."""
        return cls.validate_bytes(value, field_name, exact_length=LOCK_HASH_LEN)


# =============================================================================
# CRYPTOGRAPHIC UTILITIES
# =============================================================================

class CryptoUtils:
    """Cryptographic utility functions with security hardening."""

    @staticmethod
    def secure_compare(a: bytes, b: bytes) -> bool:
        """Constant-time comparison to prevent timing attacks."""
        return hmac.compare_digest(a, b)


# =============================================================================
# UNSIGNED 64-BIT ARITHMETIC
# =============================================================================

class U64:
    """Checked arithmetic over the unsigned 64-bit domain.

    ``checked_mul`` returns ``None`` when the product leaves the
    domain, so callers decide the policy instead of silently wrapping.
    """

    @staticmethod
    def checked_mul(a: int, b: int) -> Optional[int]:
        result = a * b
        return result if result <= U64_MAX else None

    @staticmethod
    def saturating_sub(a: int, b: int) -> int:
        return a - b if a > b else 0


# =============================================================================
# STATE MACHINE INVARIANTS
# =============================================================================

class InvariantChecker:
    """Enforces record invariants across a transition."""

    @staticmethod
    def check_monotonic_increase(
        field_name: str,
        old_value: int,
        new_value: int,
        error_cls: Type[VestingError] = InvalidAmount,
    ) -> None:
        """Ensure value never decreases."""
        if new_value < old_value:
            raise error_cls(
                f"{field_name} must be monotonically non-decreasing: "
                f"cannot go from {old_value} to {new_value}",
                field=field_name,
                old=old_value,
                new=new_value,
            )

    @staticmethod
    def check_unchanged(
        field_name: str,
        old_value: int,
        new_value: int,
        error_cls: Type[VestingError] = InvalidAmount,
    ) -> None:
        """Ensure value is carried forward untouched."""
        if new_value != old_value:
            raise error_cls(
                f"{field_name} must not change: {old_value} -> {new_value}",
                field=field_name,
                old=old_value,
                new=new_value,
            )

    @staticmethod
    def check_within_cap(
        field_name: str,
        value: int,
        cap: int,
        error_cls: Type[VestingError] = InvalidAmount,
    ) -> None:
        """Ensure value does not exceed its cap."""
        if value > cap:
            raise error_cls(
                f"{field_name} {value} exceeds {cap}",
                field=field_name,
                value=value,
                cap=cap,
            )
