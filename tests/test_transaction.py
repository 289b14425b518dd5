"""
Transaction adapter tests.

Builds host transaction views around a vesting record and checks that the
adapter derives the right governed cells, credentials and trusted time.
"""

import pytest

from conftest import BENEFICIARY, CREATOR, STRANGER
from vestlock.authorization import AuthorizationClass
from vestlock.errors import InvalidTransactionStructure, StaleHeader
from vestlock.layout import VestingState
from vestlock.transaction import (
    CellView,
    HeaderView,
    TransactionView,
    context_from_transaction,
    trusted_time,
    validate_transaction,
)
from vestlock.validator import RecordPhase, TransitionKind

SCRIPT_HASH = b"\x09" * 32


def record(b=0, c=0, hts=100):
    return CellView(SCRIPT_HASH, VestingState(1000, b, c, hts).to_bytes())


def tx(config, inputs, outputs, headers):
    return TransactionView(
        script_hash=SCRIPT_HASH,
        script_args=config.to_bytes(),
        inputs=tuple(inputs),
        outputs=tuple(outputs),
        header_deps=tuple(HeaderView(n) for n in headers),
    )


class TestTrustedTime:
    """The trusted time is the highest header dependency."""

    def test_highest_header_wins(self):
        assert trusted_time([HeaderView(120), HeaderView(150), HeaderView(130)]) == 150

    def test_single_header(self):
        assert trusted_time([HeaderView(7)]) == 7

    def test_no_headers_rejected(self):
        with pytest.raises(InvalidTransactionStructure):
            trusted_time([])


class TestContextFromTransaction:
    """Context derivation."""

    def test_credentials_are_input_lock_hashes(self, config):
        view = tx(
            config,
            [record(), CellView(BENEFICIARY), CellView(STRANGER)],
            [record(b=500, hts=150)],
            [150],
        )
        ctx = context_from_transaction(view)
        assert ctx.credentials == frozenset({SCRIPT_HASH, BENEFICIARY, STRANGER})
        assert ctx.trusted_now == 150
        assert ctx.governed_inputs == 1
        assert ctx.governed_outputs == 1
        assert ctx.new_config == config.to_bytes()

    def test_output_locks_are_not_credentials(self, config):
        view = tx(config, [record()], [record(hts=150), CellView(CREATOR)], [150])
        ctx = context_from_transaction(view)
        assert CREATOR not in ctx.credentials

    def test_consumption_has_no_successor(self, config):
        view = tx(config, [record(), CellView(CREATOR)], [CellView(CREATOR)], [110])
        ctx = context_from_transaction(view)
        assert ctx.new_state is None
        assert ctx.new_config is None
        assert ctx.output_count == 0

    def test_no_governed_input(self, config):
        view = tx(config, [CellView(BENEFICIARY)], [record()], [150])
        with pytest.raises(InvalidTransactionStructure):
            context_from_transaction(view)

    def test_no_headers(self, config):
        view = tx(config, [record()], [record(hts=150)], [])
        with pytest.raises(InvalidTransactionStructure):
            context_from_transaction(view)


class TestValidateTransaction:
    """End-to-end validation through the adapter."""

    def test_beneficiary_claim(self, config):
        view = tx(
            config,
            [record(), CellView(BENEFICIARY)],
            [record(b=500, hts=150), CellView(BENEFICIARY)],
            [140, 150],
        )
        outcome = validate_transaction(view)
        assert outcome.kind is TransitionKind.BENEFICIARY_CLAIM
        assert outcome.beneficiary_delta == 500

    def test_permissionless_security_update(self, config):
        view = tx(config, [record(), CellView(STRANGER)], [record(hts=150)], [150])
        outcome = validate_transaction(view)
        assert outcome.kind is TransitionKind.SECURITY_UPDATE
        assert outcome.authorization is AuthorizationClass.PERMISSIONLESS

    def test_creator_termination_before_cliff_closes(self, config):
        view = tx(config, [record(), CellView(CREATOR)], [CellView(CREATOR)], [110])
        outcome = validate_transaction(view)
        assert outcome.kind is TransitionKind.CREATOR_TERMINATION
        assert outcome.phase_after is RecordPhase.CLOSED

    def test_two_governed_inputs(self, config):
        view = tx(
            config,
            [record(), record(), CellView(BENEFICIARY)],
            [record(b=500, hts=150)],
            [150],
        )
        with pytest.raises(InvalidTransactionStructure):
            validate_transaction(view)

    def test_two_governed_outputs(self, config):
        view = tx(
            config,
            [record(), CellView(BENEFICIARY)],
            [record(b=250, hts=150), record(b=250, hts=150)],
            [150],
        )
        with pytest.raises(InvalidTransactionStructure):
            validate_transaction(view)

    def test_stale_headers(self, config):
        view = tx(config, [record(hts=500)], [record(hts=500)], [470, 480])
        with pytest.raises(StaleHeader):
            validate_transaction(view)

    def test_options_forwarded(self, config):
        view = tx(
            config,
            [record(hts=150), CellView(BENEFICIARY)],
            [record(b=500, hts=150)],
            [150],
        )
        with pytest.raises(StaleHeader):
            validate_transaction(view, strict_header_freshness=True)
