"""
Layout codec tests.

Covers the fixed-width configuration (88 bytes) and state (32 bytes)
records: widths, byte order, field ranges and the epoch ordering check.
"""

import pytest

from conftest import BENEFICIARY, CREATOR
from vestlock.errors import InvalidEpochOrdering, MalformedLayout
from vestlock.hardening import U64_MAX
from vestlock.layout import CONFIG_LEN, STATE_LEN, VestingConfig, VestingState


# =============================================================================
# CONFIGURATION
# =============================================================================

class TestVestingConfig:
    """Tests for the 88-byte configuration record."""

    def test_widths(self):
        assert CONFIG_LEN == 88
        assert STATE_LEN == 32

    def test_field_offsets(self, config):
        """Hashes first, then start/end/cliff as little-endian u64."""
        raw = config.to_bytes()
        assert len(raw) == 88
        assert raw[0:32] == CREATOR
        assert raw[32:64] == BENEFICIARY
        assert raw[64:72] == (100).to_bytes(8, "little")
        assert raw[72:80] == (200).to_bytes(8, "little")
        assert raw[80:88] == (120).to_bytes(8, "little")

    def test_decode_is_inverse_of_encode(self, config):
        raw = config.to_bytes()
        decoded = VestingConfig.from_bytes(raw)
        assert decoded == config
        assert decoded.to_bytes() == raw

    def test_decode_accepts_bytearray(self, config):
        assert VestingConfig.from_bytes(bytearray(config.to_bytes())) == config

    @pytest.mark.parametrize("length", [0, 87, 89, 120])
    def test_wrong_length_rejected(self, length):
        with pytest.raises(MalformedLayout):
            VestingConfig.from_bytes(b"\x00" * length)

    def test_hex_string_buffer_rejected(self, config):
        """Raw buffers must be bytes; hex is only accepted for hash fields."""
        with pytest.raises(MalformedLayout):
            VestingConfig.from_bytes(config.to_bytes().hex())

    def test_short_hash_rejected(self):
        with pytest.raises(MalformedLayout):
            VestingConfig(CREATOR[:31], BENEFICIARY, 0, 10, 0)

    def test_hex_hash_accepted(self):
        cfg = VestingConfig("0x" + "02" * 32, BENEFICIARY.hex(), 0, 10, 5)
        assert cfg.creator_lock_hash == CREATOR
        assert cfg.beneficiary_lock_hash == BENEFICIARY

    def test_epoch_out_of_range_rejected(self):
        with pytest.raises(MalformedLayout):
            VestingConfig(CREATOR, BENEFICIARY, -1, 10, 5)
        with pytest.raises(MalformedLayout):
            VestingConfig(CREATOR, BENEFICIARY, 0, U64_MAX + 1, 5)

    def test_decode_does_not_check_ordering(self):
        """Semantic checks are separate from decoding."""
        cfg = VestingConfig(CREATOR, BENEFICIARY, 300, 200, 250)
        assert VestingConfig.from_bytes(cfg.to_bytes()).start_epoch == 300

    def test_to_dict(self, config):
        d = config.to_dict()
        assert d["creator_lock_hash"] == "0x" + "02" * 32
        assert d["cliff_epoch"] == 120


class TestEpochOrdering:
    """Tests for start <= cliff <= end with start < end."""

    def test_valid_ordering(self, config):
        config.check_epoch_ordering()

    def test_cliff_may_equal_start_or_end(self):
        VestingConfig(CREATOR, BENEFICIARY, 100, 200, 100).check_epoch_ordering()
        VestingConfig(CREATOR, BENEFICIARY, 100, 200, 200).check_epoch_ordering()

    def test_start_after_end(self):
        with pytest.raises(InvalidEpochOrdering):
            VestingConfig(CREATOR, BENEFICIARY, 300, 200, 250).check_epoch_ordering()

    def test_start_equals_end(self):
        with pytest.raises(InvalidEpochOrdering):
            VestingConfig(CREATOR, BENEFICIARY, 200, 200, 200).check_epoch_ordering()

    def test_cliff_before_start(self):
        with pytest.raises(InvalidEpochOrdering):
            VestingConfig(CREATOR, BENEFICIARY, 100, 200, 50).check_epoch_ordering()

    def test_cliff_after_end(self):
        with pytest.raises(InvalidEpochOrdering):
            VestingConfig(CREATOR, BENEFICIARY, 100, 200, 250).check_epoch_ordering()


# =============================================================================
# STATE
# =============================================================================

class TestVestingState:
    """Tests for the 32-byte state record."""

    def test_little_endian_layout(self):
        state = VestingState(1, 2, 3, 0x0102030405060708)
        raw = state.to_bytes()
        assert raw[0:8] == b"\x01" + b"\x00" * 7
        assert raw[8:16] == b"\x02" + b"\x00" * 7
        assert raw[16:24] == b"\x03" + b"\x00" * 7
        assert raw[24:32] == bytes([8, 7, 6, 5, 4, 3, 2, 1])

    def test_decode_is_inverse_of_encode(self):
        state = VestingState(U64_MAX, 12345, 0, 99)
        raw = state.to_bytes()
        assert VestingState.from_bytes(raw) == state
        assert VestingState.from_bytes(raw).to_bytes() == raw

    @pytest.mark.parametrize("length", [0, 31, 33, 88])
    def test_wrong_length_rejected(self, length):
        with pytest.raises(MalformedLayout):
            VestingState.from_bytes(b"\x00" * length)

    def test_non_bytes_rejected(self):
        with pytest.raises(MalformedLayout):
            VestingState.from_bytes(None)

    def test_amount_out_of_range_rejected(self):
        with pytest.raises(MalformedLayout):
            VestingState(U64_MAX + 1, 0, 0, 0)
        with pytest.raises(MalformedLayout):
            VestingState(10, -1, 0, 0)

    def test_bool_is_not_an_amount(self):
        with pytest.raises(MalformedLayout):
            VestingState(True, 0, 0, 0)

    def test_derived_properties(self):
        active = VestingState(1000, 300, 0, 0)
        assert not active.is_terminated
        assert active.claimed == 300
        assert active.remaining == 700
        assert not active.is_drained

        terminated = VestingState(1000, 300, 700, 0)
        assert terminated.is_terminated
        assert terminated.remaining == 0
        assert terminated.is_drained

    def test_with_changes_returns_copy(self):
        state = VestingState(1000, 0, 0, 5)
        moved = state.with_changes(highest_time_seen=9)
        assert moved.highest_time_seen == 9
        assert state.highest_time_seen == 5

    def test_with_changes_validates(self):
        with pytest.raises(MalformedLayout):
            VestingState(1000, 0, 0, 5).with_changes(beneficiary_claimed=-5)
