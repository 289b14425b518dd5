import os
import pathlib
import sys

import pytest


# Ensure repo root is on PYTHONPATH for direct package imports (e.g. `import vestlock`).
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))


CREATOR = b"\x02" * 32
BENEFICIARY = b"\x01" * 32
STRANGER = b"\x07" * 32


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch):
    """Every test starts from default configuration with no VESTLOCK_* overrides."""
    from vestlock.config import ConfigManager

    def clear_env():
        for name in list(os.environ):
            if name.startswith("VESTLOCK_"):
                monkeypatch.delenv(name, raising=False)

    clear_env()
    ConfigManager.reset_instance()
    yield
    # a test's bad override must not leak into the loggers refreshed on reset
    clear_env()
    ConfigManager.reset_instance()


@pytest.fixture
def config():
    """start=100, end=200, cliff=120."""
    from vestlock.layout import VestingConfig

    return VestingConfig(
        creator_lock_hash=CREATOR,
        beneficiary_lock_hash=BENEFICIARY,
        start_epoch=100,
        end_epoch=200,
        cliff_epoch=120,
    )
