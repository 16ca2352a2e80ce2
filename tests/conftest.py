"""Pytest configuration for evalbridge tests.

Ensures the project root is in sys.path so imports work correctly.
"""

import sys
from pathlib import Path

import pytest

# Add project root to sys.path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from evalbridge.config import BridgeConfig, PollingConfig  # noqa: E402
from evalbridge.local import LocalTarget  # noqa: E402


@pytest.fixture
def fast_polling():
    """Polling tuned for in-process targets."""
    return PollingConfig(poll_interval=0.005, max_attempts=400, transient_backoff=0.001)


@pytest.fixture
def storage_root(tmp_path):
    root = tmp_path / "storage"
    root.mkdir()
    return root


@pytest.fixture
def bridge_config(storage_root, tmp_path, fast_polling):
    return BridgeConfig(
        storage_root=str(storage_root),
        download_dir=str(tmp_path / "downloads"),
        polling=fast_polling,
    )


@pytest.fixture
def target():
    return LocalTarget()
