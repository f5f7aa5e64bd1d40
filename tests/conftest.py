"""
Pytest configuration and shared fixtures.
"""

import sys
from pathlib import Path

import pytest

# Add the repository root to the path so `import sumfri` works without install
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from sumfri.primitives.field import FF, FF3  # noqa: E402
from sumfri.protocol.config import PcsConfig  # noqa: E402


@pytest.fixture
def small_config() -> PcsConfig:
    """Cheap parameters for protocol tests over FF3."""
    return PcsConfig(log_blowup=1, log_final_degree=1, n_queries=8)


@pytest.fixture
def base_field():
    return FF


@pytest.fixture
def ext_field():
    return FF3


def hypercube_point(index: int, n_vars: int, field):
    """Boolean point whose bit j is bit j of index."""
    return [field((index >> j) & 1) for j in range(n_vars)]
