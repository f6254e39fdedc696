"""Test configuration for cad_sync."""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest  # noqa: E402

from fakes import make_helper_config, make_settings  # noqa: E402


@pytest.fixture()
def helper_config():
    return make_helper_config()


@pytest.fixture()
def settings(tmp_path: Path):
    return make_settings(tmp_path)
