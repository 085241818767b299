"""Shared pytest fixtures for the options risk engine tests."""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent.parent))

# Import all fixtures for global availability
from tests.fixtures.contract_fixtures import *
from tests.fixtures.account_fixtures import *
