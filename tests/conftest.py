"""
Pytest Configuration and Fixtures
Global test configuration, fake providers and reusable sample data
"""

import os
import sys

# Load .env.test before any other imports
from dotenv import load_dotenv
load_dotenv('.env.test')

import pytest

# Add repository root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# Override environment for tests
os.environ["ENVIRONMENT"] = "development"
os.environ["LOG_LEVEL"] = "ERROR"
os.environ["DATABASE_URL"] = ""

from overlay_packs.core.config import reset_config
from overlay_packs.models import RepairIntent, VehicleDescriptor
from tests.fakes import FakeImageHost, FakeImageProvider, FakeReasoningProvider


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_policy():
    """Reload the generation policy for every test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def camry() -> VehicleDescriptor:
    return VehicleDescriptor(year=2020, make="Toyota", model="Camry", engine="2.5L I4", trim="LE")


@pytest.fixture
def battery_replacement() -> RepairIntent:
    return RepairIntent("battery_replacement")


@pytest.fixture
def reasoning() -> FakeReasoningProvider:
    return FakeReasoningProvider()


@pytest.fixture
def image_provider() -> FakeImageProvider:
    return FakeImageProvider()


@pytest.fixture
def image_host() -> FakeImageHost:
    return FakeImageHost()
