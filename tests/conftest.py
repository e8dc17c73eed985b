# FILE: tests/conftest.py

import pytest
import sys
import os
import logging
from datetime import datetime
from functools import partial

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from control_numbers import generate_control_number
from edi_generator import EdiGenerator

# Epoch milliseconds whose last nine digits are 000000123.
FIXED_NOW_MS = 1_700_000_000_123
FIXED_NOW = datetime(2024, 3, 5, 14, 7)

# ==============================================================================
# PYTEST CONFIGURATION & HOOKS
# ==============================================================================

def pytest_configure(config):
    """Configure pytest settings and markers."""
    config.addinivalue_line("markers", "unit: Pure unit tests with no external dependencies.")
    config.addinivalue_line("markers", "integration: Tests that run the whole load -> edit -> generate flow.")

@pytest.fixture(scope="session", autouse=True)
def setup_test_environment(pytestconfig):
    """Set up test environment with logging configuration."""
    # Use pytest's log_cli_level if available, otherwise default to INFO
    log_level = pytestconfig.getoption("log_cli_level") or "INFO"
    logging.basicConfig(
        level=log_level.upper(),
        format="[%(asctime)s] [%(levelname)s] [%(name)s:%(lineno)d] - %(message)s",
        stream=sys.stdout,
        force=True,
    )
    logging.info(f"Test logging configured with level: {log_level.upper()}")
    yield

# ==============================================================================
# GENERATOR FIXTURES (fixed clock and control numbers)
# ==============================================================================

@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW

@pytest.fixture
def generator(fixed_clock) -> EdiGenerator:
    return EdiGenerator(clock=fixed_clock, control_number_factory=partial(generate_control_number, now_ms=FIXED_NOW_MS))

# ==============================================================================
# EDI DOCUMENT FIXTURES
# ==============================================================================

@pytest.fixture(scope="session")
def multi_line_850_edi_string() -> str:
    """
    One segment per line, three PO1 groups:
    - PO1 1 with PO4 and AMT
    - PO1 2 with PO4 only
    - PO1 3 with no dependents
    Two header DTM segments before the first PO1.
    """
    return """
ISA*00*          *00*          *ZZ*SENDER         *ZZ*RECEIVER       *240101*1200*U*00401*000000001*0*P*>~
GS*PO*SENDER*RECEIVER*20240101*1200*1*X*004010~
ST*850*0001~
BEG*00*SA*PO123**20240101~
DTM*002*20240115~
DTM*010*20240110~
PO1*1*10*EA*5*PP*VP*ITEM1~
PO4*1*1*EA~
AMT*1*50~
PO1*2*20*EA*6*PP*VP*ITEM2~
PO4*1*2*EA~
PO1*3*30*EA*7*PP*VP*ITEM3~
CTT*3~
SE*12*0001~
GE*1*1~
IEA*1*000000001~
""".strip()

@pytest.fixture(scope="session")
def single_line_850_edi_string() -> str:
    """The header-override scenario: one PO1 group, no newlines, stale SE count."""
    return (
        "ISA*00*          *00*          *ZZ*SENDER         *ZZ*RECEIVER       *240101*1200*U*00501*000000001*0*P*>~"
        "GS*PO*SENDER*RECEIVER*20240101*1200*0001*X*005010~"
        "ST*850*0001~"
        "BEG*00*SA*PO123**20240101~"
        "PO1*1*10*EA*5*PP*VP*ITEM1~"
        "PO4*1*1*EA~"
        "AMT*1*50~"
        "CTT*1~"
        "SE*6*0001~"
        "GE*1*0001~"
        "IEA*1*000000001~"
    )

@pytest.fixture(scope="session")
def g62_edi_string() -> str:
    """G62 dates sharing a qualifier, one six-digit, plus a DTM."""
    return """
ISA*00*          *00*          *ZZ*SENDER         *ZZ*RECEIVER       *240101*1200*U*00401*000000001*0*P*>~
GS*PO*SENDER*RECEIVER*20240101*1200*1*X*004010~
ST*875*0001~
BEG*00*SA*PO875**20240105~
G62*10*240229~
G62*10*20240301~
DTM*002*20240110~
PO1*1*5*CA*12.5*UP*1234~
CTT*1~
SE*8*0001~
GE*1*1~
IEA*1*000000001~
""".strip()
