# tests/conftest.py
"""
Pytest configuration and shared fixtures.
Adds the project root to sys.path so `import placement` works from a checkout.
"""

import os
import sys
from pathlib import Path

os.environ.setdefault("PLACEMENT_LOG_FILE", "0")

project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import pytest

from placement.config import Settings
from placement.context import PlacementContext
from placement.models import PostingLevel, RepProfile, StudentProfile
from placement.stores import AccountStore, FixedClock, InMemoryPostingStore
from tests.factories import TODAY, make_posting


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def accounts():
    return AccountStore(
        students=[
            StudentProfile(id="S1", year=3, major="CSC"),
            StudentProfile(id="S2", year=3, major="CSC"),
            StudentProfile(id="S3", year=4, major="EEE"),
            StudentProfile(id="S4", year=3, major="csc"),
            StudentProfile(id="JR", year=1, major="CSC"),
        ],
        reps=[
            RepProfile(id="rep.acme", company_name="Acme"),
            RepProfile(id="rep.other", company_name="Other Co"),
            RepProfile(id="rep.new", company_name="Newco", approved=False),
        ],
        staff_ids=["staff.1"],
    )


@pytest.fixture
def store():
    """Five open postings, all owned by rep.acme."""
    return InMemoryPostingStore(
        [
            make_posting("INT-0001"),
            make_posting("INT-0002", title="Data Intern", capacity=3),
            make_posting("INT-0003", title="Hardware Intern", preferred_major="EEE"),
            make_posting("INT-0004", title="Cloud Intern", level=PostingLevel.INTERMEDIATE),
            make_posting("INT-0005", title="QA Intern", capacity=1),
        ]
    )


@pytest.fixture
def ctx(store, accounts):
    return PlacementContext(store, accounts, clock=FixedClock(TODAY), settings=Settings())


@pytest.fixture
def ledger(ctx):
    return ctx.ledger
