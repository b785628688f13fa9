"""Demo catalog for the console and for trying the engine without a data file."""
from __future__ import annotations

from datetime import date, timedelta

from placement.log import get_logger
from placement.models import (
    Posting,
    PostingLevel,
    PostingStatus,
    RepProfile,
    StudentProfile,
)
from placement.stores import AccountStore, InMemoryPostingStore

log = get_logger(__name__)


def sample_accounts() -> AccountStore:
    return AccountStore(
        students=[
            StudentProfile(id="U2310001A", name="Tan Wei Ling", year=1, major="CSC"),
            StudentProfile(id="U2310002B", name="Arjun Nair", year=3, major="CSC"),
            StudentProfile(id="U2310003C", name="Mei Chen", year=4, major="EEE"),
        ],
        reps=[
            RepProfile(id="rep.acme", name="Priya Rao", company_name="Acme Robotics"),
            RepProfile(id="rep.nimbus", name="Daniel Koh", company_name="Nimbus Cloud"),
        ],
        staff_ids=["staff.ccs"],
    )


def sample_postings(today: date) -> InMemoryPostingStore:
    log.info("Seeding demo postings around %s", today.isoformat())
    opened = today - timedelta(days=10)
    postings = [
        Posting(
            id="INT-0001",
            title="Robotics Software Intern",
            description="ROS, C++ and Python on warehouse robots.",
            level=PostingLevel.INTERMEDIATE,
            preferred_major="CSC",
            company_name="Acme Robotics",
            owner_rep_id="rep.acme",
            capacity=2,
            open_date=opened,
            close_date=today + timedelta(days=5),
            status=PostingStatus.APPROVED,
        ),
        Posting(
            id="INT-0002",
            title="Cloud Support Intern",
            description="Customer escalations, Linux and Kubernetes basics.",
            level=PostingLevel.BASIC,
            company_name="Nimbus Cloud",
            owner_rep_id="rep.nimbus",
            capacity=3,
            open_date=opened,
            close_date=today + timedelta(days=20),
            status=PostingStatus.APPROVED,
        ),
        Posting(
            id="INT-0003",
            title="Embedded Firmware Intern",
            description="Motor controllers and sensor fusion.",
            level=PostingLevel.ADVANCED,
            preferred_major="EEE",
            company_name="Acme Robotics",
            owner_rep_id="rep.acme",
            capacity=1,
            open_date=opened,
            close_date=today + timedelta(days=45),
            status=PostingStatus.APPROVED,
        ),
        Posting(
            id="INT-0004",
            title="Data Platform Intern",
            description="Python pipelines on the Nimbus data lake.",
            level=PostingLevel.BASIC,
            company_name="Nimbus Cloud",
            owner_rep_id="rep.nimbus",
            capacity=2,
            open_date=today,
            close_date=today + timedelta(days=30),
            status=PostingStatus.PENDING,
        ),
    ]
    return InMemoryPostingStore(postings)
