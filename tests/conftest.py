"""Shared fixtures: a fixed reference date and a populated store."""
from datetime import date, timedelta

import pytest

from tracker.persistence import InMemoryBackend
from tracker.store import TrackerStore

TODAY = date(2025, 11, 13)


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def store(backend: InMemoryBackend) -> TrackerStore:
    return TrackerStore(backend, clock=lambda: TODAY)


@pytest.fixture
def course(store: TrackerStore):
    return store.add_class(
        course_code="CSE 262",
        course_title="Programming Languages",
        instructor="Dr. Smith",
        schedule="Mon/Wed 10:00 AM",
        color="#E5D7FF",
    )


@pytest.fixture
def make_assignment(store: TrackerStore, course):
    """Factory adding an assignment due ``offset`` days from the reference date."""
    def _make(title: str = "Quiz 5", offset: int = 3, **fields):
        return store.add_assignment(
            class_id=course.id,
            class_name=course.display_name,
            title=title,
            due_date=TODAY + timedelta(days=offset),
            **fields,
        )
    return _make
