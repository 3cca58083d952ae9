"""Pytest configuration and fixtures."""

import random

import pytest

from creditcore.core import CreditLedger, InMemoryAccountStore, InMemoryAuditSink
from creditcore.db.session import reset_session_factory


@pytest.fixture(autouse=True)
def reset_db_state():
    """Reset database engine/session state before each test."""
    reset_session_factory()
    yield
    reset_session_factory()


@pytest.fixture(autouse=True)
def seed_random():
    """Seed random for deterministic backoff jitter."""
    random.seed(42)
    yield


@pytest.fixture
def store():
    return InMemoryAccountStore()


@pytest.fixture
def sink():
    return InMemoryAuditSink()


@pytest.fixture
def ledger(store, sink):
    """Ledger over an in-memory store with no retry delay."""
    return CreditLedger(store=store, sinks=[sink], max_retries=2, backoff_base_seconds=0.0)
