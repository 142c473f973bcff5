"""
Shared fixtures for unit tests.

Stores run on a file-backed SQLite database through the SQLAlchemy
backend so the claim and bucket queries are exercised end to end, and
threadpool calls each get their own connection.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from leadpool.domain.models.actor import Actor, Role
from leadpool.domain.models.assignment import AssignmentPolicy
from leadpool.domain.services.audit_log import AuditLogService
from leadpool.infrastructure.storage.models import Base
from leadpool.infrastructure.storage.sql_stores import (
    SqlAuditStore,
    SqlCollectionStore,
    SqlInventoryStore,
    SqlLeadStore,
)

from tests.unit.factories import NOW


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def policy():
    return AssignmentPolicy()


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'leadpool.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def lead_store(session_factory):
    return SqlLeadStore(session_factory)


@pytest.fixture
def audit_store(session_factory):
    return SqlAuditStore(session_factory)


@pytest.fixture
def inventory_store(session_factory):
    return SqlInventoryStore(session_factory)


@pytest.fixture
def collection_store(session_factory):
    return SqlCollectionStore(session_factory)


@pytest.fixture
def audit_log(audit_store):
    return AuditLogService(audit_store)


@pytest.fixture
def agent():
    return Actor(id="u-agent", email="agent@example.com", name="Agent", role=Role.AGENT.value)


@pytest.fixture
def other_agent():
    return Actor(id="u-other", email="other@example.com", name="Other", role=Role.AGENT.value)


@pytest.fixture
def admin():
    return Actor(id="u-admin", email="admin@example.com", name="Admin", role=Role.ADMIN.value)
