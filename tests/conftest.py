import threading
import time

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from leadgen.core.exceptions import AccountNotFound, ConcurrencyConflict
from leadgen.db.base import Base
from leadgen.models.user import User
from leadgen.schemas.credits import AccountSnapshot
import leadgen.models  # noqa: F401


class InMemoryAccountStore:
    """
    Thread-safe account store with the same contract as SqlAccountStore.
    Counts conditional writes so tests can assert premium accounts are never written.
    """

    def __init__(self, read_delay: float = 0):
        self.accounts = {}
        self.writes = 0
        self.read_delay = read_delay
        self._lock = threading.Lock()

    def add(self, account_id, plan="freemium", usage_count=0):
        self.accounts[account_id] = {"plan": plan, "usage_count": usage_count}

    def usage(self, account_id):
        return self.accounts[account_id]["usage_count"]

    def read_account(self, account_id):
        with self._lock:
            account = self.accounts.get(account_id)
            if account is None:
                raise AccountNotFound(account_id)
            snapshot = AccountSnapshot(plan=account["plan"], usage_count=account["usage_count"])
        if self.read_delay:
            # Widen the window between read and write so threads actually race
            time.sleep(self.read_delay)
        return snapshot

    def conditional_increment_usage(self, account_id, expected_usage_count):
        with self._lock:
            account = self.accounts.get(account_id)
            if account is None:
                raise AccountNotFound(account_id)
            if account["usage_count"] != expected_usage_count:
                raise ConcurrencyConflict(account_id, expected_usage_count)
            account["usage_count"] += 1
            self.writes += 1
            return account["usage_count"]


@pytest.fixture
def store():
    return InMemoryAccountStore()


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'leadgen_test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(session_factory):
    """Insert an account row through its own session and return its id."""

    def _make_user(account_id="user-1", plan="freemium", email_credits=0, **fields):
        session = session_factory()
        try:
            session.add(User(
                id=account_id,
                email=fields.pop("email", f"{account_id}@example.com"),
                plan=plan,
                email_credits=email_credits,
                **fields
            ))
            session.commit()
        finally:
            session.close()
        return account_id

    return _make_user


@pytest.fixture
def read_usage(session_factory):
    """Read email_credits through a fresh session (committed state only)."""

    def _read_usage(account_id):
        session = session_factory()
        try:
            return session.query(User.email_credits).filter(User.id == account_id).scalar()
        finally:
            session.close()

    return _read_usage
