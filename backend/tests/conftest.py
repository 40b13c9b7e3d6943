import os
import tempfile
from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path

# Settings are read at import time, so the environment must be in place first.
_TMP = Path(tempfile.mkdtemp(prefix="eventnexus-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP / 'tickets.db'}"
os.environ["ENV"] = "test"
os.environ["TICKET_HASH_SECRET"] = "test-only-ticket-secret"
os.environ["EXPIRY_SWEEP_SECONDS"] = "0"
os.environ["SCAN_SECURITY_THRESHOLD"] = "5"

import pytest

from eventnexus.api.deps import get_codec, get_scan_throttle
from eventnexus.core.clock import utcnow
from eventnexus.core.security import create_access_token
from eventnexus.db.init_db import create_tables
from eventnexus.db.session import SessionLocal, engine
from eventnexus.models.base import Base
from eventnexus.models.event import Event
from eventnexus.models.user import User
from eventnexus.services.issuance import TicketIssuer


@pytest.fixture(autouse=True)
def fresh_schema():
    Base.metadata.drop_all(bind=engine)
    create_tables()
    get_scan_throttle().reset()
    yield


@pytest.fixture
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def codec():
    return get_codec()


def make_user(db, name: str, role: str = "user") -> User:
    u = User(email=f"{name}@example.com", full_name=name, hashed_password="!", role=role, is_active=True)
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


def make_event(db, organizer: User, starts_at: datetime | None = None, ends_at: datetime | None = None, name: str = "Harbour Nights") -> Event:
    starts_at = starts_at or utcnow() + timedelta(days=1)
    e = Event(name=name, organizer_id=organizer.id, starts_at=starts_at, ends_at=ends_at)
    db.add(e)
    db.commit()
    db.refresh(e)
    return e


def issue(db, codec, event: Event, holder: User, price: str = "25.00", ticket_type: str = "standard"):
    return TicketIssuer(db, codec).issue(event_id=event.id, holder_id=holder.id, price=Decimal(price), ticket_type=ticket_type)


def auth_header(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(subject=user.id, roles=[user.role])}"}


@pytest.fixture
def cast(db):
    """Organizer, admin, holder and an unrelated user, plus an upcoming event."""
    organizer = make_user(db, "organizer", role="organizer")
    admin = make_user(db, "admin", role="admin")
    holder = make_user(db, "holder")
    stranger = make_user(db, "stranger")
    event = make_event(db, organizer, starts_at=utcnow() + timedelta(hours=2), ends_at=utcnow() + timedelta(hours=6))
    return {"organizer": organizer, "admin": admin, "holder": holder, "stranger": stranger, "event": event}
