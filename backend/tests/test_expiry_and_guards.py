from datetime import timedelta

import pytest
from pydantic import ValidationError

from conftest import issue, make_event
from eventnexus.core.clock import utcnow
from eventnexus.core.config import DEV_TICKET_SECRET, Settings, settings
from eventnexus.models.ticket import Ticket
from eventnexus.schemas.ticket import VerificationError
from eventnexus.services.expiry_scheduler import expire_lapsed_tickets
from eventnexus.services.qr_renderer import QRRenderError, render_data_url, render_png
from eventnexus.services.scan_guard import SecurityFailureThrottle
from eventnexus.services.verification import Scanner, VerificationEngine


def test_sweep_expires_only_lapsed_valid_tickets(db, codec, cast):
    now = utcnow()
    past = make_event(db, cast["organizer"], starts_at=now - timedelta(days=3), ends_at=now - timedelta(days=2), name="Past")
    recent = make_event(db, cast["organizer"], starts_at=now - timedelta(hours=5), ends_at=now - timedelta(hours=2), name="Recent")
    lapsed = issue(db, codec, past, cast["holder"])
    used = issue(db, codec, past, cast["holder"])
    used.status = "used"
    db.commit()
    within_grace = issue(db, codec, recent, cast["holder"])
    upcoming = issue(db, codec, cast["event"], cast["holder"])

    assert expire_lapsed_tickets(db, now, timedelta(hours=24)) == 1
    db.expire_all()
    assert db.get(Ticket, lapsed.id).status == "expired"
    assert db.get(Ticket, used.id).status == "used"
    assert db.get(Ticket, within_grace.id).status == "valid"
    assert db.get(Ticket, upcoming.id).status == "valid"
    # a second pass has nothing left to do
    assert expire_lapsed_tickets(db, now, timedelta(hours=24)) == 0

    result = VerificationEngine(db, codec).redeem(Scanner(cast["organizer"].id, ("organizer",)), qr_payload=lapsed.qr_payload)
    assert result.error_code == VerificationError.EXPIRED


def test_throttle_window():
    now = [100.0]
    guard = SecurityFailureThrottle(threshold=3, window_seconds=60, clock=lambda: now[0])
    for _ in range(2):
        guard.record_failure("scanner")
    assert not guard.is_blocked("scanner")
    guard.record_failure("scanner")
    assert guard.is_blocked("scanner")
    assert not guard.is_blocked("someone-else")
    now[0] += 61
    assert not guard.is_blocked("scanner")


def test_throttle_forgets_scanners_that_went_quiet():
    now = [100.0]
    guard = SecurityFailureThrottle(threshold=3, window_seconds=60, clock=lambda: now[0])
    guard.record_failure("one-off")
    assert guard.tracked() == 1
    now[0] += 61
    guard.record_failure("scanner")
    assert guard.tracked() == 1
    assert not guard.is_blocked("one-off")


def test_render_png_and_data_url():
    png = render_png("ENX-abc-0123456789ab", error_correction="M", box_size=2, margin=1)
    assert png.startswith(b"\x89PNG")
    assert render_data_url("ENX-abc-0123456789ab").startswith("data:image/png;base64,")


def test_render_rejects_unknown_error_correction():
    with pytest.raises(QRRenderError):
        render_png("ENX-abc-def", error_correction="Z")


def test_settings_never_expose_ticket_secret():
    assert "test-only-ticket-secret" not in repr(settings)
    assert "test-only-ticket-secret" not in str(settings.model_dump())
    assert settings.ticket_hash_secret.get_secret_value() == "test-only-ticket-secret"


@pytest.mark.parametrize("secret", ["", "   ", DEV_TICKET_SECRET])
def test_prod_settings_refuse_public_ticket_secret(secret):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, ENV="prod", TICKET_HASH_SECRET=secret)


def test_prod_settings_refuse_missing_ticket_secret(monkeypatch):
    monkeypatch.delenv("TICKET_HASH_SECRET", raising=False)
    with pytest.raises(ValidationError):
        Settings(_env_file=None, ENV="prod")


def test_dev_and_configured_prod_settings_load():
    assert Settings(_env_file=None, ENV="dev", TICKET_HASH_SECRET=DEV_TICKET_SECRET).env == "dev"
    prod = Settings(_env_file=None, ENV="prod", TICKET_HASH_SECRET="a-private-value")
    assert prod.ticket_hash_secret.get_secret_value() == "a-private-value"
