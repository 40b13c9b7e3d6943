import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

from conftest import issue
from eventnexus.db.session import SessionLocal
from eventnexus.models.ticket import Ticket
from eventnexus.models.ticket_scan import TicketScan
from eventnexus.schemas.ticket import VerificationError
from eventnexus.services.verification import Scanner, VerificationEngine


def test_stale_read_loses_the_conditional_update(db, codec, cast):
    """Gate A reads the ticket as valid, gate B redeems it, then gate A commits."""
    t = issue(db, codec, cast["event"], cast["holder"])
    gate_a = SessionLocal()
    gate_b = SessionLocal()
    try:
        assert gate_a.get(Ticket, t.id).status == "valid"  # A's snapshot, now stale

        won = VerificationEngine(gate_b, codec).redeem(Scanner(cast["organizer"].id, ("organizer",)), qr_payload=t.qr_payload)
        assert won.valid is True

        lost = VerificationEngine(gate_a, codec).redeem(Scanner(cast["admin"].id, ("admin",)), qr_payload=t.qr_payload)
        assert lost.valid is False
        assert lost.error_code == VerificationError.ALREADY_USED
        assert lost.ticket.used_at == won.ticket.used_at
        assert lost.ticket.scanned_by == cast["organizer"].id
    finally:
        gate_a.close()
        gate_b.close()
    assert db.query(TicketScan).count() == 1


def test_parallel_gates_admit_exactly_once(db, codec, cast):
    t = issue(db, codec, cast["event"], cast["holder"])
    gates = 6
    barrier = threading.Barrier(gates)
    organizer = Scanner(cast["organizer"].id, ("organizer",))

    def gate(_):
        barrier.wait()
        outcomes = []
        # An infrastructure error means "outcome unknown"; retrying the same payload is safe.
        for _attempt in range(50):
            s = SessionLocal()
            try:
                r = VerificationEngine(s, codec, grace=timedelta(hours=24)).redeem(organizer, qr_payload=t.qr_payload)
            finally:
                s.close()
            outcomes.append(r)
            if r.error_code is None or not r.error_code.retryable:
                break
            time.sleep(0.05)
        return outcomes

    with ThreadPoolExecutor(max_workers=gates) as pool:
        all_outcomes = list(pool.map(gate, range(gates)))

    finals = [o[-1] for o in all_outcomes]
    every = [r for o in all_outcomes for r in o]
    assert sum(1 for r in every if r.valid) == 1
    assert sum(1 for r in finals if r.error_code == VerificationError.ALREADY_USED) == gates - 1
    db.expire_all()
    assert db.get(Ticket, t.id).status == "used"
    assert db.query(TicketScan).count() == 1
