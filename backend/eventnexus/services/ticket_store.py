from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from eventnexus.models.event import Event
from eventnexus.models.ticket import Ticket
from eventnexus.models.ticket_scan import TicketScan


class TicketStore:
    """Ticket persistence. Status changes only go through the conditional
    transitions below, each guarded by ``status = 'valid'`` in SQL."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, ticket_id: str, refresh: bool = False) -> Ticket | None:
        if refresh:
            return self.db.execute(
                select(Ticket).where(Ticket.id == ticket_id).execution_options(populate_existing=True)
            ).scalar_one_or_none()
        return self.db.get(Ticket, ticket_id)

    def get_event(self, event_id: str) -> Event | None:
        return self.db.get(Event, event_id)

    def add(self, ticket_id: str, event_id: str, holder_id: str, ticket_type: str, price: Decimal,
            qr_payload: str, purchase_date: datetime, payment_reference: str | None = None) -> Ticket:
        ticket = Ticket(
            id=ticket_id,
            event_id=event_id,
            holder_id=holder_id,
            ticket_type=ticket_type,
            price=price,
            qr_payload=qr_payload,
            status="valid",
            purchase_date=purchase_date,
            payment_reference=payment_reference,
        )
        self.db.add(ticket)
        self.db.flush()
        return ticket

    def _transition_from_valid(self, ticket_id: str, values: dict) -> bool:
        # Compare-and-swap: UPDATE ... WHERE id = :id AND status = 'valid' RETURNING id
        row = self.db.execute(
            update(Ticket)
            .where(Ticket.id == ticket_id, Ticket.status == "valid")
            .values(**values)
            .returning(Ticket.id)
            .execution_options(synchronize_session=False)
        ).first()
        return row is not None

    def mark_used(self, ticket_id: str, used_at: datetime, scanned_by: str, self_scan: bool) -> bool:
        return self._transition_from_valid(
            ticket_id, {"status": "used", "used_at": used_at, "scanned_by": scanned_by, "self_scan": self_scan}
        )

    def mark_cancelled(self, ticket_id: str) -> bool:
        return self._transition_from_valid(ticket_id, {"status": "cancelled"})

    def expire_lapsed(self, cutoff: datetime) -> int:
        """Expire valid tickets of events that ended before ``cutoff``."""
        ended = select(Event.id).where(func.coalesce(Event.ends_at, Event.starts_at) < cutoff)
        res = self.db.execute(
            update(Ticket)
            .where(Ticket.status == "valid", Ticket.event_id.in_(ended))
            .values(status="expired")
            .execution_options(synchronize_session=False)
        )
        return res.rowcount or 0

    def record_scan(self, ticket: Ticket, scanned_by: str, scanned_at: datetime, method: str,
                    self_scan: bool, notes: str | None = None) -> TicketScan:
        scan = TicketScan(
            ticket_id=ticket.id,
            event_id=ticket.event_id,
            scanned_by=scanned_by,
            scanned_at=scanned_at,
            method=method,
            self_scan=self_scan,
            notes=notes,
        )
        self.db.add(scan)
        return scan

    def list_for_holder(self, holder_id: str, status: str | None = None, offset: int = 0, limit: int = 25) -> tuple[list[Ticket], int]:
        q = self.db.query(Ticket).filter(Ticket.holder_id == holder_id)
        if status:
            q = q.filter(Ticket.status == status)
        total = q.count()
        items = q.order_by(Ticket.purchase_date.desc(), Ticket.id).offset(offset).limit(limit).all()
        return items, total

    def scans_for_event(self, event_id: str, limit: int = 500) -> list[TicketScan]:
        return (
            self.db.query(TicketScan)
            .filter(TicketScan.event_id == event_id)
            .order_by(TicketScan.scanned_at.desc(), TicketScan.id.desc())
            .limit(limit)
            .all()
        )

    def scan_stats(self, event_id: str) -> dict:
        counts = dict(
            self.db.query(Ticket.status, func.count(Ticket.id))
            .filter(Ticket.event_id == event_id)
            .group_by(Ticket.status)
            .all()
        )
        total = sum(n for s, n in counts.items() if s != "cancelled")
        scanned = counts.get("used", 0)
        last_scan = self.db.query(func.max(Ticket.used_at)).filter(Ticket.event_id == event_id).scalar()
        return {
            "total_tickets": total,
            "scanned_tickets": scanned,
            "pending_tickets": counts.get("valid", 0),
            "scan_rate": round(scanned * 100 / total) if total else 0,
            "last_scan_time": last_scan,
        }
