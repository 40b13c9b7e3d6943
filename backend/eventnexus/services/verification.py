"""Scan-time verification and redemption.

``VerificationEngine.redeem`` walks a fixed sequence of checks: parse,
lookup, authorization, tag, status/expiry. Every check is read-only; the
only write is the final conditional ``valid -> used`` update, so two gates
scanning the same code race in the database and exactly one of them wins.
The engine never raises: every outcome is a ``VerificationResult``.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from eventnexus.core.clock import utcnow
from eventnexus.models.ticket import Ticket
from eventnexus.schemas.ticket import VerificationError, VerificationResult
from eventnexus.services.notifier import HolderNotifier
from eventnexus.services.ticket_codec import InvalidPayload, TicketCodec
from eventnexus.services.ticket_store import TicketStore

logger = logging.getLogger(__name__)
security_logger = logging.getLogger("eventnexus.security")


@dataclass(frozen=True)
class Scanner:
    user_id: str
    roles: tuple[str, ...] = ()

    @property
    def is_admin(self) -> bool:
        return "admin" in self.roles


class VerificationEngine:
    def __init__(
        self,
        db: Session,
        codec: TicketCodec,
        grace: timedelta = timedelta(hours=24),
        notifier: HolderNotifier | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.db = db
        self.store = TicketStore(db)
        self.codec = codec
        self.grace = grace
        self.notifier = notifier
        self.clock = clock

    def redeem(self, scanner: Scanner, qr_payload: str | None = None, ticket_id: str | None = None,
               notes: str | None = None) -> VerificationResult:
        try:
            return self._redeem(scanner, qr_payload, ticket_id, notes)
        except SQLAlchemyError:
            logger.exception("ticket store failure while verifying (scanner=%s)", scanner.user_id)
            self._rollback()
            return VerificationResult.rejected(
                VerificationError.DATABASE_ERROR,
                "Database error - outcome unknown, do not admit; retry with the same code",
            )
        except Exception:
            logger.exception("unexpected failure while verifying (scanner=%s)", scanner.user_id)
            self._rollback()
            return VerificationResult.rejected(
                VerificationError.SYSTEM_ERROR,
                "System error during validation - outcome unknown, retry with the same code",
            )

    def _redeem(self, scanner: Scanner, qr_payload: str | None, ticket_id: str | None,
                notes: str | None) -> VerificationResult:
        # 1. parse
        tag = None
        if qr_payload:
            try:
                parsed = self.codec.decode_payload(qr_payload)
            except InvalidPayload:
                return VerificationResult.rejected(VerificationError.INVALID_FORMAT, "Invalid QR code format")
            if ticket_id and ticket_id.strip() != parsed.ticket_id:
                return VerificationResult.rejected(VerificationError.INVALID_FORMAT, "Ticket id does not match QR code")
            ticket_id, tag = parsed.ticket_id, parsed.tag
        elif ticket_id and ticket_id.strip():
            ticket_id = ticket_id.strip()
        else:
            return VerificationResult.rejected(VerificationError.INVALID_FORMAT, "Either ticket_id or qr_payload must be provided")
        method = "qr" if tag is not None else "manual"

        # 2. lookup
        ticket = self.store.get(ticket_id)
        event = self.store.get_event(ticket.event_id) if ticket is not None else None
        if ticket is None or event is None:
            return VerificationResult.rejected(VerificationError.TICKET_NOT_FOUND, "Ticket not found")

        # 3. authorization
        is_organizer = event.organizer_id == scanner.user_id
        is_holder = ticket.holder_id == scanner.user_id
        privileged = is_organizer or scanner.is_admin
        if not (privileged or (is_holder and method == "qr")):
            security_logger.warning(
                "unauthorized scan: scanner=%s ticket=%s event=%s method=%s",
                scanner.user_id, ticket.id, ticket.event_id, method,
            )
            return VerificationResult.rejected(
                VerificationError.UNAUTHORIZED, "Unauthorized - you cannot scan tickets for this event"
            )
        self_scan = is_holder and not privileged

        # 4. tag
        if method == "qr" and not self.codec.verify_tag(ticket.id, ticket.event_id, ticket.holder_id, tag):
            security_logger.warning(
                "tag mismatch, possible counterfeit: scanner=%s ticket=%s event=%s",
                scanner.user_id, ticket.id, ticket.event_id,
            )
            return VerificationResult.rejected(VerificationError.INVALID_HASH, "Invalid QR code - possible counterfeit")

        # 5. status and expiry
        now = self.clock()
        if ticket.status != "valid":
            return self._state_rejection(ticket)
        if now > event.end_instant + self.grace:
            return VerificationResult.rejected(VerificationError.EXPIRED, "Ticket expired - event has ended", ticket)

        # 6. commit; losing the race means someone else changed the status first
        if not self.store.mark_used(ticket.id, used_at=now, scanned_by=scanner.user_id, self_scan=self_scan):
            self.db.rollback()
            current = self.store.get(ticket.id, refresh=True)
            if current is None or current.status == "valid":
                raise RuntimeError(f"conditional update on ticket {ticket.id} matched nothing")
            return self._state_rejection(current)
        self.store.record_scan(ticket, scanned_by=scanner.user_id, scanned_at=now, method=method,
                               self_scan=self_scan, notes=notes)
        self.db.commit()
        ticket = self.store.get(ticket.id, refresh=True)
        logger.info("ticket %s redeemed by %s (method=%s self_scan=%s)", ticket.id, scanner.user_id, method, self_scan)
        result = VerificationResult.accepted(ticket, self_scan, "Valid ticket - entry granted")

        # 7. notify; redemption stands whatever happens here
        if self.notifier is not None:
            try:
                self.notifier.ticket_redeemed(ticket, event)
            except Exception:
                logger.exception("failed to notify holder of ticket %s", ticket.id)
                self._rollback()
        return result

    @staticmethod
    def _state_rejection(ticket: Ticket) -> VerificationResult:
        if ticket.status == "used":
            used_at = ticket.used_at.isoformat() if ticket.used_at else "an unknown time"
            return VerificationResult.rejected(VerificationError.ALREADY_USED, f"Ticket already used at {used_at}", ticket)
        if ticket.status == "cancelled":
            return VerificationResult.rejected(VerificationError.CANCELLED, "Ticket has been cancelled", ticket)
        if ticket.status == "expired":
            return VerificationResult.rejected(VerificationError.EXPIRED, "Ticket expired - event has ended", ticket)
        raise RuntimeError(f"ticket {ticket.id} has unknown status {ticket.status!r}")

    def _rollback(self) -> None:
        try:
            self.db.rollback()
        except SQLAlchemyError:
            logger.exception("rollback failed")
