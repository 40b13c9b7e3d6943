import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from eventnexus.core.clock import utcnow
from eventnexus.models.base import new_id
from eventnexus.models.ticket import Ticket
from eventnexus.services.ticket_codec import TicketCodec
from eventnexus.services.ticket_store import TicketStore

logger = logging.getLogger(__name__)


class TicketIssuer:
    """Creates tickets once payment has been confirmed upstream."""

    def __init__(self, db: Session, codec: TicketCodec) -> None:
        self.db = db
        self.store = TicketStore(db)
        self.codec = codec

    def issue(self, event_id: str, holder_id: str, price: Decimal, ticket_type: str = "standard",
              payment_reference: str | None = None) -> Ticket:
        # The id is minted here so the payload is written in the same INSERT.
        ticket_id = new_id()
        ticket = self.store.add(
            ticket_id=ticket_id,
            event_id=event_id,
            holder_id=holder_id,
            ticket_type=ticket_type,
            price=price,
            qr_payload=self.codec.payload_for(ticket_id, event_id, holder_id),
            purchase_date=utcnow(),
            payment_reference=payment_reference,
        )
        self.db.commit()
        self.db.refresh(ticket)
        logger.info("issued ticket %s for event %s to %s", ticket.id, event_id, holder_id)
        return ticket


def cancel_ticket(db: Session, ticket_id: str) -> tuple[Ticket | None, bool]:
    """valid -> cancelled. Returns the ticket in its resulting state (None when it does not
    exist) and whether this call made the transition. Terminal tickets are left unchanged."""
    store = TicketStore(db)
    changed = store.mark_cancelled(ticket_id)
    db.commit()
    ticket = store.get(ticket_id, refresh=True)
    if changed:
        logger.info("ticket %s cancelled", ticket_id)
    return ticket, changed
