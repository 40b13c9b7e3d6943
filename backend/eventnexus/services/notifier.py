import logging

from sqlalchemy.orm import Session

from eventnexus.models.event import Event
from eventnexus.models.notification import Notification
from eventnexus.models.ticket import Ticket
from eventnexus.services.notification_ws import NotificationConnectionManager, manager as ws_manager

logger = logging.getLogger(__name__)


class HolderNotifier:
    """Persists a notification for the ticket holder and pushes it over WebSocket."""

    def __init__(self, db: Session, ws: NotificationConnectionManager = ws_manager) -> None:
        self.db = db
        self.ws = ws

    def notify(self, user_id: str, type_: str, message: str) -> Notification:
        n = Notification(user_id=user_id, type=type_, message=message, read=False)
        self.db.add(n)
        self.db.commit()
        self.db.refresh(n)
        self.ws.push_threadsafe(user_id, {
            "type": "notification",
            "data": {"id": n.id, "type": n.type, "message": n.message, "created_at": n.created_at.isoformat(), "read": n.read},
        })
        return n

    def ticket_redeemed(self, ticket: Ticket, event: Event) -> Notification:
        return self.notify(ticket.holder_id, "ticket_scanned", f'Your ticket for "{event.name}" was scanned successfully. Enjoy the event!')

    def ticket_cancelled(self, ticket: Ticket, event: Event) -> Notification:
        return self.notify(ticket.holder_id, "ticket_cancelled", f'Your ticket for "{event.name}" has been cancelled.')
