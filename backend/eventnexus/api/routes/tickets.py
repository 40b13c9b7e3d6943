from datetime import timedelta
import logging

from fastapi import APIRouter, Depends, HTTPException, status, Query
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from eventnexus.api.deps import get_codec, get_current_identity, get_scan_throttle
from eventnexus.core.config import settings
from eventnexus.db.session import get_db
from eventnexus.models.event import Event
from eventnexus.models.ticket import Ticket
from eventnexus.models.user import User
from eventnexus.schemas.ticket import (
    IssueTicketBody, IssuedTicketOut, TicketOut, VerificationResult, VerifyTicketBody,
)
from eventnexus.services.issuance import TicketIssuer, cancel_ticket as cancel_ticket_record
from eventnexus.services.notifier import HolderNotifier
from eventnexus.services.qr_renderer import QRRenderError, render_data_url, render_png
from eventnexus.services.scan_guard import SecurityFailureThrottle
from eventnexus.services.ticket_codec import TicketCodec
from eventnexus.services.ticket_store import TicketStore
from eventnexus.services.verification import Scanner, VerificationEngine

logger = logging.getLogger(__name__)

router = APIRouter()

def _load_ticket_and_event(db: Session, ticket_id: str) -> tuple[Ticket, Event]:
    store = TicketStore(db)
    t = store.get(ticket_id)
    e = store.get_event(t.event_id) if t else None
    if not t or not e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return t, e

def _can_view(t: Ticket, e: Event, user_id: str, roles: list[str]) -> bool:
    return t.holder_id == user_id or e.organizer_id == user_id or "admin" in roles

@router.post("", response_model=IssuedTicketOut, status_code=201)
@router.post("/", response_model=IssuedTicketOut, status_code=201)
def issue_ticket(payload: IssueTicketBody, db: Session = Depends(get_db), identity=Depends(get_current_identity),
                 codec: TicketCodec = Depends(get_codec)):
    """Issue a ticket after the payment provider has confirmed the purchase.

    Called by the checkout backend (admin token) or by the event organizer
    for comps. The QR payload is derived and stored in the same insert.
    """
    user_id, roles = identity
    event = db.get(Event, payload.event_id)
    if not event:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    if "admin" not in roles and event.organizer_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    if not db.get(User, payload.holder_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Holder not found")
    ticket = TicketIssuer(db, codec).issue(
        event_id=event.id,
        holder_id=payload.holder_id,
        price=payload.price,
        ticket_type=payload.ticket_type,
        payment_reference=payload.payment_reference,
    )
    try:
        qr_image = render_data_url(ticket.qr_payload)
    except QRRenderError:
        logger.exception("QR rendering failed for ticket %s", ticket.id)
        qr_image = None
    return {"ticket": TicketOut.model_validate(ticket), "qr_image": qr_image}

@router.get("/my")
def my_tickets(
    db: Session = Depends(get_db),
    identity=Depends(get_current_identity),
    page: int = Query(1, ge=1),
    page_size: int = Query(25, ge=1, le=200),
    status_filter: str | None = Query(None, pattern="^(valid|used|cancelled|expired)$"),
):
    user_id, _roles = identity
    items, total = TicketStore(db).list_for_holder(user_id, status=status_filter, offset=(page - 1) * page_size, limit=page_size)
    events_map = {}
    if items:
        event_ids = {t.event_id for t in items}
        events_map = {e.id: e for e in db.query(Event).filter(Event.id.in_(event_ids)).all()}
    resp_items = []
    for t in items:
        e = events_map.get(t.event_id)
        item = TicketOut.model_validate(t).model_dump(mode="json")
        item["event"] = {
            "id": e.id,
            "name": e.name,
            "starts_at": e.starts_at.isoformat(),
            "ends_at": e.ends_at.isoformat() if e.ends_at else None,
        } if e else None
        resp_items.append(item)
    return {
        "items": resp_items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "pages": (total + page_size - 1) // page_size if total else 1,
    }

@router.post("/verify", response_model=VerificationResult)
def verify_ticket(
    body: VerifyTicketBody,
    db: Session = Depends(get_db),
    identity=Depends(get_current_identity),
    codec: TicketCodec = Depends(get_codec),
    throttle: SecurityFailureThrottle = Depends(get_scan_throttle),
):
    """Verify and redeem a scanned ticket.

    Always answers 200 with a VerificationResult; rejections are results.
    A DATABASE_ERROR or SYSTEM_ERROR result means the outcome is unknown:
    do not admit, retry with the same payload (redeeming is idempotent).
    """
    user_id, roles = identity
    if throttle.is_blocked(user_id):
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="Too many rejected scans, wait a moment")
    engine = VerificationEngine(
        db,
        codec,
        grace=timedelta(hours=settings.ticket_grace_hours),
        notifier=HolderNotifier(db),
    )
    result = engine.redeem(Scanner(user_id, tuple(roles)), qr_payload=body.qr_payload, ticket_id=body.ticket_id, notes=body.notes)
    if result.error_code is not None and result.error_code.is_security:
        throttle.record_failure(user_id)
    return result

@router.get("/{ticket_id}", response_model=TicketOut)
def get_ticket(ticket_id: str, db: Session = Depends(get_db), identity=Depends(get_current_identity)):
    user_id, roles = identity
    t, e = _load_ticket_and_event(db, ticket_id)
    if not _can_view(t, e, user_id, roles):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return t

@router.get("/{ticket_id}/qr")
def get_ticket_qr(
    ticket_id: str,
    db: Session = Depends(get_db),
    identity=Depends(get_current_identity),
    error_correction: str = Query("H", pattern="^[LMQH]$"),
    size: int = Query(10, ge=1, le=40, description="Pixels per QR module"),
    margin: int = Query(2, ge=0, le=10),
):
    user_id, roles = identity
    t, e = _load_ticket_and_event(db, ticket_id)
    if not _can_view(t, e, user_id, roles):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    try:
        png = render_png(t.qr_payload, error_correction=error_correction, box_size=size, margin=margin)
    except QRRenderError:
        logger.exception("QR rendering failed for ticket %s", t.id)
        # The ticket stays usable: the raw payload can be typed in or rendered client-side.
        return JSONResponse({"qr_payload": t.qr_payload, "qr_image": None, "detail": "QR rendering failed"})
    return Response(content=png, media_type="image/png")

@router.post("/{ticket_id}/cancel")
def cancel_ticket(ticket_id: str, db: Session = Depends(get_db), identity=Depends(get_current_identity)):
    """Cancel a ticket (organizer of the event or admin).

    Only a valid ticket can be cancelled; cancelling a used/cancelled/expired
    ticket returns its current status unchanged.
    """
    user_id, roles = identity
    t, e = _load_ticket_and_event(db, ticket_id)
    if e.organizer_id != user_id and "admin" not in roles:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    t, changed = cancel_ticket_record(db, t.id)
    if changed:
        try:
            HolderNotifier(db).ticket_cancelled(t, e)
        except Exception:
            logger.exception("failed to notify holder of cancelled ticket %s", t.id)
            db.rollback()
    return {"status": t.status, "changed": changed}
