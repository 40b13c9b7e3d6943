from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from eventnexus.api.deps import get_current_identity
from eventnexus.db.session import get_db
from eventnexus.models.event import Event
from eventnexus.schemas.ticket import ScanStats, TicketScanOut
from eventnexus.services.ticket_store import TicketStore

router = APIRouter()

def _event_for_organizer(db: Session, event_id: str, identity) -> Event:
    user_id, roles = identity
    e = db.get(Event, event_id)
    if not e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    if e.organizer_id != user_id and "admin" not in roles:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return e

@router.get("/{event_id}/scans", response_model=list[TicketScanOut])
def event_scan_history(event_id: str, limit: int = Query(200, ge=1, le=1000), db: Session = Depends(get_db), identity=Depends(get_current_identity)):
    e = _event_for_organizer(db, event_id, identity)
    return TicketStore(db).scans_for_event(e.id, limit=limit)

@router.get("/{event_id}/scan-stats", response_model=ScanStats)
def event_scan_stats(event_id: str, db: Session = Depends(get_db), identity=Depends(get_current_identity)):
    e = _event_for_organizer(db, event_id, identity)
    return TicketStore(db).scan_stats(e.id)
