from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict
from datetime import datetime
import jwt

from eventnexus.db.session import get_db
from eventnexus.api.deps import get_current_identity
from eventnexus.models.notification import Notification
from eventnexus.services.notification_ws import manager
from eventnexus.core.security import decode_access_token

router = APIRouter()

class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    message: str
    created_at: datetime
    read: bool

@router.get("/", response_model=list[NotificationOut])
def list_notifications(db: Session = Depends(get_db), identity=Depends(get_current_identity)):
    user_id, _roles = identity
    return db.query(Notification).filter(Notification.user_id == user_id).order_by(Notification.created_at.desc(), Notification.id.desc()).limit(200).all()

@router.get("/unread-count", response_model=dict)
def unread_count(db: Session = Depends(get_db), identity=Depends(get_current_identity)):
    user_id, _roles = identity
    count = db.query(Notification).filter(Notification.user_id == user_id, Notification.read == False).count()  # noqa: E712
    return {"unread": count}

@router.post("/{notif_id}/read")
def mark_notification(notif_id: int, db: Session = Depends(get_db), identity=Depends(get_current_identity)):
    user_id, _roles = identity
    n = db.query(Notification).filter(Notification.id == notif_id, Notification.user_id == user_id).first()
    if not n:
        raise HTTPException(status_code=404, detail="Not found")
    n.read = True
    db.commit()
    manager.push_threadsafe(user_id, {"type": "notification_read", "data": {"id": n.id}})
    return {"status": "ok"}

@router.post("/mark-all-read")
def mark_all_read(db: Session = Depends(get_db), identity=Depends(get_current_identity)):
    user_id, _roles = identity
    db.query(Notification).filter(Notification.user_id == user_id, Notification.read == False).update({Notification.read: True})  # noqa: E712
    db.commit()
    manager.push_threadsafe(user_id, {"type": "notification_mark_all", "data": {}})
    return {"status": "ok"}

@router.websocket("/ws/notifications")
async def websocket_notifications(websocket: WebSocket, token: str = Query(...)):
    """Live notifications (ticket scanned, ticket cancelled).
    The client passes its access token in the query string (?token=...).
    Server messages look like {"type": "notification", "data": {NotificationOut}}.
    """
    try:
        payload = decode_access_token(token)
    except jwt.PyJWTError:
        await websocket.close(code=4401)
        return
    user_id = payload.get("sub")
    if not user_id:
        await websocket.close(code=4401)
        return

    await manager.connect(user_id, websocket)
    try:
        while True:
            # Incoming messages are only client pings
            await websocket.receive_text()
    except WebSocketDisconnect:
        await manager.disconnect(user_id, websocket)
