from datetime import datetime, timedelta
import asyncio
import logging

from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from eventnexus.core.clock import utcnow
from eventnexus.core.config import settings
from eventnexus.db.session import SessionLocal
from eventnexus.services.ticket_store import TicketStore

logger = logging.getLogger(__name__)

def expire_lapsed_tickets(db: Session, now: datetime, grace: timedelta) -> int:
    """valid -> expired for every ticket whose event ended more than ``grace`` ago."""
    count = TicketStore(db).expire_lapsed(now - grace)
    db.commit()
    if count:
        logger.info("expired %d lapsed ticket(s)", count)
    return count

def _sweep_once() -> int:
    db = SessionLocal()
    try:
        return expire_lapsed_tickets(db, utcnow(), timedelta(hours=settings.ticket_grace_hours))
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

async def expiry_loop():
    interval = settings.expiry_sweep_seconds
    if interval <= 0:
        logger.info("expiry sweep disabled")
        return
    await asyncio.sleep(3)
    while True:
        try:
            await run_in_threadpool(_sweep_once)
        except Exception:
            logger.exception("expiry sweep failed")
        await asyncio.sleep(interval)
