import logging

from eventnexus.db.session import engine, SessionLocal
from eventnexus.models import user, event, ticket, ticket_scan, notification  # noqa: F401
from eventnexus.models.base import Base
from eventnexus.models.user import User
from eventnexus.core.config import settings
from eventnexus.core.security import get_password_hash

logger = logging.getLogger(__name__)

def create_tables():
    Base.metadata.create_all(bind=engine)

def seed_demo_data():
    """Idempotent dev seed: one admin account."""
    db = SessionLocal()
    try:
        admin_email = (settings.seed_admin_email or "admin@example.com").lower()
        admin_pwd = settings.seed_admin_password or "Admin1234!"
        admin = db.query(User).filter(User.email == admin_email).first()
        if not admin:
            db.add(User(
                email=admin_email,
                full_name="Admin",
                hashed_password=get_password_hash(admin_pwd),
                role="admin",
                is_active=True,
            ))
            db.commit()
            logger.info("seeded admin account %s", admin_email)
    finally:
        db.close()
