from sqlalchemy import String, ForeignKey, DateTime, Boolean, Numeric, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from decimal import Decimal

from eventnexus.models.base import Base

TICKET_STATUSES = ("valid", "used", "cancelled", "expired")

class Ticket(Base):
    __tablename__ = "tickets"
    __table_args__ = (CheckConstraint("status IN (" + ", ".join(f"'{s}'" for s in TICKET_STATUSES) + ")", name="ck_tickets_status"),)

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    event_id: Mapped[str] = mapped_column(String(32), ForeignKey("events.id"), index=True)
    holder_id: Mapped[str] = mapped_column(String(32), ForeignKey("users.id"), index=True)
    ticket_type: Mapped[str] = mapped_column(String(64), default="standard")
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    qr_payload: Mapped[str] = mapped_column(String(128), unique=True)
    status: Mapped[str] = mapped_column(String(16), default="valid", index=True)  # valid, used, cancelled, expired
    used_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    scanned_by: Mapped[str | None] = mapped_column(String(32), nullable=True)
    self_scan: Mapped[bool] = mapped_column(Boolean, default=False)
    purchase_date: Mapped[datetime] = mapped_column(DateTime)
    payment_reference: Mapped[str | None] = mapped_column(String(255), nullable=True)
