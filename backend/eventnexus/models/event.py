from sqlalchemy import String, ForeignKey, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime

from eventnexus.models.base import Base, new_id

class Event(Base):
    """Event as seen by the ticket core. Event CRUD lives outside this service."""
    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255))
    organizer_id: Mapped[str] = mapped_column(String(32), ForeignKey("users.id"), index=True)
    starts_at: Mapped[datetime] = mapped_column(DateTime)
    # Single-slot events have no explicit end; the start instant is used instead.
    ends_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    @property
    def end_instant(self) -> datetime:
        return self.ends_at or self.starts_at
