from sqlalchemy import String, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from eventnexus.models.base import Base, new_id

class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    full_name: Mapped[str] = mapped_column(String(255))
    hashed_password: Mapped[str] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(String(32), default="user")  # user | organizer | admin
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
