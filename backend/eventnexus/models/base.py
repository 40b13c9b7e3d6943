import uuid

from sqlalchemy.orm import DeclarativeBase


def new_id() -> str:
    # 32 lowercase hex chars: opaque, and never contains the payload separator '-'
    return uuid.uuid4().hex


class Base(DeclarativeBase):
    pass
