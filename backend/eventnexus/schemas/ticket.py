from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class VerificationError(str, Enum):
    INVALID_FORMAT = "INVALID_FORMAT"
    TICKET_NOT_FOUND = "TICKET_NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_HASH = "INVALID_HASH"
    CANCELLED = "CANCELLED"
    ALREADY_USED = "ALREADY_USED"
    EXPIRED = "EXPIRED"
    DATABASE_ERROR = "DATABASE_ERROR"
    SYSTEM_ERROR = "SYSTEM_ERROR"

    @property
    def category(self) -> str:
        return _CATEGORIES[self]

    @property
    def is_security(self) -> bool:
        return self.category == "security"

    @property
    def retryable(self) -> bool:
        return self.category == "infrastructure"


_CATEGORIES = {
    VerificationError.INVALID_FORMAT: "input",
    VerificationError.TICKET_NOT_FOUND: "input",
    VerificationError.UNAUTHORIZED: "security",
    VerificationError.INVALID_HASH: "security",
    VerificationError.CANCELLED: "state",
    VerificationError.ALREADY_USED: "state",
    VerificationError.EXPIRED: "state",
    VerificationError.DATABASE_ERROR: "infrastructure",
    VerificationError.SYSTEM_ERROR: "infrastructure",
}


class TicketOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    event_id: str
    holder_id: str
    ticket_type: str
    price: Decimal
    qr_payload: str
    status: str
    used_at: Optional[datetime] = None
    scanned_by: Optional[str] = None
    self_scan: bool = False
    purchase_date: datetime


class VerificationResult(BaseModel):
    valid: bool
    error_code: Optional[VerificationError] = None
    category: Optional[str] = None
    message: str
    self_scan: bool = False
    ticket: Optional[TicketOut] = None

    @classmethod
    def accepted(cls, ticket, self_scan: bool, message: str) -> "VerificationResult":
        return cls(valid=True, message=message, self_scan=self_scan, ticket=TicketOut.model_validate(ticket))

    @classmethod
    def rejected(cls, code: VerificationError, message: str, ticket=None) -> "VerificationResult":
        return cls(
            valid=False,
            error_code=code,
            category=code.category,
            message=message,
            ticket=TicketOut.model_validate(ticket) if ticket is not None else None,
        )


class VerifyTicketBody(BaseModel):
    ticket_id: Optional[str] = Field(None, max_length=64)
    qr_payload: Optional[str] = Field(None, max_length=256)
    notes: Optional[str] = Field(None, max_length=500, description="Reason recorded with a manual validation")

    @model_validator(mode="after")
    def _one_of(self):
        if not (self.ticket_id or self.qr_payload):
            raise ValueError("Either ticket_id or qr_payload must be provided")
        return self


class IssueTicketBody(BaseModel):
    event_id: str
    holder_id: str
    ticket_type: str = Field("standard", max_length=64)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    payment_reference: Optional[str] = Field(None, max_length=255)


class IssuedTicketOut(BaseModel):
    ticket: TicketOut
    qr_image: Optional[str] = Field(None, description="PNG data URL, null when rendering failed")


class TicketScanOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    ticket_id: str
    event_id: str
    scanned_by: str
    scanned_at: datetime
    method: str
    self_scan: bool
    notes: Optional[str] = None


class ScanStats(BaseModel):
    total_tickets: int
    scanned_tickets: int
    pending_tickets: int
    scan_rate: int
    last_scan_time: Optional[datetime] = None
