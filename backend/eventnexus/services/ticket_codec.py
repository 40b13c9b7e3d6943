"""Verification tags and the compact QR payload.

The tag is the leading hex characters of SHA-256 over the ticket identity
and the shared secret. Without the secret, knowing the ticket, event and
holder ids is not enough to produce a tag the server will accept.

Payload wire format: ``<prefix>-<ticket_id>-<tag>``, e.g.
``ENX-3f9a7c21-8f14e45fceea``.
"""
from __future__ import annotations

from dataclasses import dataclass
import hashlib
import hmac

SEPARATOR = "-"


class InvalidPayload(ValueError):
    """Scanned string is not a well-formed ticket payload."""


@dataclass(frozen=True)
class ParsedPayload:
    ticket_id: str
    tag: str


class TicketCodec:
    def __init__(self, secret: str, prefix: str = "ENX", tag_length: int = 12) -> None:
        if not secret:
            raise ValueError("ticket hash secret must not be empty")
        if not prefix or SEPARATOR in prefix:
            raise ValueError(f"payload prefix must be non-empty and must not contain '{SEPARATOR}'")
        if not 8 <= tag_length <= 64:
            raise ValueError("tag_length must be between 8 and 64 hex characters")
        self._secret = secret
        self.prefix = prefix
        self.tag_length = tag_length

    def __repr__(self) -> str:
        return f"TicketCodec(prefix={self.prefix!r}, tag_length={self.tag_length})"

    def compute_tag(self, ticket_id: str, event_id: str, holder_id: str) -> str:
        data = SEPARATOR.join((str(ticket_id), str(event_id), str(holder_id), self._secret))
        return hashlib.sha256(data.encode("utf-8")).hexdigest()[: self.tag_length]

    def encode_payload(self, ticket_id: str, tag: str) -> str:
        ticket_id = str(ticket_id)
        if not ticket_id or SEPARATOR in ticket_id:
            raise ValueError(f"ticket id must be non-empty and must not contain '{SEPARATOR}'")
        return f"{self.prefix}{SEPARATOR}{ticket_id}{SEPARATOR}{tag}"

    def payload_for(self, ticket_id: str, event_id: str, holder_id: str) -> str:
        return self.encode_payload(ticket_id, self.compute_tag(ticket_id, event_id, holder_id))

    def decode_payload(self, payload: str) -> ParsedPayload:
        """Split a scanned payload. Raises InvalidPayload unless it is exactly
        three non-empty segments with the configured prefix first."""
        if not isinstance(payload, str):
            raise InvalidPayload("payload must be a string")
        parts = payload.split(SEPARATOR)
        if len(parts) != 3:
            raise InvalidPayload("payload must have exactly three segments")
        prefix, ticket_id, tag = parts
        if prefix != self.prefix:
            raise InvalidPayload("unknown payload prefix")
        if not ticket_id or not tag:
            raise InvalidPayload("payload has an empty segment")
        return ParsedPayload(ticket_id=ticket_id, tag=tag)

    def verify_tag(self, ticket_id: str, event_id: str, holder_id: str, provided_tag: str) -> bool:
        expected = self.compute_tag(ticket_id, event_id, holder_id)
        # Full-string comparison; compare_digest is False on any length mismatch.
        return hmac.compare_digest(expected.encode("ascii"), str(provided_tag).encode("utf-8"))


def codec_from_settings(settings) -> TicketCodec:
    return TicketCodec(
        secret=settings.ticket_hash_secret.get_secret_value(),
        prefix=settings.ticket_payload_prefix,
        tag_length=settings.ticket_tag_length,
    )
