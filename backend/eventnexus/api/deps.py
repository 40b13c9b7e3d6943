from functools import lru_cache
from typing import List, Tuple
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
import jwt

from eventnexus.core.config import settings
from eventnexus.core.security import decode_access_token
from eventnexus.services.scan_guard import SecurityFailureThrottle
from eventnexus.services.ticket_codec import TicketCodec, codec_from_settings

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

def _roles_from(payload: dict) -> List[str]:
    roles = payload.get("roles") or []
    if not isinstance(roles, list):
        roles = [roles]
    return roles

def get_current_identity(token: str = Depends(oauth2_scheme)) -> Tuple[str, List[str]]:
    """Return (user_id, roles) from the JWT token."""
    try:
        payload = decode_access_token(token)
    except jwt.PyJWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    sub = payload.get("sub")
    if not sub:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return sub, _roles_from(payload)

@lru_cache()
def get_codec() -> TicketCodec:
    # Built once from settings; the secret stays read-only for the life of the process.
    return codec_from_settings(settings)

@lru_cache()
def get_scan_throttle() -> SecurityFailureThrottle:
    return SecurityFailureThrottle(settings.scan_security_threshold, settings.scan_security_window_seconds)
