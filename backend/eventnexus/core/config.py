from pydantic_settings import BaseSettings
from pydantic import Field, SecretStr, model_validator
from typing import List, Optional
from pathlib import Path

DEV_TICKET_SECRET = "eventnexus-dev-secret"

class Settings(BaseSettings):
    app_name: str = Field(default="EventNexus Tickets API", alias="APP_NAME")
    env: str = Field(default="dev", alias="ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    secret_key: str = Field(default="devsecret", alias="SECRET_KEY")
    algorithm: str = Field(default="HS256", alias="ALGORITHM")
    access_token_expire_minutes: int = Field(default=60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    database_url: str | None = Field(default=None, alias="DATABASE_URL")
    db_statement_timeout_ms: int = Field(default=5000, alias="DB_STATEMENT_TIMEOUT_MS")
    # Ticket verification. The secret is server-side only; SecretStr keeps it out of repr/logs.
    ticket_hash_secret: SecretStr = Field(default=SecretStr(DEV_TICKET_SECRET), alias="TICKET_HASH_SECRET")
    ticket_payload_prefix: str = Field(default="ENX", alias="TICKET_PAYLOAD_PREFIX", min_length=1)
    ticket_tag_length: int = Field(default=12, alias="TICKET_TAG_LENGTH", ge=8, le=64)
    ticket_grace_hours: int = Field(default=24, alias="TICKET_GRACE_HOURS", ge=0)
    expiry_sweep_seconds: int = Field(default=300, alias="EXPIRY_SWEEP_SECONDS", ge=0)
    scan_security_threshold: int = Field(default=10, alias="SCAN_SECURITY_THRESHOLD", ge=1)
    scan_security_window_seconds: int = Field(default=60, alias="SCAN_SECURITY_WINDOW_SECONDS", ge=1)
    # Raw env values (strings), we parse them to lists via properties to avoid JSON decoding errors
    admin_emails_raw: Optional[str] = Field(default=None, alias="ADMIN_EMAILS")
    organizer_emails_raw: Optional[str] = Field(default=None, alias="ORGANIZER_EMAILS")
    cors_origins_raw: Optional[str] = Field(default=None, alias="CORS_ORIGINS", description="Comma separated or JSON list of allowed CORS origins")
    # Seed admin (dev/demo convenience)
    seed_admin_email: Optional[str] = Field(default=None, alias="SEED_ADMIN_EMAIL")
    seed_admin_password: Optional[str] = Field(default=None, alias="SEED_ADMIN_PASSWORD")

    class Config:
        # Load env from backend/.env regardless of CWD
        env_file = str(Path(__file__).resolve().parents[2] / ".env")
        case_sensitive = False
        extra = "ignore"

    @model_validator(mode="after")
    def _require_real_ticket_secret(self) -> "Settings":
        secret = self.ticket_hash_secret.get_secret_value()
        if self.env == "prod" and (not secret.strip() or secret == DEV_TICKET_SECRET):
            raise ValueError("TICKET_HASH_SECRET must be set to a private value when ENV=prod")
        return self

    def _parse_list(self, v: Optional[str]) -> List[str]:
        if v is None:
            return []
        s = v.strip()
        if not s:
            return []
        if s.startswith("[") and s.endswith("]"):
            try:
                import json
                loaded = json.loads(s)
                if isinstance(loaded, list):
                    return [str(e).strip() for e in loaded if str(e).strip()]
            except ValueError:
                pass
        return [e.strip() for e in s.split(",") if e.strip()]

    @property
    def admin_emails(self) -> List[str]:
        return [e.lower() for e in self._parse_list(self.admin_emails_raw)]

    @property
    def organizer_emails(self) -> List[str]:
        return [e.lower() for e in self._parse_list(self.organizer_emails_raw)]

    @property
    def cors_origins(self) -> List[str]:
        items = self._parse_list(self.cors_origins_raw)
        if not items:
            return ["http://localhost:5173", "http://127.0.0.1:5173"]
        # Dev convenience: ensure both localhost and 127.0.0.1 variants for same ports
        augmented = set(items)
        for origin in items:
            if origin.startswith("http://localhost:"):
                augmented.add("http://127.0.0.1:" + origin.rsplit(":", 1)[1])
            if origin.startswith("http://127.0.0.1:"):
                augmented.add("http://localhost:" + origin.rsplit(":", 1)[1])
        return sorted(augmented)

settings = Settings()  # type: ignore
