from fastapi.testclient import TestClient

from conftest import make_user
from eventnexus.core.security import create_access_token, decode_access_token, get_password_hash, verify_password
from eventnexus.db.session import resolve_database_url
from eventnexus.main import app

client = TestClient(app)

BCRYPT_HASH = "$2b$12$KIXQJQq9iFQ0h7mQeWlV2eCq3S1m0mZ5o6cC2cQbq8zFv7dYy1k3G"


def test_access_token_carries_only_subject_and_roles():
    claims = decode_access_token(create_access_token(subject="u1", roles=["organizer"]))
    assert claims["sub"] == "u1"
    assert claims["roles"] == ["organizer"]
    assert set(claims) == {"sub", "roles", "exp"}


def test_password_hashes_are_argon2():
    hashed = get_password_hash("s3cret-pass")
    assert hashed.startswith("$argon2")
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("wrong", hashed)


def test_unsupported_hash_is_a_failed_login_not_a_server_error(db):
    user = make_user(db, "legacy")
    user.hashed_password = BCRYPT_HASH
    db.commit()
    assert not verify_password("anything", BCRYPT_HASH)
    r = client.post("/auth/login-json", json={"email": "legacy@example.com", "password": "anything"})
    assert r.status_code == 401


def test_plain_postgres_urls_use_psycopg3_without_psycopg2():
    assert resolve_database_url("postgresql://u:p@db/tickets", psycopg2_present=False) == "postgresql+psycopg://u:p@db/tickets"
    assert resolve_database_url("postgres://u:p@db/tickets", psycopg2_present=False) == "postgresql+psycopg://u:p@db/tickets"
    assert resolve_database_url("postgresql+psycopg://u@db/t", psycopg2_present=False) == "postgresql+psycopg://u@db/t"
    assert resolve_database_url("postgresql://u@db/t", psycopg2_present=True) == "postgresql://u@db/t"
    assert resolve_database_url("sqlite:///x.db", psycopg2_present=False) == "sqlite:///x.db"
