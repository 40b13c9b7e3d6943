from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from eventnexus.core.security import create_access_token, get_password_hash, verify_password
from eventnexus.core.config import settings
from eventnexus.schemas.auth import Token, UserRegister, UserOut, UserLogin
from eventnexus.db.session import get_db
from eventnexus.models.user import User

router = APIRouter()

def _authenticate(db: Session, email: str, password: str) -> User:
    """Login for existing users only. 401 on unknown user or wrong password, 403 when blocked."""
    user = db.query(User).filter(User.email == email.lower().strip()).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is blocked")
    if not verify_password(password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect credentials")
    return user

def _token_for(user: User) -> dict:
    access_token = create_access_token(subject=user.id, roles=[user.role])
    return {"access_token": access_token, "token_type": "bearer"}

@router.post("/login", response_model=Token)
def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    return _token_for(_authenticate(db, form_data.username, form_data.password))

@router.post("/login-json", response_model=Token)
def login_json(payload: UserLogin, db: Session = Depends(get_db)):
    """JSON login, same behaviour as /login."""
    return _token_for(_authenticate(db, payload.email, payload.password))

@router.post("/register", response_model=UserOut)
def register(payload: UserRegister, db: Session = Depends(get_db)):
    email = payload.email.lower()
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")
    role = "user"
    if email in settings.admin_emails:
        role = "admin"
    elif email in settings.organizer_emails:
        role = "organizer"
    user = User(email=email, full_name=payload.full_name, hashed_password=get_password_hash(payload.password), role=role, is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return {"id": user.id, "email": user.email, "full_name": user.full_name, "role": user.role, "is_active": user.is_active}
