from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import logging

from fintrack.database import get_db
from fintrack.db_helpers import get_current_user
from fintrack.models import User
from fintrack.schemas import LoginRequest, RegisterRequest, user_to_dict
from fintrack.security.credentials import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter()

DUPLICATE_EMAIL_DETAIL = "User already exists with this email"


def _find_user_by_email(db: Session, email: str):
    return db.query(User).filter(User.email == email).first()


@router.post("/register", status_code=201)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    """Create an account and return a token for it."""
    if _find_user_by_email(db, payload.email):
        raise HTTPException(status_code=400, detail=DUPLICATE_EMAIL_DETAIL)

    user = User(
        email=payload.email,
        first_name=payload.first_name,
        last_name=payload.last_name,
        password_hash=hash_password(payload.password),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        # A concurrent registration claimed the email after the check above
        db.rollback()
        logger.warning(f"[AUTH] Duplicate registration for {payload.email}")
        raise HTTPException(status_code=400, detail=DUPLICATE_EMAIL_DETAIL) from exc
    db.refresh(user)
    logger.info(f"[AUTH] Registered user {user.id}")

    return {
        "message": "User registered successfully",
        "token": create_access_token(str(user.id)),
        "user": user_to_dict(user),
    }


@router.post("/login")
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    """Exchange email and password for a token."""
    user = _find_user_by_email(db, payload.email)
    # Same message for unknown email and wrong password
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=400, detail="Invalid credentials")

    return {
        "message": "Login successful",
        "token": create_access_token(str(user.id)),
        "user": user_to_dict(user),
    }


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return {"user": user_to_dict(user)}
