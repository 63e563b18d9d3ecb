# routers/auth.py
from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel
from sqlmodel import Session

from core.access import CallerContext, require_authenticated
from core.errors import UnauthorizedError, ValidationError
from core.security import create_access_token
from data.database import get_session
from models.users import User
from routers.common import ok
from services import users as user_service

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginIn(BaseModel):
    email: str
    password: str


def issue_token(user: User) -> dict:
    token = create_access_token(
        subject=user.id,
        extra_claims={"role": user.role.value, "email": user.email},
    )
    return {
        "success": True,
        "token": token,
        "access_token": token,
        "token_type": "bearer",
        "user": user_service.to_user_read(user),
    }


def _login(session: Session, email: str, password: str) -> dict:
    if not email or not password:
        raise ValidationError.missing(*[f for f, v in (("email", email), ("password", password)) if not v])
    user = user_service.authenticate(session, email, password)
    if not user:
        raise UnauthorizedError("Invalid email or password")
    return issue_token(user)


# JSON login used by the frontend
@router.post("/login")
def login(payload: LoginIn, session: Session = Depends(get_session)):
    return _login(session, payload.email, payload.password)


# OAuth2 form endpoint (docs "Authorize" uses this); username carries the email
@router.post("/token")
def token(form: OAuth2PasswordRequestForm = Depends(), session: Session = Depends(get_session)):
    return _login(session, form.username, form.password)


@router.get("/me")
def me(caller: CallerContext = Depends(require_authenticated), session: Session = Depends(get_session)):
    return ok(user_service.get_user(session, caller.id))


@router.get("/verify-token")
def verify_token(caller: CallerContext = Depends(require_authenticated)):
    return ok(caller, valid=True)
