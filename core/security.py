# core/security.py
from datetime import datetime, timezone
from typing import Any, Dict

from jose import jwt, JWTError
from passlib.context import CryptContext

from core.config import SECRET_KEY, ALGORITHM, access_token_delta

# ---- Password hashing ----
_pwd = CryptContext(schemes=["bcrypt"], deprecated="auto")

def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    try:
        return _pwd.verify(plain_password, hashed_password)
    except ValueError:
        # unknown/invalid hash format -> treat as bad creds
        return False

def get_password_hash(password: str) -> str:
    return _pwd.hash(password)

# ---- JWT ----
def create_access_token(subject: str, extra_claims: Dict[str, Any] | None = None) -> str:
    now = datetime.now(timezone.utc)
    exp = now + access_token_delta()
    claims: Dict[str, Any] = {
        "sub": subject,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    if extra_claims:
        claims.update(extra_claims)
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)

def decode_access_token(token: str) -> Dict[str, Any]:
    """Return the verified claims or raise ValueError."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        raise ValueError("Invalid token") from e
