# scripts/reset_password.py
import sys, os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from sqlmodel import Session
from data.database import engine, register_models
from core.security import get_password_hash
from models.helper import utcnow
from services.users import find_by_email


def main(email: str, new_password: str, bind=None) -> bool:
    register_models()
    if len(new_password) < 6:
        print("Password must be at least 6 characters long")
        return False
    with Session(bind or engine) as s:
        u = find_by_email(s, email)
        if not u:
            print("User not found")
            return False
        u.password_hash = get_password_hash(new_password)
        u.updated_at = utcnow()
        s.add(u)
        s.commit()
        print("Password reset for:", u.email)
        return True


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print("Usage: python -m scripts.reset_password <email> <new_password>")
        sys.exit(1)
    sys.exit(0 if main(sys.argv[1], sys.argv[2]) else 1)
