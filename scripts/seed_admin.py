# scripts/seed_admin.py
import os, sys
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from sqlmodel import Session
from data.database import engine, init_db
from models.users import User, Role, normalize_email
from core.security import get_password_hash
from services.users import find_by_email


def main(email: str, password: str, name: str = "Admin User", bind=None) -> User:
    init_db(bind or engine)
    with Session(bind or engine) as s:
        existing = find_by_email(s, email)
        if existing:
            print("[INFO] User already exists:", existing.email, existing.role.value)
            return existing
        u = User(
            name=name,
            email=normalize_email(email),
            role=Role.admin,
            password_hash=get_password_hash(password),
        )
        s.add(u)
        s.commit()
        s.refresh(u)
        print("[OK] Seeded admin:", u.id, u.email)
        return u


if __name__ == "__main__":
    # Usage: python -m scripts.seed_admin admin@example.com StrongPass123 ["Admin User"]
    if len(sys.argv) < 3:
        print("Usage: python -m scripts.seed_admin <email> <password> [name]")
        sys.exit(1)
    main(sys.argv[1], sys.argv[2], sys.argv[3] if len(sys.argv) > 3 else "Admin User")
