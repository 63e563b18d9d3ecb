# scripts/promote_user.py
import sys, os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from sqlmodel import Session
from data.database import engine, register_models
from models.helper import utcnow
from models.users import Role
from services.users import find_by_email


def main(email: str, role: str, bind=None) -> bool:
    register_models()
    try:
        new_role = Role(role.strip().lower())
    except ValueError:
        print(f"Unknown role {role!r}; expected one of: {', '.join(r.value for r in Role)}")
        return False
    with Session(bind or engine) as s:
        u = find_by_email(s, email)
        if not u:
            print("User not found")
            return False
        u.role = new_role
        u.updated_at = utcnow()
        s.add(u)
        s.commit()
        print(f"Set {u.email} to {new_role.value}")
        return True


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print("Usage: python -m scripts.promote_user <email> <admin|supervisor|worker>")
        raise SystemExit(1)
    raise SystemExit(0 if main(sys.argv[1], sys.argv[2]) else 1)
