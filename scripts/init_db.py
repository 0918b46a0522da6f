import os
import sys
from pathlib import Path

from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.gymsaas.constants import ROLE_SUPER_ADMIN
from app.gymsaas.models import User
from scripts._db_utils import script_session


def seed_only(*, database_url: str | None = None) -> None:
    """
    Create the platform super admin in an idempotent way.
    Does NOT overwrite an existing admin user's password.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@gymsaas.local").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"

    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///gymsaas.db").strip()

    # Direct engine/session so release can run without importing app.wsgi.
    with script_session(db_url) as s:
        user = s.query(User).filter(User.email == admin_email).one_or_none()
        if not user:
            user = User(
                email=admin_email,
                password_hash=generate_password_hash(admin_password),
                role=ROLE_SUPER_ADMIN,
                first_name="Platform",
                last_name="Admin",
                is_active=True,
            )
            s.add(user)
            created = True
        else:
            created = False
            if user.role != ROLE_SUPER_ADMIN:
                user.role = ROLE_SUPER_ADMIN
            user.is_active = True
            user.is_deleted = False

    print("Initialized database (seed_only).")
    print(f"Admin email: {admin_email} ({'created' if created else 'existing'})")
    print("Admin password: (from ADMIN_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
