"""Grant the ADMIN role to a registered user: python promote_admin.py user@example.com"""
import sys
from naagrik.core.database import get_session_factory, init_db
from naagrik.models.user import Role, User


def promote(email: str) -> bool:
    init_db()
    db = get_session_factory()()
    try:
        user = db.query(User).filter(User.email == email).first()
        if user is None:
            return False
        user.role = Role.ADMIN
        db.commit()
        return True
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python promote_admin.py <email>")
        sys.exit(2)
    if not promote(sys.argv[1]):
        print(f"No user registered with {sys.argv[1]}")
        sys.exit(1)
    print(f"{sys.argv[1]} is now an admin")
