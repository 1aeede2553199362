"""
USER MANAGEMENT HELPER
Quick script to inspect accounts and assign roles in the database.

Usage:
    python manage_users.py --list
    python manage_users.py --grant alice admin
    python manage_users.py --revoke alice moderator
    python manage_users.py --deactivate alice
    python manage_users.py --activate alice
"""

import sys

from blog.database import SessionLocal, Base, engine
from blog.models.user import User, ROLES
import blog.models.post  # noqa: F401
import blog.models.comment  # noqa: F401
import blog.models.like  # noqa: F401


def _find(db, username):
    user = db.query(User).filter(User.username == username).first()
    if not user:
        print(f"User '{username}' not found!")
    return user


def list_users(session_factory=SessionLocal):
    """List all users"""
    db = session_factory()

    try:
        users = db.query(User).order_by(User.id).all()

        if not users:
            print("No users found.")
            return []

        print(f"\n{'ID':<6} {'Username':<20} {'Email':<30} {'Roles':<25} {'Status':<10}")
        print("-" * 91)

        for u in users:
            status = "active" if u.is_active else "inactive"
            roles = ",".join(u.roles or [])
            print(f"{u.id:<6} {u.username:<20} {u.email:<30} {roles:<25} {status:<10}")

        print()
        return users
    finally:
        db.close()


def grant_role(username, role, session_factory=SessionLocal):
    if role not in ROLES:
        print(f"Unknown role '{role}'. Choose from: {', '.join(ROLES)}")
        return False

    db = session_factory()

    try:
        user = _find(db, username)
        if not user:
            return False

        if role in (user.roles or []):
            print(f"'{username}' already has role '{role}'")
            return True

        # Reassign so the JSON column is flagged dirty
        user.roles = list(user.roles or []) + [role]
        db.commit()

        print(f"Granted '{role}' to '{username}'")
        return True
    finally:
        db.close()


def revoke_role(username, role, session_factory=SessionLocal):
    db = session_factory()

    try:
        user = _find(db, username)
        if not user:
            return False

        if role not in (user.roles or []):
            print(f"'{username}' does not have role '{role}'")
            return False

        remaining = [r for r in user.roles if r != role]
        if not remaining:
            print("A user must keep at least one role")
            return False

        user.roles = remaining
        db.commit()

        print(f"Revoked '{role}' from '{username}'")
        return True
    finally:
        db.close()


def set_active(username, active, session_factory=SessionLocal):
    """Activate or deactivate an account"""
    db = session_factory()

    try:
        user = _find(db, username)
        if not user:
            return False

        user.is_active = active
        if not active:
            user.refresh_token_hash = None
        db.commit()

        print(f"User '{username}' has been {'activated' if active else 'deactivated'}")
        return True
    finally:
        db.close()


def main(argv):
    if len(argv) < 2:
        print(__doc__)
        return 1

    command = argv[1]

    if command == "--list":
        list_users()
        return 0

    if command in ("--grant", "--revoke"):
        if len(argv) < 4:
            print(f"Usage: python manage_users.py {command} <username> <role>")
            return 1
        action = grant_role if command == "--grant" else revoke_role
        return 0 if action(argv[2], argv[3]) else 1

    if command in ("--deactivate", "--activate"):
        if len(argv) < 3:
            print(f"Usage: python manage_users.py {command} <username>")
            return 1
        return 0 if set_active(argv[2], command == "--activate") else 1

    print(f"Unknown command: {command}")
    print(__doc__)
    return 1


if __name__ == "__main__":
    Base.metadata.create_all(bind=engine)
    sys.exit(main(sys.argv))
