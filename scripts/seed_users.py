#!/usr/bin/env python3
"""
Create or update application users.

    python scripts/seed_users.py admin@studio.com --role admin --password 'long-enough'
    python scripts/seed_users.py editor@studio.com --role reviewer --external-id <provider-uid>
    python scripts/seed_users.py --dev

Existing users (matched by email) get the new role, and the password or
external identity when given.
"""

import argparse


def main() -> int:
    parser = argparse.ArgumentParser(description="Create or update ReelReview users.")
    parser.add_argument("email", nargs="?", help="User email")
    parser.add_argument("--role", default="submitter", choices=["submitter", "reviewer", "admin"])
    parser.add_argument("--password", help="Password for credential login")
    parser.add_argument("--external-id", help="Identity provider subject")
    parser.add_argument("--dev", action="store_true", help="Seed the dev-mode users")
    args = parser.parse_args()

    if not args.email and not args.dev:
        parser.error("email is required unless --dev is given")

    from reelreview.auth import hash_password, is_password_too_long, seed_dev_users
    from reelreview.db.models import User, UserRole
    from reelreview.db.session import get_db_session, init_db

    if args.password and is_password_too_long(args.password):
        parser.error("password exceeds 72 bytes")

    init_db()

    with get_db_session() as db:
        if args.dev:
            print(f"Dev users created: {seed_dev_users(db)}")

        if args.email:
            email = args.email.strip().lower()
            user = db.query(User).filter(User.email == email).first()
            action = "Updated"
            if not user:
                user = User(email=email)
                db.add(user)
                action = "Created"
            user.role = UserRole(args.role)
            if args.external_id:
                user.external_identity_id = args.external_id
            if args.password:
                user.password_hash = hash_password(args.password)
            db.flush()
            print(f"{action} {user.email} ({user.role.value}) id={user.id}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
