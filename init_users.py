#!/usr/bin/env python3
"""
Create demo accounts for local development.
Run with: python3 init_users.py
"""
from app import create_app
from app.extensions import db
from app.models import User

# Demo accounts to create
DEFAULT_USERS = [
    {
        'name': 'Demo Doctor',
        'email': 'doctor@example.com',
        'password': 'doctor123',
        'user_type': 'doctor',
    },
    {
        'name': 'Demo User',
        'email': 'user@example.com',
        'password': 'user123',
        'user_type': 'user',
    },
]


def create_users():
    """Create demo users that do not exist yet"""
    app = create_app()

    with app.app_context():
        db.create_all()

        print("=" * 60)
        print("Initializing Demo Users")
        print("=" * 60)

        created_count = 0
        for data in DEFAULT_USERS:
            if User.query.filter_by(email=data['email']).first():
                print(f"  - {data['email']} already exists, skipping")
                continue

            user = User(name=data['name'], email=data['email'], user_type=data['user_type'])
            user.set_password(data['password'])
            db.session.add(user)
            created_count += 1
            print(f"  + {data['email']} ({data['user_type']}) / {data['password']}")

        db.session.commit()
        print()
        print(f"Created {created_count} user(s).")


if __name__ == '__main__':
    create_users()
