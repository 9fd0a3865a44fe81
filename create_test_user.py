"""
Create test user
"""
from goalify.infrastructure.db.session import session_scope
from goalify.infrastructure.db.models import User
from goalify.auth import hash_password, get_user_by_email

EMAIL = "test@example.com"
PASSWORD = "password123"

with session_scope() as db:
    existing = get_user_by_email(db, EMAIL)
    if existing:
        print(f"User already exists: {EMAIL} (ID: {existing.id})")
    else:
        db.add(User(email=EMAIL, password_hash=hash_password(PASSWORD)))
        print("Created user:")
        print(f"  Email: {EMAIL}")
        print(f"  Password: {PASSWORD}")
