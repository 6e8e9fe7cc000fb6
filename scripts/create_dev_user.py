#!/usr/bin/env python3
"""
Script to create a user for local development and print a bearer token for it.

User accounts are managed by another service in production; this lets the
photo endpoints be exercised locally without one.

Required in .env or environment:
    JWT_SECRET_KEY
    DATABASE_URL (optional, defaults to sqlite:///./photos.db)

Usage:
    python scripts/create_dev_user.py <username>
"""

import sys

from profile_photos.dao import UserDAO
from profile_photos.database import Base, SessionLocal, engine
from profile_photos.utils.jwt import create_access_token

if len(sys.argv) != 2:  # noqa: PLR2004
    print("Usage: python scripts/create_dev_user.py <username>")  # noqa: T201
    sys.exit(1)

username = sys.argv[1]
Base.metadata.create_all(bind=engine)

with SessionLocal() as db:
    user = UserDAO(db).create(username)
    token = create_access_token(user.id)

print(f"\nCreated user '{username}' with id {user.id}.")  # noqa: T201
print("Bearer token (send as 'Authorization: Bearer <token>'):\n")  # noqa: T201
print(token)  # noqa: T201
