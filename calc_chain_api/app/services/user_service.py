"""
Business logic for users and credentials.

``UserService`` registers and authenticates users against the
``users`` table and issues signed access tokens.  Login failures use
one message for unknown usernames and wrong passwords so the API does
not reveal which usernames exist.
"""

import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from fastapi import Depends, Request

from ..core.config import Settings
from ..core.db import Database, get_db
from ..core.exceptions import AuthError, ConflictError, ValidationError
from ..core.security import create_access_token, hash_password, verify_password, verify_token
from ..schemas.user import UserRead

logger = logging.getLogger(__name__)

MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 6


class UserService:
    """Registration, login and token handling."""

    def __init__(self, db: Database, settings: Settings) -> None:
        self.db = db
        self.settings = settings

    def issue_token(self, user: UserRead) -> str:
        """Sign a token carrying the user's id and username."""
        return create_access_token(
            {"userId": user.id, "username": user.username},
            secret=self.settings.secret_key,
            expires_delta=self.settings.access_token_expire_minutes * 60,
        )

    def verify_token(self, token: str) -> Dict[str, str]:
        return verify_token(token, self.settings.secret_key)

    def register(self, username: str, password: str) -> Tuple[str, UserRead]:
        """Create a user and return ``(token, user)``.

        Raises ``ValidationError`` when the username is shorter than
        three characters or the password shorter than six, and
        ``ConflictError`` when the username is taken.  Uniqueness is
        enforced by the UNIQUE constraint on ``users.username``.
        """
        if len(username) < MIN_USERNAME_LENGTH:
            raise ValidationError(f"Username must be at least {MIN_USERNAME_LENGTH} characters")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        user_id = str(uuid.uuid4())
        hashed = hash_password(password)
        created_at = datetime.now(timezone.utc).isoformat(timespec="microseconds")
        conn = self.db.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO users (id, username, password_hash, created_at) VALUES (?, ?, ?, ?)",
                (user_id, username, hashed, created_at),
            )
            conn.commit()
        except sqlite3.IntegrityError:
            conn.rollback()
            raise ConflictError("Username already exists")
        finally:
            conn.close()

        logger.info("Registered user %s (%s)", username, user_id)
        user = UserRead(id=user_id, username=username)
        return self.issue_token(user), user

    def login(self, username: str, password: str) -> Tuple[str, UserRead]:
        """Check credentials and return ``(token, user)`` or raise ``AuthError``."""
        conn = self.db.get_connection()
        try:
            row = conn.execute(
                "SELECT id, username, password_hash FROM users WHERE username = ?",
                (username,),
            ).fetchone()
        finally:
            conn.close()

        if not row or not verify_password(password, row["password_hash"]):
            logger.warning("Rejected login for %s", username)
            raise AuthError("Invalid credentials")
        user = UserRead(id=row["id"], username=row["username"])
        return self.issue_token(user), user

    def get_by_id(self, user_id: str) -> Optional[UserRead]:
        """Retrieve a user by ID."""
        conn = self.db.get_connection()
        try:
            row = conn.execute(
                "SELECT id, username FROM users WHERE id = ?",
                (user_id,),
            ).fetchone()
        finally:
            conn.close()
        if row:
            return UserRead(id=row["id"], username=row["username"])
        return None


def get_user_service(request: Request, db: Database = Depends(get_db)) -> UserService:
    """FastAPI dependency building a ``UserService`` for the current app."""
    return UserService(db, request.app.state.settings)
