"""Repository for User database operations."""

import logging
from typing import Optional
from sqlalchemy.orm import Session

from maintrack.errors import DBError
from maintrack.models.user import User
from maintrack.database.models import UserDB

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for User database operations."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> Optional[User]:
        """Get user by ID."""
        user_db = self.db.query(UserDB).filter(UserDB.id == user_id).first()
        return user_db.to_pydantic() if user_db else None

    def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        user_db = self.db.query(UserDB).filter(UserDB.email == email).first()
        return user_db.to_pydantic() if user_db else None

    def get_password_hash(self, email: str) -> Optional[str]:
        """Get the stored password hash for an email, if the user exists."""
        row = self.db.query(UserDB.password_hash).filter(UserDB.email == email).first()
        return row[0] if row else None

    def create(self, user: User, password_hash: Optional[str] = None) -> User:
        """Create a new user."""
        try:
            user_db = UserDB.from_pydantic(user, password_hash=password_hash)
            self.db.add(user_db)
            self.db.commit()
            self.db.refresh(user_db)
            logger.debug(f"Created user {user.id}: {user.email}")
            return user_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create user {user.id}: {type(e).__name__}: {str(e)}")
            raise DBError(f"Failed to create user {user.id}") from e
