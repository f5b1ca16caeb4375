"""
User Service
Profile management for account owners
"""

import logging
from typing import Dict, Optional, Any
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from database import get_db_context, commit_or_raise
import models


logger = logging.getLogger(__name__)


class UserService:
    """
    Service for user profile operations
    """

    async def create_user(
        self,
        name: str,
        email: str,
        age: Optional[int] = None,
        gender: Optional[str] = None,
        caretaker_email: Optional[str] = None,
        db: Optional[Session] = None
    ) -> models.User:
        """Create a user profile. Raises ValueError on duplicate email."""
        def _create(session: Session) -> models.User:
            user = models.User(
                name=name,
                email=email,
                age=age,
                gender=gender,
                caretaker_email=caretaker_email,
                adherence_score=100
            )
            session.add(user)
            try:
                session.flush()
            except IntegrityError as e:
                session.rollback()
                raise ValueError(f"A user with email {email} already exists") from e

            commit_or_raise(session, "create profile")
            session.refresh(user)

            logger.info(f"Created user {user.id}")
            return user

        if db:
            return _create(db)

        with get_db_context() as session:
            return _create(session)

    async def get_user(
        self,
        user_id: int,
        db: Optional[Session] = None
    ) -> Optional[models.User]:
        """Get user by ID"""
        def _get(session: Session) -> Optional[models.User]:
            return session.query(models.User).filter(models.User.id == user_id).first()

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def update_user(
        self,
        user_id: int,
        updates: Dict[str, Any],
        db: Optional[Session] = None
    ) -> Optional[models.User]:
        """Update profile fields, including the caretaker address"""
        def _update(session: Session) -> Optional[models.User]:
            user = session.query(models.User).filter(models.User.id == user_id).first()
            if not user:
                return None

            allowed_fields = {'name', 'age', 'gender', 'caretaker_email'}
            for field, value in updates.items():
                if field in allowed_fields:
                    setattr(user, field, value)

            commit_or_raise(session, "update profile")
            session.refresh(user)
            return user

        if db:
            return _update(db)

        with get_db_context() as session:
            return _update(session)


# Singleton instance
user_service = UserService()
