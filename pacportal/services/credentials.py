"""Credential store - read/update verbs over the profiles table"""
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pacportal.models.profile import Profile
from pacportal.utils.logger import logger


class PersistenceError(Exception):
    """Raised when the backing store cannot be read or written"""


class CredentialStore:
    """Thin wrapper around a SQLAlchemy session.

    Every method converts ``SQLAlchemyError`` into :class:`PersistenceError`
    so callers only have one failure type to translate.
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, identity_id: str) -> Optional[Profile]:
        try:
            return self.db.query(Profile).filter(Profile.id == identity_id).first()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"profile lookup failed: {exc}") from exc

    def get_by_id_and_email(self, identity_id: str, email: str) -> Optional[Profile]:
        try:
            return self.db.query(Profile).filter(
                Profile.id == identity_id,
                Profile.email == email,
            ).first()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"profile lookup failed: {exc}") from exc

    def get_by_matricula(self, matricula: str) -> Optional[Profile]:
        try:
            return self.db.query(Profile).filter(Profile.matricula == matricula).first()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"profile lookup failed: {exc}") from exc

    def update(self, identity_id: str, **fields: Any) -> Profile:
        """Apply ``fields`` to one profile in a single commit (last write wins)"""
        profile = self.get(identity_id)
        if profile is None:
            raise PersistenceError(f"profile {identity_id} disappeared before update")

        try:
            for name, value in fields.items():
                setattr(profile, name, value)
            self.db.commit()
            self.db.refresh(profile)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error(f"Profile update failed: {identity_id}", extra={"user_id": identity_id}, exc_info=True)
            raise PersistenceError(f"profile update failed: {exc}") from exc

        return profile
