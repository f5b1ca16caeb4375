"""
Share Service
Token-addressed read-only views of a patient's progress for caretakers
"""

import logging
import secrets
from typing import Dict, Optional, Any
from sqlalchemy.orm import Session

from database import get_db_context, commit_or_raise
import models
from services.adherence_service import adherence_service


logger = logging.getLogger(__name__)


class ShareNotFoundError(LookupError):
    pass


class ShareInactiveError(PermissionError):
    pass


class ShareService:
    """
    Service for caretaker share tokens
    """

    async def create_share(
        self,
        user_id: int,
        db: Optional[Session] = None
    ) -> models.CaretakerShare:
        """Issue a new share token for a patient"""
        def _create(session: Session) -> models.CaretakerShare:
            share = models.CaretakerShare(
                patient_user_id=user_id,
                share_token=secrets.token_urlsafe(24),
                is_active=True
            )
            session.add(share)
            commit_or_raise(session, "create share link")
            session.refresh(share)

            logger.info(f"Created caretaker share {share.id} for user {user_id}")
            return share

        if db:
            return _create(db)

        with get_db_context() as session:
            return _create(session)

    async def revoke_share(
        self,
        token: str,
        db: Optional[Session] = None
    ) -> bool:
        """Deactivate a share token; False if it does not exist"""
        def _revoke(session: Session) -> bool:
            share = session.query(models.CaretakerShare).filter(
                models.CaretakerShare.share_token == token
            ).first()
            if not share:
                return False

            share.is_active = False
            commit_or_raise(session, "revoke share link")
            return True

        if db:
            return _revoke(db)

        with get_db_context() as session:
            return _revoke(session)

    async def get_shared_view(
        self,
        token: str,
        db: Optional[Session] = None
    ) -> Dict[str, Any]:
        """
        Resolve a token to the patient's score, medicines and recent doses

        Raises:
            ShareNotFoundError: unknown token
            ShareInactiveError: token was revoked
        """
        async def _get(session: Session) -> Dict[str, Any]:
            share = session.query(models.CaretakerShare).filter(
                models.CaretakerShare.share_token == token
            ).first()
            if not share:
                raise ShareNotFoundError("Invalid or expired sharing link")
            if not share.is_active:
                raise ShareInactiveError("This sharing link has been deactivated")

            patient = share.patient
            medicines = [
                {"id": m.id, "name": m.name, "dosage": m.dosage}
                for m in patient.medicines
            ]
            recent = await adherence_service.get_recent_history(patient.id, db=session)

            return {
                "patient_name": patient.name or "Patient",
                "adherence_score": patient.adherence_score,
                "medicines": medicines,
                "recent_logs": recent
            }

        if db:
            return await _get(db)

        with get_db_context() as session:
            return await _get(session)


# Singleton instance
share_service = ShareService()
