"""
Tests for Share Service and User Service
"""

import pytest

from services.share_service import ShareService, ShareNotFoundError, ShareInactiveError
from services.user_service import UserService


@pytest.fixture
def share_service():
    return ShareService()


@pytest.fixture
def user_service():
    return UserService()


class TestShareService:

    @pytest.mark.asyncio
    async def test_create_share(self, share_service, db_session, test_user):
        share = await share_service.create_share(test_user.id, db=db_session)

        assert share.is_active
        assert len(share.share_token) >= 24
        assert share.patient_user_id == test_user.id

    @pytest.mark.asyncio
    async def test_tokens_are_unique(self, share_service, db_session, test_user):
        first = await share_service.create_share(test_user.id, db=db_session)
        second = await share_service.create_share(test_user.id, db=db_session)
        assert first.share_token != second.share_token

    @pytest.mark.asyncio
    async def test_shared_view(self, share_service, db_session, test_user, test_medicine, history_logs):
        share = await share_service.create_share(test_user.id, db=db_session)

        view = await share_service.get_shared_view(share.share_token, db=db_session)

        assert view["patient_name"] == "Asha Rao"
        assert view["medicines"] == [{"id": test_medicine.id, "name": "Metformin", "dosage": "500mg"}]
        assert len(view["recent_logs"]) == len(history_logs)
        assert view["recent_logs"][0]["medicine_name"] == "Metformin"

    @pytest.mark.asyncio
    async def test_unknown_token(self, share_service, db_session):
        with pytest.raises(ShareNotFoundError):
            await share_service.get_shared_view("nope", db=db_session)

    @pytest.mark.asyncio
    async def test_revoked_token(self, share_service, db_session, test_user):
        share = await share_service.create_share(test_user.id, db=db_session)

        assert await share_service.revoke_share(share.share_token, db=db_session) is True
        with pytest.raises(ShareInactiveError):
            await share_service.get_shared_view(share.share_token, db=db_session)

    @pytest.mark.asyncio
    async def test_revoke_unknown(self, share_service, db_session):
        assert await share_service.revoke_share("nope", db=db_session) is False


class TestUserService:

    @pytest.mark.asyncio
    async def test_create_and_update(self, user_service, db_session):
        user = await user_service.create_user(name="Meera", email="meera@example.com", db=db_session)
        assert user.adherence_score == 100

        updated = await user_service.update_user(
            user.id,
            {"caretaker_email": "son@example.com", "email": "ignored@example.com"},
            db=db_session
        )
        assert updated.caretaker_email == "son@example.com"
        assert updated.email == "meera@example.com"

    @pytest.mark.asyncio
    async def test_duplicate_email(self, user_service, db_session, test_user):
        with pytest.raises(ValueError):
            await user_service.create_user(name="Other", email=test_user.email, db=db_session)

    @pytest.mark.asyncio
    async def test_update_unknown_user(self, user_service, db_session):
        assert await user_service.update_user(9999, {"name": "x"}, db=db_session) is None
