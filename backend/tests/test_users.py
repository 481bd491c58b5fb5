"""
Unit tests for the client user verification binding.
"""
import pytest

from services.user_service import mark_email_verified, serialize_client_user


class TestMarkEmailVerified:
    """Test the email_verified flag transition."""

    @pytest.mark.asyncio
    async def test_flag_flips_to_true(self, store, make_client_user, fetch_client_user):
        await make_client_user("carol@example.com")
        user = await store.find_user_by_email("carol@example.com")

        await mark_email_verified(store, user)
        await store.commit()

        assert (await fetch_client_user("carol@example.com")).email_verified is True

    @pytest.mark.asyncio
    async def test_repeat_call_is_a_noop(self, store, make_client_user, fetch_client_user):
        await make_client_user("carol@example.com", email_verified=True)
        user = await store.find_user_by_email("carol@example.com")

        result = await mark_email_verified(store, user)
        await store.commit()

        assert result.email_verified is True
        assert (await fetch_client_user("carol@example.com")).email_verified is True

    @pytest.mark.asyncio
    async def test_serialized_shape(self, make_client_user):
        user = await make_client_user("dave@example.com")

        assert serialize_client_user(user) == {
            "id": user.id,
            "email": "dave@example.com",
            "emailVerified": False,
        }
