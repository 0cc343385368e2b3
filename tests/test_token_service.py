"""
Tests for token issuing and lookups.
"""

from datetime import timedelta

from database import utcnow
from models.token_model import TwoFactorToken, VerificationToken
from services.token_service import TokenService


def test_new_token_replaces_previous(run_db):
    async def issue_twice(session):
        service = TokenService(session)
        first = await service.generate_verification_token("jane@example.com")
        second = await service.generate_verification_token("jane@example.com")
        return (
            first.token,
            second.token,
            await service.get_verification_token_by_token(first.token),
            await service.get_verification_token_by_email("jane@example.com"),
        )

    first, second, stale, current = run_db(issue_twice)
    assert first != second
    assert stale is None
    assert current.token == second


def test_tokens_expire_after_an_hour(run_db):
    async def issue(session):
        return await TokenService(session).generate_password_reset_token("jane@example.com")

    token = run_db(issue)
    remaining = token.expires - utcnow()
    assert timedelta(minutes=59) < remaining <= timedelta(hours=1)


def test_expired_verification_token_is_not_returned(run_db):
    async def issue_expired(session):
        session.add(VerificationToken(
            email="jane@example.com", token="old-token", expires=utcnow() - timedelta(seconds=1),
        ))
        await session.commit()
        return await TokenService(session).get_verification_token_by_token("old-token")

    assert run_db(issue_expired) is None


def test_two_factor_codes_are_six_digits(run_db):
    async def issue(session):
        service = TokenService(session)
        token = await service.generate_two_factor_token("jane@example.com")
        found = await service.get_two_factor_token_by_email("jane@example.com")
        return token.token, found

    code, found = run_db(issue)
    assert code.isdigit() and 100000 <= int(code) <= 999999
    assert isinstance(found, TwoFactorToken)
    assert found.token == code
