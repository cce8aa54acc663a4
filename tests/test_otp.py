"""
Tests for the one-time code store and the /otp endpoints.

These tests verify:
  - Codes are 6 digits, expire after 10 minutes (T+601s is EXPIRED)
  - A verified code cannot be used again
  - Issuing a new code invalidates older unverified ones
  - Wrong codes consume attempts and the last one purges the record
  - The resend cool-down is a pure function of stored timestamps
  - /otp/verify with a registration code marks the email verified
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy import select, update

from growthfund.models.one_time_code import CodePurpose, OneTimeCode
from growthfund.models.user import User
from growthfund.services import otp_service
from growthfund.services.otp_service import VerificationResult


T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
EMAIL = "saver@example.com"


def _wrong(code: str) -> str:
    return "000000" if code != "000000" else "999999"


class TestCodeGeneration:

    def test_codes_are_six_digits(self):
        codes = {otp_service.generate_code() for _ in range(200)}
        assert all(len(c) == 6 and c.isdigit() for c in codes)
        # Uniform over 10^6 values; 200 draws are practically never all equal
        assert len(codes) > 1

    def test_email_is_normalized(self):
        assert otp_service.normalize_email("  Saver@Example.COM ") == EMAIL


class TestExpiry:

    async def test_valid_within_ttl(self, db_session):
        record = await otp_service.issue_code(db_session, EMAIL, CodePurpose.LOGIN, now=T0)
        result = await otp_service.verify_code(
            db_session, EMAIL, CodePurpose.LOGIN, record.code, now=T0 + timedelta(seconds=599)
        )
        assert result is VerificationResult.VALID

    async def test_expired_after_ttl(self, db_session):
        record = await otp_service.issue_code(db_session, EMAIL, CodePurpose.LOGIN, now=T0)
        assert otp_service.seconds_until_expiry(record, now=T0) == 600

        result = await otp_service.verify_code(
            db_session, EMAIL, CodePurpose.LOGIN, record.code, now=T0 + timedelta(seconds=601)
        )
        assert result is VerificationResult.EXPIRED

        # The expired record is purged
        again = await otp_service.verify_code(
            db_session, EMAIL, CodePurpose.LOGIN, record.code, now=T0 + timedelta(seconds=602)
        )
        assert again is VerificationResult.NOT_FOUND

    async def test_purge_expired_codes(self, db_session):
        await otp_service.issue_code(db_session, EMAIL, CodePurpose.LOGIN, now=T0)
        await otp_service.issue_code(
            db_session, "other@example.com", CodePurpose.LOGIN, now=T0 + timedelta(minutes=9)
        )

        purged = await otp_service.purge_expired_codes(db_session, now=T0 + timedelta(minutes=11))
        assert purged == 1

        remaining = (await db_session.execute(select(OneTimeCode))).scalars().all()
        assert [r.email for r in remaining] == ["other@example.com"]


class TestSingleUse:

    async def test_verified_code_cannot_be_reused(self, db_session):
        record = await otp_service.issue_code(db_session, EMAIL, CodePurpose.LOGIN, now=T0)
        first = await otp_service.verify_code(
            db_session, EMAIL, CodePurpose.LOGIN, record.code, now=T0
        )
        second = await otp_service.verify_code(
            db_session, EMAIL, CodePurpose.LOGIN, record.code, now=T0
        )
        assert first is VerificationResult.VALID
        assert second is VerificationResult.NOT_FOUND

    async def test_new_code_invalidates_previous(self, db_session):
        old = await otp_service.issue_code(db_session, EMAIL, CodePurpose.LOGIN, now=T0)
        old_code = old.code
        new = await otp_service.issue_code(
            db_session, EMAIL, CodePurpose.LOGIN, now=T0 + timedelta(seconds=61)
        )

        codes = (await db_session.execute(select(OneTimeCode))).scalars().all()
        assert [c.id for c in codes] == [new.id]

        if old_code != new.code:
            result = await otp_service.verify_code(
                db_session, EMAIL, CodePurpose.LOGIN, old_code, now=T0 + timedelta(seconds=62)
            )
            assert result is VerificationResult.MISMATCH

    async def test_purposes_are_independent(self, db_session):
        login = await otp_service.issue_code(db_session, EMAIL, CodePurpose.LOGIN, now=T0)
        await otp_service.issue_code(db_session, EMAIL, CodePurpose.PASSWORD_RESET, now=T0)

        result = await otp_service.verify_code(
            db_session, EMAIL, CodePurpose.LOGIN, login.code, now=T0
        )
        assert result is VerificationResult.VALID

    async def test_code_bound_to_other_record_is_not_found(self, db_session):
        old = await otp_service.issue_code(db_session, EMAIL, CodePurpose.DEPOSIT, now=T0)
        old_id = old.id
        new = await otp_service.issue_code(db_session, EMAIL, CodePurpose.DEPOSIT, now=T0)

        result = await otp_service.verify_code(
            db_session, EMAIL, CodePurpose.DEPOSIT, new.code, now=T0, code_id=old_id
        )
        assert result is VerificationResult.NOT_FOUND


class TestAttempts:

    async def test_mismatch_keeps_record_and_counts_down(self, db_session):
        record = await otp_service.issue_code(db_session, EMAIL, CodePurpose.LOGIN, now=T0)

        result = await otp_service.verify_code(
            db_session, EMAIL, CodePurpose.LOGIN, _wrong(record.code), now=T0
        )
        assert result is VerificationResult.MISMATCH

        active = await otp_service.get_active_code(db_session, EMAIL, CodePurpose.LOGIN)
        assert active.id == record.id
        assert active.attempts_remaining == 4

    async def test_last_attempt_purges_record(self, db_session):
        record = await otp_service.issue_code(db_session, EMAIL, CodePurpose.LOGIN, now=T0)
        right, wrong = record.code, _wrong(record.code)

        results = [
            await otp_service.verify_code(db_session, EMAIL, CodePurpose.LOGIN, wrong, now=T0)
            for _ in range(5)
        ]
        assert results == [VerificationResult.MISMATCH] * 4 + [VerificationResult.EXHAUSTED]

        after = await otp_service.verify_code(db_session, EMAIL, CodePurpose.LOGIN, right, now=T0)
        assert after is VerificationResult.NOT_FOUND

    async def test_decrement_uses_stored_count(self, db_session, monkeypatch):
        """A guess counted elsewhere after the record was read is not lost."""
        record = await otp_service.issue_code(db_session, EMAIL, CodePurpose.LOGIN, now=T0)
        wrong = _wrong(record.code)
        real_get_active_code = otp_service.get_active_code

        async def read_then_spent_elsewhere(db, email, purpose):
            active = await real_get_active_code(db, email, purpose)
            await db.execute(
                update(OneTimeCode)
                .where(OneTimeCode.id == active.id)
                .values(attempts_remaining=1)
                .execution_options(synchronize_session=False)
            )
            return active

        monkeypatch.setattr(otp_service, "get_active_code", read_then_spent_elsewhere)
        result = await otp_service.verify_code(db_session, EMAIL, CodePurpose.LOGIN, wrong, now=T0)
        assert result is VerificationResult.EXHAUSTED

        monkeypatch.undo()
        assert await otp_service.get_active_code(db_session, EMAIL, CodePurpose.LOGIN) is None


class TestResendPolicy:
    """Cool-down decisions depend only on the timestamps passed in."""

    def test_blocked_inside_cooldown(self):
        assert otp_service.seconds_until_resend(T0 + timedelta(seconds=10), T0, 60) == 50
        assert not otp_service.can_resend(T0 + timedelta(seconds=59), T0, 60)

    def test_partial_seconds_round_up(self):
        now = T0 + timedelta(seconds=59, milliseconds=500)
        assert otp_service.seconds_until_resend(now, T0, 60) == 1

    def test_allowed_at_and_after_cooldown(self):
        assert otp_service.can_resend(T0 + timedelta(seconds=60), T0, 60)
        assert otp_service.seconds_until_resend(T0 + timedelta(hours=1), T0, 60) == 0

    def test_naive_timestamps_are_treated_as_utc(self):
        issued_naive = T0.replace(tzinfo=None)
        assert otp_service.seconds_until_resend(T0 + timedelta(seconds=30), issued_naive, 60) == 30


class TestOTPEndpoints:

    async def test_send_returns_expiry_and_dispatches(self, client, dispatcher):
        response = await client.post(
            "/otp/send",
            json={"email": "Saver@Example.com", "type": "login", "user_name": "Sam"},
        )
        assert response.status_code == 200
        assert response.json() == {"success": True, "expires_in_seconds": 600}

        sent = dispatcher.sent[-1]
        assert sent.email == EMAIL
        assert sent.purpose is CodePurpose.LOGIN
        assert sent.user_name == "Sam"

    async def test_send_twice_inside_cooldown_is_rejected(self, client):
        payload = {"email": EMAIL, "type": "password_reset"}
        assert (await client.post("/otp/send", json=payload)).status_code == 200

        response = await client.post("/otp/send", json=payload)
        assert response.status_code == 429
        assert response.json()["error_type"] == "resend_too_soon"

    async def test_transaction_purposes_not_accepted(self, client):
        response = await client.post("/otp/send", json={"email": EMAIL, "type": "withdrawal"})
        assert response.status_code == 422

    async def test_verify_roundtrip(self, client, dispatcher):
        await client.post("/otp/send", json={"email": EMAIL, "type": "login"})
        code = dispatcher.last_code(EMAIL)

        ok = await client.post("/otp/verify", json={"email": EMAIL, "code": code, "type": "login"})
        assert ok.status_code == 200
        assert ok.json() == {"success": True}

        reused = await client.post("/otp/verify", json={"email": EMAIL, "code": code, "type": "login"})
        assert reused.status_code == 400
        assert reused.json()["error_type"] == "otp_not_found"

    async def test_wrong_code_reports_invalid(self, client, dispatcher):
        await client.post("/otp/send", json={"email": EMAIL, "type": "login"})
        wrong = _wrong(dispatcher.last_code(EMAIL))

        response = await client.post("/otp/verify", json={"email": EMAIL, "code": wrong, "type": "login"})
        assert response.status_code == 400
        assert response.json()["error_type"] == "invalid_otp"

    async def test_registration_code_verifies_email(self, client, dispatcher, member, session_factory):
        await client.post("/otp/send", json={"email": member.email, "type": "registration"})
        code = dispatcher.last_code(member.email)

        response = await client.post(
            "/otp/verify",
            json={"email": member.email, "code": code, "type": "registration"},
        )
        assert response.status_code == 200

        async with session_factory() as session:
            user = (await session.execute(
                select(User).where(User.id == member.user_id)
            )).scalar_one()
        assert user.email_verified is True
