"""
Unit tests for TokenService session and reset-token lifecycles.
"""
import threading

import pytest
from jose import jwt

from login_portal.core.config import get_settings
from login_portal.core.errors import InvalidTokenError
from login_portal.services.tokens import SessionReason


@pytest.mark.unit
class TestSessionTokens:
    def test_issued_token_checks_ok(self, tokens):
        issued = tokens.issue_session(7)

        check = tokens.check_session(issued.token)

        assert check.ok
        assert check.user_id == 7
        assert check.jti == issued.jti

    def test_missing_token(self, tokens):
        assert tokens.check_session(None).reason is SessionReason.missing
        assert tokens.check_session("").reason is SessionReason.missing

    def test_garbage_token_is_malformed(self, tokens):
        assert tokens.check_session("not-a-jwt").reason is SessionReason.malformed

    def test_wrong_signature_is_malformed(self, tokens):
        issued = tokens.issue_session(7)
        claims = jwt.get_unverified_claims(issued.token)
        forged = jwt.encode(claims, "some-other-secret", algorithm=get_settings().JWT_ALGORITHM)

        assert tokens.check_session(forged).reason is SessionReason.malformed

    def test_validly_signed_token_without_session_is_unknown(self, tokens, token_store):
        issued = tokens.issue_session(7)
        token_store._sessions.clear()

        assert tokens.check_session(issued.token).reason is SessionReason.unknown

    def test_expiry_is_computed_at_check_time(self, tokens, clock):
        issued = tokens.issue_session(7)

        clock.advance(minutes=get_settings().SESSION_TOKEN_EXPIRE_MINUTES - 1)
        assert tokens.check_session(issued.token).ok

        clock.advance(minutes=2)
        assert tokens.check_session(issued.token).reason is SessionReason.expired

    def test_session_valid_until_ttl_elapses(self, tokens, clock):
        issued = tokens.issue_session(7)

        clock.advance(minutes=get_settings().SESSION_TOKEN_EXPIRE_MINUTES)
        assert tokens.check_session(issued.token).ok

        clock.advance(seconds=1)
        assert tokens.check_session(issued.token).reason is SessionReason.expired

    def test_revoked_never_becomes_active_again(self, tokens, token_store, clock):
        issued = tokens.issue_session(7)

        assert tokens.revoke_session(issued.token) is True
        assert tokens.revoke_session(issued.token) is False
        assert token_store.revoke_session(issued.jti, clock(), "again") is False
        assert tokens.check_session(issued.token).reason is SessionReason.revoked

    def test_revoke_user_sessions_keeps_requested(self, tokens):
        keep = tokens.issue_session(7)
        drop = tokens.issue_session(7)
        other_user = tokens.issue_session(8)

        assert tokens.revoke_user_sessions(7, "test", keep_jti=keep.jti) == 1

        assert tokens.check_session(keep.token).ok
        assert tokens.check_session(drop.token).reason is SessionReason.revoked
        assert tokens.check_session(other_user.token).ok

    def test_concurrent_revocation_succeeds_once(self, tokens):
        issued = tokens.issue_session(7)
        results = []
        barrier = threading.Barrier(8)

        def revoke():
            barrier.wait()
            results.append(tokens.revoke_session(issued.token))

        threads = [threading.Thread(target=revoke) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1


@pytest.mark.unit
class TestResetTokens:
    def test_redeem_once(self, tokens):
        token = tokens.issue_reset_token(3)

        assert tokens.redeem_reset_token(token) == 3
        with pytest.raises(InvalidTokenError):
            tokens.redeem_reset_token(token)

    def test_only_hash_is_stored(self, tokens, token_store):
        token = tokens.issue_reset_token(3)

        assert token not in token_store._resets
        assert all(token not in record.token_hash for record in token_store._resets.values())

    def test_expired_token_rejected(self, tokens, clock):
        at_deadline = tokens.issue_reset_token(3)
        past_deadline = tokens.issue_reset_token(4)
        clock.advance(minutes=get_settings().PASSWORD_RESET_TOKEN_TTL_MINUTES)

        assert tokens.redeem_reset_token(at_deadline) == 3
        clock.advance(seconds=1)
        with pytest.raises(InvalidTokenError):
            tokens.redeem_reset_token(past_deadline)

    def test_empty_token_rejected(self, tokens):
        with pytest.raises(InvalidTokenError):
            tokens.redeem_reset_token("")

    def test_concurrent_redemption_has_single_winner(self, tokens):
        token = tokens.issue_reset_token(3)
        outcomes = []
        lock = threading.Lock()
        barrier = threading.Barrier(10)

        def redeem():
            barrier.wait()
            try:
                tokens.redeem_reset_token(token)
                outcome = "ok"
            except InvalidTokenError:
                outcome = "invalid"
            with lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=redeem) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("ok") == 1
        assert outcomes.count("invalid") == 9

    def test_unknown_tokens_leave_no_locks_behind(self, tokens, token_store, clock):
        baseline = len(token_store._locks._locks)

        for i in range(1000):
            with pytest.raises(InvalidTokenError):
                tokens.redeem_reset_token(f"made-up-{i}")
            assert token_store.revoke_session(f"jti-{i}", clock(), "logout") is False
        tokens.purge_expired()

        assert len(token_store._locks._locks) == baseline

    def test_spent_token_releases_its_lock(self, tokens, token_store):
        token = tokens.issue_reset_token(3)
        tokens.redeem_reset_token(token)

        assert token_store._locks._locks == {}


@pytest.mark.unit
def test_purge_removes_expired_and_spent_tokens(tokens, token_store, clock):
    live = tokens.issue_session(1)
    revoked = tokens.issue_session(1)
    tokens.revoke_session(revoked.token)
    used = tokens.issue_reset_token(1)
    tokens.redeem_reset_token(used)
    # A second user's pending reset token stays until it expires.
    tokens.issue_reset_token(2)

    assert tokens.purge_expired() == 2
    assert tokens.check_session(live.token).ok
    assert tokens.check_session(revoked.token).reason is SessionReason.unknown

    clock.advance(days=1)
    assert tokens.purge_expired() == 2
    assert token_store._sessions == {}
    assert token_store._resets == {}
