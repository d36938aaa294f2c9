"""Session manager behaviour against a real (in-memory) credential store."""

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from models.base_model import utcnow
from models.refresh_token import RefreshToken
from services import build_services
from tests.conftest import PASSWORD, config_map
from utils.errors import (
    AuthUnavailable,
    EmailAlreadyRegistered,
    InvalidCredentials,
    InvalidToken,
    SamePassword,
)
from utils.security import PasswordService


def _session_count(services, user_id):
    return services.storage.get_session().query(RefreshToken).filter(RefreshToken.user_id == user_id).count()


def _deactivate(services, user_id):
    user = services.store.get_user(user_id)
    user.is_active = False
    services.storage.save()


class TestRegister:
    def test_creates_admin_with_company(self, services, registered):
        assert registered.role == "admin"
        assert registered.company_id
        assert registered.email == "a@x.com"

    def test_duplicate_email_rejected_case_insensitively(self, services, registered):
        with pytest.raises(EmailAlreadyRegistered):
            services.sessions.register(" A@X.com ", PASSWORD, "Other", "Person", "Other Co")

    def test_password_is_stored_hashed(self, services, registered):
        user = services.store.get_user(registered.id, with_password=True)
        assert user.password_hash != PASSWORD
        assert services.hasher.verify(PASSWORD, user.password_hash)


class TestLogin:
    def test_success_issues_pair_and_opens_session(self, services, registered):
        result = services.sessions.login("a@x.com", PASSWORD, "10.0.0.1", "curl/8.0")

        assert result.identity.id == registered.id
        access = services.codec.decode_access(result.tokens.access.token)
        refresh = services.codec.decode_refresh(result.tokens.refresh.token)
        assert access.sub == refresh.sub == registered.id
        assert access.role == "admin"
        rows = services.sessions.list_sessions(registered.id)
        assert [r.token for r in rows] == [result.tokens.refresh.token]
        assert rows[0].ip_address == "10.0.0.1"

    def test_email_lookup_is_normalized(self, services, registered):
        assert services.sessions.login("  A@X.COM ", PASSWORD).identity.id == registered.id

    def test_wrong_password_and_unknown_email_are_indistinguishable(self, services, registered):
        with pytest.raises(InvalidCredentials) as wrong_password:
            services.sessions.login("a@x.com", "nope-nope")
        with pytest.raises(InvalidCredentials) as unknown_email:
            services.sessions.login("ghost@x.com", PASSWORD)

        assert wrong_password.value.message == unknown_email.value.message
        assert wrong_password.value.code == unknown_email.value.code
        assert _session_count(services, registered.id) == 0

    def test_inactive_account_cannot_log_in(self, services, registered):
        _deactivate(services, registered.id)
        with pytest.raises(InvalidCredentials):
            services.sessions.login("a@x.com", PASSWORD)

    def test_records_last_login_and_activity(self, services, registered):
        services.sessions.login("a@x.com", PASSWORD)
        services.storage.close()

        assert services.store.get_user(registered.id).last_login is not None
        rows, total = services.activity.recent(registered.company_id)
        assert total >= 2
        assert rows[0].description == "User logged in"

    def test_expired_sessions_are_pruned_on_login(self, services, registered):
        services.store.add_session(registered.id, "stale-token", utcnow() - timedelta(days=1))
        assert _session_count(services, registered.id) == 1

        services.sessions.login("a@x.com", PASSWORD)

        tokens = [r.token for r in services.storage.get_session().query(RefreshToken).all()]
        assert "stale-token" not in tokens
        assert _session_count(services, registered.id) == 1

    def test_list_sessions_hides_expired_rows(self, services, registered):
        services.store.add_session(registered.id, "stale-token", utcnow() - timedelta(minutes=1))
        assert services.sessions.list_sessions(registered.id) == []

    def test_weak_hash_is_upgraded_on_login(self, services, registered):
        stronger = PasswordService(time_cost=2, memory_cost=16, parallelism=1)
        services.sessions.hasher = stronger

        services.sessions.login("a@x.com", PASSWORD)
        services.storage.close()

        stored = services.store.get_user(registered.id, with_password=True).password_hash
        assert stronger.needs_rehash(stored) is False
        assert stronger.verify(PASSWORD, stored)

    def test_hash_upgrade_keeps_pending_reset_and_other_sessions(self, services, registered):
        other_device = services.sessions.login("a@x.com", PASSWORD).tokens
        token = services.sessions.request_password_reset("a@x.com")
        services.sessions.hasher = PasswordService(time_cost=2, memory_cost=16, parallelism=1)

        services.sessions.login("a@x.com", PASSWORD)

        assert services.sessions.refresh(other_device.refresh.token).identity.id == registered.id
        services.sessions.reset_password(token, "Recovered789!")
        assert services.sessions.login("a@x.com", "Recovered789!").identity.id == registered.id

    def test_store_failure_surfaces_as_unavailable(self, services, registered, monkeypatch):
        def boom(*args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

        monkeypatch.setattr(services.store, "find_by_email", boom)
        with pytest.raises(AuthUnavailable):
            services.sessions.login("a@x.com", PASSWORD)


class TestRefreshAndRevoke:
    def test_refresh_issues_new_access_token(self, services, registered):
        pair = services.sessions.login("a@x.com", PASSWORD).tokens

        result = services.sessions.refresh(pair.refresh.token)

        assert result.identity.id == registered.id
        assert services.codec.decode_access(result.access.token).sub == registered.id
        assert result.refresh is None

    def test_refresh_rejects_access_token(self, services, registered):
        pair = services.sessions.login("a@x.com", PASSWORD).tokens
        with pytest.raises(InvalidToken):
            services.sessions.refresh(pair.access.token)

    def test_refresh_rejects_expired_token(self, services, registered):
        expired = services.codec.issue_refresh(registered.id, ttl=timedelta(seconds=-5))
        services.store.add_session(registered.id, expired.token, utcnow() + timedelta(days=1))
        with pytest.raises(InvalidToken):
            services.sessions.refresh(expired.token)

    def test_validly_signed_but_unknown_token_is_rejected(self, services, registered):
        never_stored = services.codec.issue_refresh(registered.id)
        with pytest.raises(InvalidToken):
            services.sessions.refresh(never_stored.token)

    def test_revoke_kills_only_that_device(self, services, registered):
        laptop = services.sessions.login("a@x.com", PASSWORD, user_agent="laptop").tokens
        phone = services.sessions.login("a@x.com", PASSWORD, user_agent="phone").tokens
        assert _session_count(services, registered.id) == 2

        services.sessions.revoke(laptop.refresh.token)

        with pytest.raises(InvalidToken):
            services.sessions.refresh(laptop.refresh.token)
        assert services.sessions.refresh(phone.refresh.token).identity.id == registered.id

    def test_revoke_is_idempotent(self, services, registered):
        pair = services.sessions.login("a@x.com", PASSWORD).tokens
        services.sessions.revoke(pair.refresh.token)
        services.sessions.revoke(pair.refresh.token)
        assert _session_count(services, registered.id) == 0

    def test_revoke_garbage_is_invalid(self, services):
        with pytest.raises(InvalidToken):
            services.sessions.revoke("not-a-token")

    def test_inactive_account_cannot_refresh(self, services, registered):
        pair = services.sessions.login("a@x.com", PASSWORD).tokens
        _deactivate(services, registered.id)
        with pytest.raises(InvalidToken):
            services.sessions.refresh(pair.refresh.token)


def test_full_session_lifecycle(services):
    services.sessions.register("life@x.com", PASSWORD, "Life", "Cycle", "Loop Inc")
    refresh_token = services.sessions.login("life@x.com", PASSWORD).tokens.refresh.token

    services.sessions.refresh(refresh_token)
    services.sessions.revoke(refresh_token)

    # still cryptographically valid, but no longer backed by a session
    assert services.codec.verify_refresh(refresh_token) is not None
    with pytest.raises(InvalidToken):
        services.sessions.refresh(refresh_token)


class TestRotation:
    @pytest.fixture
    def rotating(self):
        container = build_services(config_map(ROTATE_REFRESH_TOKENS=True))
        container.sessions.register("r@x.com", PASSWORD, "Rita", "Rotate", "Spin Ltd")
        yield container
        container.shutdown()

    def test_refresh_swaps_the_session_token(self, rotating):
        old = rotating.sessions.login("r@x.com", PASSWORD).tokens.refresh

        result = rotating.sessions.refresh(old.token)

        assert result.refresh is not None
        assert result.refresh.token != old.token
        with pytest.raises(InvalidToken):
            rotating.sessions.refresh(old.token)
        assert rotating.sessions.refresh(result.refresh.token).identity.email == "r@x.com"


class TestChangePassword:
    def test_revokes_every_session(self, services, registered):
        first = services.sessions.login("a@x.com", PASSWORD).tokens
        second = services.sessions.login("a@x.com", PASSWORD).tokens

        services.sessions.change_password(registered.id, PASSWORD, "BrandNew456!")

        for pair in (first, second):
            with pytest.raises(InvalidToken):
                services.sessions.refresh(pair.refresh.token)
        assert _session_count(services, registered.id) == 0

    def test_old_password_stops_working(self, services, registered):
        services.sessions.change_password(registered.id, PASSWORD, "BrandNew456!")

        with pytest.raises(InvalidCredentials):
            services.sessions.login("a@x.com", PASSWORD)
        assert services.sessions.login("a@x.com", "BrandNew456!").identity.id == registered.id

    def test_outstanding_access_token_lives_until_expiry(self, services, registered):
        access = services.sessions.login("a@x.com", PASSWORD).tokens.access
        services.sessions.change_password(registered.id, PASSWORD, "BrandNew456!")
        assert services.authenticator.authenticate(f"Bearer {access.token}").id == registered.id

    def test_wrong_current_password(self, services, registered):
        with pytest.raises(InvalidCredentials) as exc_info:
            services.sessions.change_password(registered.id, "wrong-one", "BrandNew456!")
        assert exc_info.value.message == "Current password is incorrect"

    def test_same_password_rejected(self, services, registered):
        services.sessions.login("a@x.com", PASSWORD)
        with pytest.raises(SamePassword):
            services.sessions.change_password(registered.id, PASSWORD, PASSWORD)
        assert _session_count(services, registered.id) == 1


class TestPasswordReset:
    def test_reset_flow(self, services, registered):
        pair = services.sessions.login("a@x.com", PASSWORD).tokens
        token = services.sessions.request_password_reset("A@x.com")
        assert token

        services.sessions.reset_password(token, "Recovered789!")

        assert services.sessions.login("a@x.com", "Recovered789!").identity.id == registered.id
        with pytest.raises(InvalidToken):
            services.sessions.refresh(pair.refresh.token)

    def test_only_the_digest_is_stored(self, services, registered):
        token = services.sessions.request_password_reset("a@x.com")
        services.storage.close()
        user = services.store.get_user(registered.id)
        assert user.reset_password_token is not None
        assert user.reset_password_token != token

    def test_token_is_single_use(self, services, registered):
        token = services.sessions.request_password_reset("a@x.com")
        services.sessions.reset_password(token, "Recovered789!")
        with pytest.raises(InvalidToken):
            services.sessions.reset_password(token, "AgainAgain1!")

    def test_expired_token_rejected(self, services, registered):
        token = services.sessions.request_password_reset("a@x.com")
        services.storage.close()
        digest = services.store.get_user(registered.id).reset_password_token
        services.store.set_reset_token(registered.id, digest, utcnow() - timedelta(minutes=1))
        with pytest.raises(InvalidToken):
            services.sessions.reset_password(token, "Recovered789!")

    def test_unknown_email_yields_nothing(self, services, registered):
        assert services.sessions.request_password_reset("ghost@x.com") is None

    @pytest.mark.parametrize("token", ["", "deadbeef"])
    def test_bogus_token(self, services, registered, token):
        with pytest.raises(InvalidToken):
            services.sessions.reset_password(token, "Recovered789!")
