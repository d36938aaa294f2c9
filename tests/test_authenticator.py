"""Per-request authentication and the role gate."""

from datetime import timedelta

import pytest

from services.authenticator import authorize, extract_bearer
from utils.errors import Forbidden, InvalidToken, MissingOrMalformedToken, TokenExpired


@pytest.fixture
def access_token(services, registered):
    return services.codec.issue_access(services.store.get_user(registered.id)).token


class TestExtractBearer:
    def test_returns_token(self):
        assert extract_bearer("Bearer abc.def.ghi") == "abc.def.ghi"

    @pytest.mark.parametrize("header", [None, "", "Bearer", "Bearer ", "Token abc", "bearer abc", "Bearer a b"])
    def test_malformed(self, header):
        with pytest.raises(MissingOrMalformedToken):
            extract_bearer(header)


class TestAuthenticate:
    def test_valid_token_yields_identity(self, services, registered, access_token):
        identity = services.authenticator.authenticate(f"Bearer {access_token}")
        assert identity == registered
        assert identity.company_id == registered.company_id

    def test_missing_header(self, services):
        with pytest.raises(MissingOrMalformedToken):
            services.authenticator.authenticate(None)

    def test_expired_token(self, services, registered):
        user = services.store.get_user(registered.id)
        token = services.codec.issue_access(user, ttl=timedelta(seconds=-1)).token
        with pytest.raises(TokenExpired):
            services.authenticator.authenticate(f"Bearer {token}")

    def test_refresh_token_is_not_an_access_token(self, services, registered):
        token = services.codec.issue_refresh(registered.id).token
        with pytest.raises(InvalidToken):
            services.authenticator.authenticate(f"Bearer {token}")

    def test_deleted_identity(self, services, registered, access_token):
        services.storage.delete(services.store.get_user(registered.id))
        services.storage.save()
        with pytest.raises(InvalidToken):
            services.authenticator.authenticate(f"Bearer {access_token}")

    def test_deactivated_identity(self, services, registered, access_token):
        user = services.store.get_user(registered.id)
        user.is_active = False
        services.storage.save()
        with pytest.raises(InvalidToken):
            services.authenticator.authenticate(f"Bearer {access_token}")


class TestAuthorize:
    def test_allowed_role(self, registered):
        authorize(registered, {"admin", "recruiter"})

    def test_empty_allow_list_admits_everyone(self, registered):
        authorize(registered, set())

    def test_other_role_is_forbidden(self, registered):
        with pytest.raises(Forbidden) as exc_info:
            authorize(registered, ["interviewer"])
        assert exc_info.value.status_code == 403
