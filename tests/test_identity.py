import pytest

from app.core.exceptions import ForbiddenError, InvalidTokenError, UnauthenticatedError
from app.core.identity import (
    BearerTokenStrategy,
    IdentityStrategy,
    UpstreamHeaderStrategy,
    authenticate,
    default_strategies,
    extract_bearer_token,
    optional_authenticate,
    require_admin,
)
from app.models.principal import Principal
from tests.conftest import HMAC_SIGNER, bearer_headers, create_test_token

STRATEGIES = default_strategies(HMAC_SIGNER)


class TestExtractBearerToken:
    def test_bearer_header(self):
        assert extract_bearer_token({"authorization": "Bearer abc.def"}) == "abc.def"

    @pytest.mark.parametrize("value", [None, "", "Basic abc", "Bearer ", "bearer abc"])
    def test_not_a_bearer_header(self, value):
        headers = {} if value is None else {"authorization": value}
        assert extract_bearer_token(headers) is None


class TestStrategies:
    """Tests for individual identity strategies"""

    def test_strategy_base_is_abstract(self):
        with pytest.raises(TypeError):
            IdentityStrategy()

    def test_upstream_headers_trusted_without_token(self, db_session, tenant):
        headers = {"x-user-id": "u-1", "x-user-email": "a@b.c", "x-user-role": "ADMIN"}

        principal = UpstreamHeaderStrategy().resolve(headers, tenant)

        assert principal == Principal(
            user_id="u-1", tenant_id=tenant.id, role="ADMIN", email="a@b.c", source="upstream"
        )

    def test_upstream_role_defaults_to_user(self, db_session, tenant):
        principal = UpstreamHeaderStrategy().resolve({"x-user-id": "u-1"}, tenant)
        assert principal.role == "USER"

    def test_upstream_not_applicable_without_user_id(self, db_session, tenant):
        assert UpstreamHeaderStrategy().resolve({"x-user-role": "ADMIN"}, tenant) is None

    def test_bearer_strategy(self, db_session, tenant, regular_user):
        headers = {"authorization": f"Bearer {create_test_token(tenant, regular_user)}"}

        principal = BearerTokenStrategy(HMAC_SIGNER).resolve(headers, tenant)

        assert principal.user_id == regular_user.id
        assert principal.source == "bearer"

    def test_bearer_not_applicable_without_header(self, db_session, tenant):
        assert BearerTokenStrategy(HMAC_SIGNER).resolve({}, tenant) is None


class TestAuthenticate:
    """Tests for the strategy chain"""

    def test_upstream_headers_win_over_bearer(self, db_session, tenant, regular_user):
        headers = {
            "x-user-id": "gateway-user",
            "authorization": f"Bearer {create_test_token(tenant, regular_user)}",
        }

        principal = authenticate(headers, tenant, STRATEGIES)

        assert principal.user_id == "gateway-user"
        assert principal.source == "upstream"

    def test_no_identity(self, db_session, tenant):
        with pytest.raises(UnauthenticatedError):
            authenticate({}, tenant, STRATEGIES)

    def test_invalid_token_propagates(self, db_session, tenant):
        with pytest.raises(InvalidTokenError):
            authenticate({"authorization": "Bearer nope"}, tenant, STRATEGIES)

    def test_optional_authenticate_anonymous(self, db_session, tenant):
        assert optional_authenticate({}, tenant, STRATEGIES) is None

    def test_optional_authenticate_bad_token_is_anonymous(self, db_session, tenant):
        assert optional_authenticate({"authorization": "Bearer nope"}, tenant, STRATEGIES) is None

    def test_optional_authenticate_resolves(self, db_session, tenant, regular_user):
        headers = {"authorization": f"Bearer {create_test_token(tenant, regular_user)}"}
        assert optional_authenticate(headers, tenant, STRATEGIES).user_id == regular_user.id


class TestRequireAdmin:
    def test_admin_passes(self):
        principal = Principal(user_id="u", tenant_id="t", role="ADMIN")
        assert require_admin(principal) is principal

    def test_user_forbidden(self):
        with pytest.raises(ForbiddenError):
            require_admin(Principal(user_id="u", tenant_id="t", role="USER"))

    def test_anonymous_unauthenticated(self):
        with pytest.raises(UnauthenticatedError):
            require_admin(None)


class TestIdentityOverHttp:
    """Tests for principal resolution on real endpoints"""

    def test_me_with_bearer(self, client, tenant, regular_user):
        response = client.get("/api/auth/me", headers=bearer_headers(tenant, regular_user))

        assert response.status_code == 200
        assert response.json()["email"] == regular_user.email

    def test_me_with_upstream_headers(self, client, tenant, regular_user):
        headers = {"x-tenant-name": tenant.name, "x-user-id": regular_user.id}

        response = client.get("/api/auth/me", headers=headers)

        assert response.status_code == 200
        assert response.json()["id"] == regular_user.id

    def test_me_without_identity(self, client, tenant):
        response = client.get("/api/auth/me", headers={"x-tenant-name": tenant.name})

        assert response.status_code == 401
        assert response.json()["message"] == "Authentication required"

    def test_admin_endpoint_rejects_user(self, client, user_headers):
        response = client.get("/api/users", headers=user_headers)

        assert response.status_code == 403
        assert response.json()["message"] == "Admin privileges required"
