"""
ResiHub Backend — Session Token Tests
=======================================

What:  Claims carried by issued tokens, expiry and signature checks.
"""

from datetime import datetime, timedelta, timezone

from jose import jwt

from resihub.services.identity import Identity, Role, Status
from resihub.services.tokens import TokenIssuer


def oakwood_manager():
    return Identity(
        id="7f0c",
        name="Ann",
        email="a@x.com",
        password_hash="$2b$04$hash",
        phone="555-0100",
        role=Role.MANAGER,
        status=Status.APPROVED,
        tenant_name="Oakwood",
    )


class TestTokenIssuer:

    def setup_method(self):
        self.issuer = TokenIssuer(secret="unit-test-secret")

    def test_verify_recovers_issued_claims(self):
        token = self.issuer.issue(oakwood_manager(), Role.MANAGER)

        payload = self.issuer.verify(token)

        assert payload.id == "7f0c"
        assert payload.role == "Manager"
        assert payload.apartment_complex_name == "Oakwood"
        assert payload.status == "approved"
        assert payload.phone == "555-0100"
        assert payload.name == "Ann"

    def test_service_provider_claims_are_null(self):
        provider = Identity(
            id="sp1",
            name="Bob",
            email="b@x.com",
            password_hash="h",
            phone=None,
            role=Role.SERVICE_PROVIDER,
        )

        payload = self.issuer.verify(self.issuer.issue(provider))

        assert payload.role == "ServiceProvider"
        assert payload.apartment_complex_name is None
        assert payload.status is None

    def test_token_expires_after_one_hour(self):
        token = self.issuer.issue(oakwood_manager())
        claims = jwt.get_unverified_claims(token)

        assert claims["exp"] - claims["iat"] == 3600

    def test_expired_token_is_rejected(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"id": "1", "role": "Resident", "iat": now - timedelta(hours=2), "exp": now - timedelta(hours=1)},
            "unit-test-secret",
            algorithm="HS256",
        )

        assert self.issuer.verify(token) is None

    def test_token_signed_with_other_secret_is_rejected(self):
        token = TokenIssuer(secret="someone-else").issue(oakwood_manager())

        assert self.issuer.verify(token) is None

    def test_garbage_token_is_rejected(self):
        assert self.issuer.verify("not.a.token") is None

    def test_token_without_id_is_rejected(self):
        token = jwt.encode({"role": "Resident"}, "unit-test-secret", algorithm="HS256")

        assert self.issuer.verify(token) is None

    def test_password_hash_not_in_token(self):
        claims = jwt.get_unverified_claims(self.issuer.issue(oakwood_manager()))

        assert "$2b$04$hash" not in str(claims)
        assert "email" not in claims
