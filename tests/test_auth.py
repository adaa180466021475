from objectstorage_client.auth import CredentialProvider
from objectstorage_client.errors import CredentialsError
from objectstorage_client.errors import CredentialsMissing
from objectstorage_client.errors import ErrorKind
from objectstorage_client.interfaces import ICredentialProvider

import datetime
import jwt
import pytest


SECRET = "test-jwt-secret"


@pytest.fixture
def provider():
    return CredentialProvider(SECRET)


@pytest.fixture
def secretless():
    return CredentialProvider()


class TestInterface:
    def test_interface_provided(self, provider):
        assert ICredentialProvider.providedBy(provider)


class TestResolveAuthHeader:
    def test_token_passed_through(self, secretless):
        assert secretless.resolve_auth_header("pre.signed.token") == "Bearer pre.signed.token"

    def test_token_wins_over_secret(self, provider):
        assert provider.resolve_auth_header("opaque") == "Bearer opaque"

    def test_claims_are_signed_with_secret(self, provider):
        claims = {"tenantId": "t1", "workspaceId": "w1"}
        header = provider.resolve_auth_header(claims)
        assert header.startswith("Bearer ")
        token = header.removeprefix("Bearer ")
        assert jwt.decode(token, SECRET, algorithms=["HS256"]) == claims

    def test_secret_used_when_no_credential(self, provider):
        assert provider.resolve_auth_header() == f"Bearer {SECRET}"

    def test_secret_used_for_empty_claims(self, provider):
        assert provider.resolve_auth_header({}) == f"Bearer {SECRET}"

    def test_nothing_resolvable_raises(self, secretless):
        with pytest.raises(CredentialsMissing) as exc_info:
            secretless.resolve_auth_header()
        assert exc_info.value.kind is ErrorKind.CREDENTIALS

    def test_claims_without_secret_raise(self, secretless):
        with pytest.raises(CredentialsMissing):
            secretless.resolve_auth_header({"tenantId": "t1"})

    def test_empty_token_raises(self, provider):
        with pytest.raises(CredentialsMissing):
            provider.resolve_auth_header("")

    def test_unsignable_claims_raise(self, provider):
        with pytest.raises(CredentialsError) as exc_info:
            provider.resolve_auth_header({"when": object()})
        assert exc_info.value.cause is not None

    def test_datetime_claims_are_supported(self, provider):
        exp = datetime.datetime.now(tz=datetime.timezone.utc) + datetime.timedelta(hours=1)
        token = provider.resolve_token({"tenantId": "t1", "exp": exp})
        decoded = jwt.decode(token, SECRET, algorithms=["HS256"])
        assert decoded["exp"] == int(exp.timestamp())


class TestBuildHeaders:
    def test_overrides_are_merged(self, provider):
        headers = provider.build_headers("tok", {"content-type": "text/plain", "x-eio-ttl": 60})
        assert headers == {
            "content-type": "text/plain",
            "x-eio-ttl": "60",
            "Authorization": "Bearer tok",
        }

    def test_authorization_override_is_ignored(self, provider):
        headers = provider.build_headers("tok", {"authorization": "Basic Zm9vOmJhcg=="})
        assert headers == {"Authorization": "Bearer tok"}

    def test_missing_credentials_raise_before_headers(self, secretless):
        with pytest.raises(CredentialsMissing):
            secretless.build_headers(None, {"content-type": "text/plain"})
