from objectstorage_client.errors import CredentialsError
from objectstorage_client.errors import CredentialsMissing
from objectstorage_client.interfaces import ICredentialProvider
from zope.interface import implementer

import jwt
import logging


logger = logging.getLogger(__name__)

AUTHORIZATION_HEADER = "Authorization"


@implementer(ICredentialProvider)
class CredentialProvider:
    """Derives the bearer credential for each storage request.

    A call may carry a claims mapping, which is signed with the configured
    secret, or an already-signed token string, which is passed through
    untouched. Without either, the configured secret itself is sent as the
    pre-shared token.
    """

    def __init__(self, secret=None, algorithm="HS256"):
        self._secret = secret or None
        self.algorithm = algorithm

    @property
    def has_secret(self):
        return self._secret is not None

    def resolve_token(self, credential=None):
        if isinstance(credential, str):
            if not credential:
                raise CredentialsMissing("Empty JWT token passed")
            return credential
        if credential:
            if self._secret is None:
                raise CredentialsMissing(
                    "JWT payload passed, but no JWT secret provided during initialization"
                )
            return self._sign(dict(credential))
        if self._secret is None:
            raise CredentialsMissing(
                "Neither JWT token passed, nor JWT secret provided during initialization"
            )
        return self._secret

    def _sign(self, claims):
        try:
            return jwt.encode(claims, self._secret, algorithm=self.algorithm)
        except (jwt.PyJWTError, TypeError, ValueError) as e:
            logger.debug("JWT signing failed: %s", e)
            raise CredentialsError(f"Could not sign JWT payload: {e}", cause=e) from e

    def resolve_auth_header(self, credential=None):
        return f"Bearer {self.resolve_token(credential)}"

    def build_headers(self, credential=None, overrides=None):
        headers = {}
        for key, value in (overrides or {}).items():
            if key.lower() == AUTHORIZATION_HEADER.lower():
                continue
            headers[key] = str(value)
        headers[AUTHORIZATION_HEADER] = self.resolve_auth_header(credential)
        return headers
