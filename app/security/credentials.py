"""
Credential Verifier
===================

Issues and validates the bearer credentials used by HTTP requests and live
socket connections.

Credentials are ``itsdangerous`` timestamped signatures over
``{"id": <account id>, "role": <role at issue time>}``. Verification checks
the signature and age, then resolves the account from the durable store so
that role and status always come from the current record, never from the
token payload.

Failure modes
-------------
* missing / malformed / tampered / expired token, or unknown account
  -> :class:`~app.domain.exceptions.Unauthenticated`
* banned account -> :class:`~app.domain.exceptions.AccountBanned`

A restricted account verifies successfully; ``Identity.restricted`` is the
derived flag the command gate consumes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from app.domain.exceptions import AccountBanned, Unauthenticated
from app.domain.identity import Identity
from infrastructure.database.repositories.users import UserRepository

logger = logging.getLogger(__name__)

_TOKEN_SALT = "greenhouse-bearer"


def extract_bearer(header_value: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` header value."""
    if not header_value:
        return None
    scheme, _, token = header_value.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


@dataclass
class CredentialVerifier:
    secret_key: str
    users: UserRepository
    max_age_seconds: int = 7 * 24 * 60 * 60
    _serializer: URLSafeTimedSerializer = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._serializer = URLSafeTimedSerializer(self.secret_key, salt=_TOKEN_SALT)

    def issue(self, identity: Identity) -> str:
        return self._serializer.dumps({"id": identity.id, "role": identity.role.value})

    def verify(self, token: str | None) -> Identity:
        if not token:
            raise Unauthenticated("Authentication required")
        try:
            claims = self._serializer.loads(token, max_age=self.max_age_seconds)
        except SignatureExpired:
            raise Unauthenticated("Session expired, please log in again") from None
        except BadSignature:
            raise Unauthenticated("Invalid credential") from None

        user_id = claims.get("id") if isinstance(claims, dict) else None
        if not isinstance(user_id, int):
            raise Unauthenticated("Invalid credential")

        identity = self.users.get(user_id)
        if identity is None:
            logger.info("Credential for unknown account %s rejected", user_id)
            raise Unauthenticated("User not found")
        if identity.banned:
            raise AccountBanned("Your account has been banned. Contact an administrator.")
        return identity
