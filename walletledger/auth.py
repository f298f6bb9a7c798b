"""Caller identity for the ledger.

The ledger never sees credentials, only the ``uid`` of a verified caller.
Two verifiers are provided:

* :class:`FirebaseTokenVerifier` checks Firebase ID tokens against the x509
  certificates Google publishes. The certificates are fetched lazily on first
  use, cached until the ``max-age`` the endpoint announces, and refreshed under
  a lock so concurrent requests trigger a single download.
* :class:`DevTokenVerifier` accepts HS256 tokens signed with a local secret.
  It exists for local development and tests and is only wired in when
  ``LEDGER_AUTH_MODE=dev``.
"""
from __future__ import annotations

import re
import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Protocol

import jwt
import requests
from cryptography.x509 import load_pem_x509_certificate

from .config import AppConfig
from .errors import InternalError, Unauthorized
from .models import utcnow

_MAX_AGE = re.compile(r"max-age=(\d+)")
DEFAULT_CERT_TTL = 3600
DEV_ISSUER = "walletledger-dev"


@dataclass(frozen=True, slots=True)
class AuthenticatedUser:
    uid: str
    email: Optional[str] = None
    name: Optional[str] = None


class TokenVerifier(Protocol):
    def verify(self, token: str) -> AuthenticatedUser:
        ...


def extract_bearer_token(header: Optional[str]) -> Optional[str]:
    """Return the token of an ``Authorization: Bearer <token>`` header."""

    if not header:
        return None
    parts = header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        return None
    return parts[1]


def _user_from_claims(claims: dict[str, object]) -> AuthenticatedUser:
    uid = claims.get("sub")
    if not isinstance(uid, str) or not uid or len(uid) > 128:
        raise Unauthorized("Unauthorized: token has no valid subject")
    email = claims.get("email")
    name = claims.get("name")
    return AuthenticatedUser(
        uid=uid,
        email=email if isinstance(email, str) else None,
        name=name if isinstance(name, str) else None,
    )


class FirebaseTokenVerifier:
    """Verify Firebase ID tokens (RS256, signed by Google)."""

    def __init__(
        self,
        project_id: str,
        certs_url: str,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ) -> None:
        self._project_id = project_id
        self._certs_url = certs_url
        self._session = session or requests.Session()
        self._timeout = timeout
        self._lock = threading.Lock()
        self._keys: Optional[dict[str, object]] = None
        self._expires_at = 0.0

    @property
    def issuer(self) -> str:
        return f"https://securetoken.google.com/{self._project_id}"

    def _public_keys(self) -> dict[str, object]:
        with self._lock:
            if self._keys is None or time.monotonic() >= self._expires_at:
                try:
                    response = self._session.get(self._certs_url, timeout=self._timeout)
                    response.raise_for_status()
                    payload = response.json()
                except (requests.RequestException, ValueError) as exc:
                    raise InternalError("Identity provider unavailable") from exc

                self._keys = {
                    kid: load_pem_x509_certificate(pem.encode("ascii")).public_key()
                    for kid, pem in payload.items()
                }
                match = _MAX_AGE.search(response.headers.get("Cache-Control", ""))
                ttl = int(match.group(1)) if match else DEFAULT_CERT_TTL
                self._expires_at = time.monotonic() + ttl
            return self._keys

    def verify(self, token: str) -> AuthenticatedUser:
        try:
            header = jwt.get_unverified_header(token)
        except jwt.PyJWTError as exc:
            raise Unauthorized("Unauthorized: Invalid or expired token") from exc

        if header.get("alg") != "RS256":
            raise Unauthorized("Unauthorized: Invalid or expired token")
        key = self._public_keys().get(header.get("kid"))
        if key is None:
            raise Unauthorized("Unauthorized: Invalid or expired token")

        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=["RS256"],
                audience=self._project_id,
                issuer=self.issuer,
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.PyJWTError as exc:
            raise Unauthorized("Unauthorized: Invalid or expired token") from exc
        return _user_from_claims(claims)


class DevTokenVerifier:
    """Issue and verify HS256 tokens signed with a local secret."""

    algorithm = "HS256"

    def __init__(self, secret: str, ttl: timedelta = timedelta(hours=1)) -> None:
        self._secret = secret
        self._ttl = ttl

    def issue(self, uid: str, email: Optional[str] = None, name: Optional[str] = None) -> str:
        now = utcnow()
        payload: dict[str, object] = {
            "sub": uid,
            "iss": DEV_ISSUER,
            "iat": int(now.timestamp()),
            "exp": int((now + self._ttl).timestamp()),
        }
        if email:
            payload["email"] = email
        if name:
            payload["name"] = name
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> AuthenticatedUser:
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                issuer=DEV_ISSUER,
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.PyJWTError as exc:
            raise Unauthorized("Unauthorized: Invalid or expired token") from exc
        return _user_from_claims(claims)


def build_token_verifier(config: AppConfig) -> TokenVerifier:
    """Pick the verifier matching ``config.auth_mode``."""

    if config.dev_mode:
        return DevTokenVerifier(config.dev_jwt_secret)
    if not config.firebase_project_id:
        raise ValueError("FIREBASE_PROJECT_ID is required when LEDGER_AUTH_MODE=firebase")
    return FirebaseTokenVerifier(config.firebase_project_id, config.firebase_certs_url)
