"""
Bearer token verification against the user pool's JWKS.

Cognito issues two token shapes the API accepts:
- id tokens (`token_use=id`) carry `aud`, `email` and `name`
- access tokens (`token_use=access`) carry `client_id` and `username` but no profile

`resolve_identity` turns either shape into one Identity, filling profile gaps
from the directory.
"""

import logging
import threading
import time
from typing import Any, Dict, List, Optional

import requests
from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel

from storeit_api.errors import StoreItError, UnauthorizedError
from storeit_api.identity.directory import Account, BaseDirectory

logger = logging.getLogger(__name__)

ALGORITHMS = ["RS256"]


class Identity(BaseModel):
    """The authenticated caller."""
    subject: str
    email: str
    display_name: str
    email_verified: bool = False


class JWKSProvider:
    """Base class for signing-key sources"""

    def get_keys(self, refresh: bool = False) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def find_key(self, kid: Optional[str]) -> Optional[Dict[str, Any]]:
        """Key with a matching `kid`; one refetch is allowed for rotated keys."""
        for refresh in (False, True):
            for key in self.get_keys(refresh=refresh):
                if key.get("kid") == kid:
                    return key
        return None


class StaticJWKSProvider(JWKSProvider):
    """Fixed key set, for local development and tests."""

    def __init__(self, keys: List[Dict[str, Any]]):
        self.keys = list(keys)

    def get_keys(self, refresh: bool = False) -> List[Dict[str, Any]]:
        return self.keys


class RemoteJWKSProvider(JWKSProvider):
    """Fetches `/.well-known/jwks.json` with requests and caches it for `ttl_seconds`."""

    def __init__(self, url: str, ttl_seconds: int = 3600, timeout: float = 5.0):
        self.url = url
        self.ttl_seconds = ttl_seconds
        self.timeout = timeout
        self._keys: List[Dict[str, Any]] = []
        self._fetched_at = 0.0
        self._lock = threading.Lock()

    def get_keys(self, refresh: bool = False) -> List[Dict[str, Any]]:
        with self._lock:
            stale = time.monotonic() - self._fetched_at > self.ttl_seconds
            if refresh or stale or not self._keys:
                try:
                    response = requests.get(self.url, timeout=self.timeout)
                    response.raise_for_status()
                    self._keys = response.json().get("keys", [])
                    self._fetched_at = time.monotonic()
                    logger.info(f"Fetched {len(self._keys)} signing keys from {self.url}")
                except requests.RequestException as e:
                    logger.error(f"Error fetching JWKS from {self.url}: {str(e)}")
                    if not self._keys:
                        raise StoreItError("Unable to load token signing keys") from e
            return self._keys


class TokenVerifier:
    """Verifies signature, issuer, expiry, token_use and client binding."""

    def __init__(self, jwks_provider: JWKSProvider, issuer: str, client_id: str):
        self.jwks_provider = jwks_provider
        self.issuer = issuer
        self.client_id = client_id

    def verify(self, token: str) -> Dict[str, Any]:
        if not token:
            raise UnauthorizedError("Missing token")
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as e:
            raise UnauthorizedError("Invalid token") from e

        key = self.jwks_provider.find_key(header.get("kid"))
        if key is None:
            raise UnauthorizedError("Invalid token")

        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=ALGORITHMS,
                issuer=self.issuer,
                options={"verify_aud": False, "verify_at_hash": False},
            )
        except ExpiredSignatureError as e:
            raise UnauthorizedError("Token expired") from e
        except JWTError as e:
            raise UnauthorizedError("Invalid token") from e

        token_use = claims.get("token_use")
        if token_use == "id":
            audience = claims.get("aud")
            audiences = audience if isinstance(audience, list) else [audience]
            if self.client_id not in audiences:
                raise UnauthorizedError("Token was not issued for this client")
        elif token_use == "access":
            if claims.get("client_id") != self.client_id:
                raise UnauthorizedError("Token was not issued for this client")
        else:
            raise UnauthorizedError("Unsupported token type")

        if not claims.get("sub"):
            raise UnauthorizedError("Invalid token")
        return claims


def _claim_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).lower() == "true"


def resolve_identity(claims: Dict[str, Any], directory: Optional[BaseDirectory]) -> Identity:
    """
    Build the caller identity from verified claims.

    Precedence: `sub` is the subject; `email` and `name` come from the claims
    when present; otherwise the account is looked up by `username`,
    `cognito:username` or `sub` and its attributes fill the gaps. A caller
    whose email cannot be determined is rejected. The display name falls back
    to the email.
    """
    subject = claims.get("sub")
    if not subject:
        raise UnauthorizedError("Invalid token")

    email = claims.get("email")
    display_name = claims.get("name")
    email_verified = _claim_bool(claims.get("email_verified", False))

    if (not email or not display_name) and directory is not None:
        username = claims.get("username") or claims.get("cognito:username") or subject
        account: Optional[Account] = None
        try:
            account = directory.get_account(username)
        except StoreItError as e:
            logger.warning(f"Directory lookup for token subject {subject} failed: {e}")
        if account is not None:
            email = email or account.email
            display_name = display_name or account.display_name
            email_verified = email_verified or account.email_verified

    if not email:
        raise UnauthorizedError("Unable to determine the caller's email")

    return Identity(
        subject=subject,
        email=email,
        display_name=display_name or email,
        email_verified=email_verified,
    )
