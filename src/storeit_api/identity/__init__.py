"""Identity: the Cognito account directory and bearer-token verification."""

from .directory import Account, BaseDirectory, CognitoDirectory
from .tokens import Identity, TokenVerifier, resolve_identity

__all__ = [
    'Account', 'BaseDirectory', 'CognitoDirectory',
    'Identity', 'TokenVerifier', 'resolve_identity',
]
