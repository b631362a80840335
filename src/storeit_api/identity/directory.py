"""
Account directory backed by a Cognito user pool.

Accounts are registered with the email as the Cognito username and the
display name in the `name` attribute. Every Cognito failure is translated
into the API's error taxonomy with a user-facing message.
"""

import base64
import hashlib
import hmac
import logging
from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError
from pydantic import BaseModel

from storeit_api.aws_clients import get_cognito_client
from storeit_api.errors import (
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    StoreItError,
    UnauthorizedError,
)
from storeit_api.settings import Settings, get_settings

logger = logging.getLogger(__name__)

# Cognito error code -> (error class, message)
COGNITO_ERRORS = {
    "UsernameExistsException": (BadRequestError, "User already exists"),
    "InvalidPasswordException": (BadRequestError, "Password too weak"),
    "InvalidParameterException": (BadRequestError, "Invalid email format"),
    "CodeMismatchException": (BadRequestError, "Invalid verification code"),
    "ExpiredCodeException": (BadRequestError, "Code expired"),
    "UserNotFoundException": (NotFoundError, "User not found"),
    "NotAuthorizedException": (UnauthorizedError, "Invalid email or password"),
    "UserNotConfirmedException": (ForbiddenError, "Please verify your email before signing in"),
    "PasswordResetRequiredException": (ForbiddenError, "Password reset required"),
    "TooManyRequestsException": (BadRequestError, "Too many failed attempts. Please wait before trying again"),
    "LimitExceededException": (BadRequestError, "Too many failed attempts. Please wait before trying again"),
    "CodeDeliveryFailureException": (StoreItError, "Email delivery failed - please check your email configuration"),
}


class Account(BaseModel):
    """One directory account as the rest of the API sees it."""
    user_id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    email_verified: bool = False
    status: Optional[str] = None

    @classmethod
    def from_cognito(cls, username: str, attributes: List[Dict[str, str]], status: Optional[str] = None) -> "Account":
        attrs = {attr["Name"]: attr["Value"] for attr in attributes}
        return cls(
            user_id=attrs.get("sub", username),
            email=attrs.get("email"),
            display_name=attrs.get("name"),
            email_verified=attrs.get("email_verified") == "true",
            status=status,
        )

    @property
    def is_confirmed(self) -> bool:
        return self.status == "CONFIRMED"


class BaseDirectory:
    """Base class for account directories (to be extended by specific implementations)"""

    def register(self, email: str, password: str, display_name: str) -> str:
        raise NotImplementedError

    def confirm_registration(self, email: str, code: str) -> None:
        raise NotImplementedError

    def authenticate(self, email: str, password: str) -> Dict[str, Any]:
        raise NotImplementedError

    def refresh(self, refresh_token: str, username: Optional[str] = None) -> Dict[str, Any]:
        raise NotImplementedError

    def forgot_password(self, email: str) -> None:
        raise NotImplementedError

    def confirm_forgot_password(self, email: str, code: str, new_password: str) -> None:
        raise NotImplementedError

    def resend_confirmation(self, email: str) -> None:
        raise NotImplementedError

    def get_account(self, username: str) -> Account:
        raise NotImplementedError

    def find_accounts_by_email(self, email: str) -> List[Account]:
        raise NotImplementedError


def translate_cognito_error(err: ClientError, overrides: Optional[Dict[str, tuple]] = None) -> StoreItError:
    """Map a Cognito ClientError onto the API error taxonomy."""
    code = err.response.get("Error", {}).get("Code", "")
    mapping = {**COGNITO_ERRORS, **(overrides or {})}
    if code in mapping:
        error_class, message = mapping[code]
        return error_class(message)
    return BadRequestError(err.response.get("Error", {}).get("Message") or "Identity provider request failed")


class CognitoDirectory(BaseDirectory):
    """Directory operations against one Cognito user pool and app client"""

    def __init__(self, settings: Optional[Settings] = None, cognito_client=None):
        settings = settings or get_settings()
        self.user_pool_id = settings.cognito_user_pool_id
        self.client_id = settings.cognito_client_id
        self.client_secret = settings.cognito_client_secret
        self.client = cognito_client or get_cognito_client()

    def secret_hash(self, username: str) -> Optional[str]:
        """Base64 HMAC-SHA256 of username + client id, keyed by the client secret."""
        if not self.client_secret:
            return None
        digest = hmac.new(
            self.client_secret.encode("utf-8"),
            (username + self.client_id).encode("utf-8"),
            hashlib.sha256,
        ).digest()
        return base64.b64encode(digest).decode()

    def _with_secret_hash(self, username: str, **kwargs) -> Dict[str, Any]:
        secret_hash = self.secret_hash(username)
        if secret_hash:
            kwargs["SecretHash"] = secret_hash
        return kwargs

    def register(self, email: str, password: str, display_name: str) -> str:
        try:
            response = self.client.sign_up(**self._with_secret_hash(
                email,
                ClientId=self.client_id,
                Username=email,
                Password=password,
                UserAttributes=[
                    {"Name": "email", "Value": email},
                    {"Name": "name", "Value": display_name},
                ],
            ))
        except ClientError as err:
            logger.warning(f"Sign-up failed for {email}: {err.response['Error'].get('Code')}")
            raise translate_cognito_error(err) from err
        logger.info(f"Registered account for {email}")
        return response["UserSub"]

    def confirm_registration(self, email: str, code: str) -> None:
        try:
            self.client.confirm_sign_up(**self._with_secret_hash(
                email,
                ClientId=self.client_id,
                Username=email,
                ConfirmationCode=code,
            ))
        except ClientError as err:
            raise translate_cognito_error(
                err, {"NotAuthorizedException": (BadRequestError, "User is already confirmed")}
            ) from err

    def authenticate(self, email: str, password: str) -> Dict[str, Any]:
        auth_parameters = {"USERNAME": email, "PASSWORD": password}
        secret_hash = self.secret_hash(email)
        if secret_hash:
            auth_parameters["SECRET_HASH"] = secret_hash
        try:
            response = self.client.initiate_auth(
                ClientId=self.client_id,
                AuthFlow="USER_PASSWORD_AUTH",
                AuthParameters=auth_parameters,
            )
        except ClientError as err:
            raise translate_cognito_error(err) from err
        return response["AuthenticationResult"]

    def refresh(self, refresh_token: str, username: Optional[str] = None) -> Dict[str, Any]:
        auth_parameters = {"REFRESH_TOKEN": refresh_token}
        secret_hash = self.secret_hash(username) if username else None
        if secret_hash:
            auth_parameters["SECRET_HASH"] = secret_hash
        try:
            response = self.client.initiate_auth(
                ClientId=self.client_id,
                AuthFlow="REFRESH_TOKEN_AUTH",
                AuthParameters=auth_parameters,
            )
        except ClientError as err:
            logger.info(f"Token refresh rejected: {err.response['Error'].get('Code')}")
            raise BadRequestError("Invalid refresh token") from err
        result = response.get("AuthenticationResult") or {}
        if not result.get("AccessToken"):
            raise BadRequestError("Failed to refresh token")
        return result

    def forgot_password(self, email: str) -> None:
        try:
            self.client.forgot_password(**self._with_secret_hash(
                email,
                ClientId=self.client_id,
                Username=email,
            ))
        except ClientError as err:
            raise translate_cognito_error(err) from err

    def confirm_forgot_password(self, email: str, code: str, new_password: str) -> None:
        try:
            self.client.confirm_forgot_password(**self._with_secret_hash(
                email,
                ClientId=self.client_id,
                Username=email,
                ConfirmationCode=code,
                Password=new_password,
            ))
        except ClientError as err:
            raise translate_cognito_error(err) from err

    def resend_confirmation(self, email: str) -> None:
        try:
            self.client.resend_confirmation_code(**self._with_secret_hash(
                email,
                ClientId=self.client_id,
                Username=email,
            ))
        except ClientError as err:
            raise translate_cognito_error(err) from err

    def get_account(self, username: str) -> Account:
        """Fetch one account by Cognito username (email or sub)."""
        try:
            response = self.client.admin_get_user(UserPoolId=self.user_pool_id, Username=username)
        except ClientError as err:
            raise translate_cognito_error(err) from err
        return Account.from_cognito(
            response["Username"],
            response.get("UserAttributes", []),
            status=response.get("UserStatus"),
        )

    def find_accounts_by_email(self, email: str) -> List[Account]:
        """All accounts whose email attribute equals `email` (normally zero or one)."""
        escaped = email.replace("\\", "\\\\").replace('"', '\\"')
        try:
            response = self.client.list_users(
                UserPoolId=self.user_pool_id,
                Filter=f'email = "{escaped}"',
            )
        except ClientError as err:
            raise translate_cognito_error(err) from err
        return [
            Account.from_cognito(user["Username"], user.get("Attributes", []), status=user.get("UserStatus"))
            for user in response.get("Users", [])
        ]
