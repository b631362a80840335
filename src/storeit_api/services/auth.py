"""Account lifecycle handlers on top of the identity directory."""

import hmac
import logging
import re
import secrets
from datetime import timedelta
from typing import Any, Dict, Optional

from storeit_api.database import MetadataTable, ResetCodeRecord
from storeit_api.database.records import RESET_CODES_OWNER, utc_now
from storeit_api.errors import BadRequestError, NotFoundError, StoreItError
from storeit_api.identity.directory import Account, BaseDirectory
from storeit_api.identity.tokens import Identity
from storeit_api.settings import Settings, get_settings

logger = logging.getLogger(__name__)

RESET_CODE_PATTERN = re.compile(r"^\d{6}$")


def account_profile(account: Account) -> Dict[str, Any]:
    return {
        "userId": account.user_id,
        "email": account.email,
        "username": account.display_name,
        "emailVerified": account.email_verified,
    }


class AuthService:
    """Sign-up, sign-in, password reset and token refresh"""

    def __init__(self, directory: BaseDirectory, table: MetadataTable, settings: Optional[Settings] = None):
        self.directory = directory
        self.table = table
        self.settings = settings or get_settings()

    def _require_account(self, email: str) -> Account:
        try:
            accounts = self.directory.find_accounts_by_email(email)
        except NotFoundError:
            accounts = []
        if not accounts:
            raise NotFoundError("User not found")
        return accounts[0]

    def signup(self, email: str, password: str, username: str) -> Dict[str, Any]:
        user_sub = self.directory.register(email, password, username)
        return {
            "message": "Account created successfully. Please check your email for verification code.",
            "email": email,
            "userSub": user_sub,
        }

    def verify(self, email: str, otp: str) -> Dict[str, Any]:
        self.directory.confirm_registration(email, otp)
        return {"message": "Email verified successfully"}

    def confirm(self, email: str, otp: str, confirm_type: str, password: Optional[str] = None) -> Dict[str, Any]:
        """Confirm a sign-up (optionally signing in) or check a password-reset code."""
        if confirm_type == "signup":
            result = self.verify(email, otp)
            if password:
                try:
                    return {**self.signin(email, password), **result}
                except StoreItError as e:
                    logger.info(f"Sign-in after verification failed for {email}: {e}")
            return result
        if confirm_type == "password-reset":
            return self.verify_reset_otp(email, otp)
        raise BadRequestError("Invalid confirmation type")

    def signin(self, email: str, password: str) -> Dict[str, Any]:
        tokens = self.directory.authenticate(email, password)

        user = None
        try:
            user = account_profile(self.directory.get_account(email))
        except StoreItError as e:
            logger.warning(f"Could not load profile for {email} during sign-in: {e}")

        logger.info(f"Signed in {email}")
        return {
            "message": "Sign in successful",
            "token": tokens.get("AccessToken"),
            "idToken": tokens.get("IdToken"),
            "refreshToken": tokens.get("RefreshToken"),
            "user": user,
        }

    def refresh(self, refresh_token: str, username: Optional[str] = None) -> Dict[str, Any]:
        if not refresh_token:
            raise BadRequestError("Refresh token is required")
        tokens = self.directory.refresh(refresh_token, username)
        return {
            "token": tokens["AccessToken"],
            "idToken": tokens.get("IdToken"),
            "message": "Token refreshed successfully",
        }

    def forgot_password(self, email: str) -> Dict[str, Any]:
        self._require_account(email)
        self.directory.forgot_password(email)
        return {"message": "Password reset code sent to your email"}

    def reset_password(self, email: str, reset_code: str, new_password: str) -> Dict[str, Any]:
        self.directory.confirm_forgot_password(email, reset_code, new_password)
        logger.info(f"Password reset for {email}")
        return {"message": "Password reset successfully"}

    def resend_otp(self, email: str) -> Dict[str, Any]:
        """Confirmed accounts get a password-reset code, unconfirmed ones a new sign-up code."""
        account = self._require_account(email)
        if account.is_confirmed:
            self.directory.forgot_password(email)
            return {"message": "Password reset code sent to your email"}
        self.directory.resend_confirmation(email)
        return {"message": "Verification code resent to your email"}

    def issue_reset_code(self, email: str) -> ResetCodeRecord:
        """Store a fresh six-digit reset code for `email`, replacing any earlier one."""
        expires_at = utc_now() + timedelta(seconds=self.settings.reset_code_ttl_seconds)
        record = ResetCodeRecord(
            owner_id=RESET_CODES_OWNER,
            record_id=email,
            code=f"{secrets.randbelow(10 ** 6):06d}",
            expires_at=int(expires_at.timestamp() * 1000),
        )
        self.table.put(record)
        logger.info(f"Issued reset code for {email}")
        return record

    def verify_reset_otp(self, email: str, reset_code: str) -> Dict[str, Any]:
        if not reset_code or not RESET_CODE_PATTERN.match(reset_code):
            raise BadRequestError("Invalid reset code format")
        self._require_account(email)

        record = self.table.get(RESET_CODES_OWNER, email)
        if not isinstance(record, ResetCodeRecord):
            raise BadRequestError("Reset code not found or expired")
        if record.is_expired():
            self.table.delete(RESET_CODES_OWNER, email)
            raise BadRequestError("Reset code expired")
        if not hmac.compare_digest(record.code, reset_code):
            raise BadRequestError("Invalid reset code")

        self.table.delete(RESET_CODES_OWNER, email)
        return {"message": "Reset code verified successfully"}

    @staticmethod
    def me(identity: Identity) -> Dict[str, Any]:
        return {
            "userId": identity.subject,
            "email": identity.email,
            "username": identity.display_name,
            "emailVerified": identity.email_verified,
        }
