# src/storeit_api/settings.py
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOCAL_MODES = ("local-dev", "aws-mock")
VALID_MODES = ("local-dev", "aws-mock", "aws-prod")
MOTO_SERVER_URL = "http://localhost:5000"


class Settings(BaseSettings):
    """
    Single source of truth for all application settings.

    Configuration precedence:
    1. Environment variables (highest priority)
    2. .env file (if exists)
    3. Default values in this class (lowest priority)

    Usage:
        from storeit_api.settings import get_settings
        settings = get_settings()
        bucket_name = settings.s3_bucket_name
    """

    # Application Settings
    app_name: str = Field(
        default="storeit-api",
        description="Application name"
    )

    # Deployment Mode
    deployment_mode: str = Field(
        default="local-dev",
        description="Deployment mode: local-dev, aws-mock, or aws-prod"
    )

    # AWS Core Settings
    aws_region: str = Field(
        default="us-east-1",
        alias="AWS_DEFAULT_REGION"
    )

    aws_access_key_id: Optional[str] = Field(
        default=None,
        alias="AWS_ACCESS_KEY_ID"
    )

    aws_secret_access_key: Optional[str] = Field(
        default=None,
        alias="AWS_SECRET_ACCESS_KEY"
    )

    aws_endpoint_url: Optional[str] = Field(
        default=None,
        alias="AWS_ENDPOINT_URL"
    )

    # S3 Configuration
    s3_bucket_name: str = Field(
        default="storeit-files-bucket",
        description="S3 bucket holding finished files and in-flight chunks"
    )

    # DynamoDB Configuration
    dynamodb_table_name: str = Field(
        default="storeit-files",
        description="Single DynamoDB table for file records, upload sessions and reset codes"
    )

    # Cognito Configuration
    cognito_user_pool_id: str = Field(
        default="us-east-1_storeit",
        description="Cognito user pool id"
    )

    cognito_client_id: str = Field(
        default="storeit-web-client",
        description="Cognito app client id"
    )

    cognito_client_secret: Optional[str] = Field(
        default=None,
        description="Cognito app client secret, used to compute SECRET_HASH"
    )

    cognito_jwks_url: Optional[str] = Field(
        default=None,
        description="JWKS endpoint (derived from region and pool when unset)"
    )

    # HTTP surface
    cors_allow_origins: List[str] = Field(
        default=["*"],
        description="Origins allowed by the CORS middleware"
    )

    # Signed URLs and quotas
    download_url_expiry_seconds: int = Field(default=3600, ge=1)
    stream_url_expiry_seconds: int = Field(default=7200, ge=1)
    storage_quota_bytes: int = Field(
        default=2 * 1024 * 1024 * 1024,
        description="Storage allowance reported by /files/stats"
    )
    reset_code_ttl_seconds: int = Field(default=300, ge=1)

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    @field_validator("deployment_mode", mode="before")
    @classmethod
    def normalize_deployment_mode(cls, v):
        """Accept `AWS-Prod` or ` aws-prod ` from hand-edited env files."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("deployment_mode")
    @classmethod
    def validate_deployment_mode(cls, v):
        """Validate deployment mode is one of the allowed values."""
        if v not in VALID_MODES:
            raise ValueError(f"Invalid deployment_mode: {v}. Must be one of {list(VALID_MODES)}")
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v):
        return v.upper()

    @model_validator(mode="after")
    def apply_local_mode_defaults(self):
        """Point local modes at a moto server with mock credentials unless told otherwise."""
        if self.deployment_mode in LOCAL_MODES:
            if self.aws_endpoint_url is None:
                self.aws_endpoint_url = MOTO_SERVER_URL
            if self.aws_access_key_id is None:
                self.aws_access_key_id = "mock"
            if self.aws_secret_access_key is None:
                self.aws_secret_access_key = "mock"
        return self

    @property
    def cognito_issuer(self) -> str:
        """Issuer claim expected on every token minted by the user pool."""
        return f"https://cognito-idp.{self.aws_region}.amazonaws.com/{self.cognito_user_pool_id}"

    @property
    def jwks_url(self) -> str:
        return self.cognito_jwks_url or f"{self.cognito_issuer}/.well-known/jwks.json"

    def get_environment_dict(self) -> dict:
        """Get configuration as a dictionary suitable for a Lambda environment block."""
        return {
            'DEPLOYMENT_MODE': self.deployment_mode,
            'S3_BUCKET_NAME': self.s3_bucket_name,
            'DYNAMODB_TABLE_NAME': self.dynamodb_table_name,
            'COGNITO_USER_POOL_ID': self.cognito_user_pool_id,
            'COGNITO_CLIENT_ID': self.cognito_client_id,
            'AWS_DEFAULT_REGION': self.aws_region,
            'AWS_ENDPOINT_URL': self.aws_endpoint_url or '',
            'LOG_LEVEL': self.log_level,
        }

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()
