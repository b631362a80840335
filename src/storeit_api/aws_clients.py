"""AWS client management for S3, DynamoDB and Cognito."""
import logging
from typing import Any, Dict, Optional

import boto3

from storeit_api.settings import LOCAL_MODES, Settings, get_settings

logger = logging.getLogger(__name__)


class AWSClientManager:
    """Singleton manager for AWS service clients."""
    _instance = None
    _clients: Dict[str, Any] = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(AWSClientManager, cls).__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        """Initialize the client manager with settings."""
        self.configure(get_settings())

    def configure(self, settings: Settings) -> None:
        """Rebind the manager to a settings instance, dropping cached clients."""
        self.settings = settings
        self.region = settings.aws_region
        self.endpoint_url = settings.aws_endpoint_url
        self.mode = settings.deployment_mode
        self._clients.clear()

        logger.info("Initializing AWSClientManager")
        logger.info(f"  Mode: {self.mode}")
        logger.info(f"  Region: {self.region}")
        logger.info(f"  Endpoint: {self.endpoint_url}")

    def _client_kwargs(self) -> Dict[str, Any]:
        client_kwargs = {
            'region_name': self.region
        }
        if self.settings.aws_access_key_id:
            client_kwargs['aws_access_key_id'] = self.settings.aws_access_key_id
        if self.settings.aws_secret_access_key:
            client_kwargs['aws_secret_access_key'] = self.settings.aws_secret_access_key

        # Endpoint override only applies to moto-backed local modes
        if self.endpoint_url and self.mode in LOCAL_MODES:
            client_kwargs['endpoint_url'] = self.endpoint_url
        return client_kwargs

    def get_client(self, service_name: str) -> Any:
        """Get or create an AWS service client."""
        if service_name in self._clients:
            return self._clients[service_name]

        try:
            client = boto3.client(service_name, **self._client_kwargs())
            self._clients[service_name] = client
            logger.debug(f"Created {service_name} client")
            return client
        except Exception as e:
            logger.error(f"Error creating {service_name} client: {str(e)}")
            raise

    def get_resource(self, service_name: str) -> Any:
        """Get or create an AWS service resource (used for the DynamoDB document API)."""
        cache_key = f"resource:{service_name}"
        if cache_key in self._clients:
            return self._clients[cache_key]

        resource = boto3.resource(service_name, **self._client_kwargs())
        self._clients[cache_key] = resource
        logger.debug(f"Created {service_name} resource")
        return resource

    def clear_clients(self):
        """Clear all cached clients."""
        self._clients.clear()
        logger.debug("Cleared all AWS clients")


# Convenience functions for common operations

def get_s3_client():
    """Get the S3 client."""
    return AWSClientManager().get_client('s3')


def get_cognito_client():
    """Get the Cognito identity provider client."""
    return AWSClientManager().get_client('cognito-idp')


def get_dynamodb_resource():
    """Get the DynamoDB service resource."""
    return AWSClientManager().get_resource('dynamodb')


def get_dynamodb_table(table_name: Optional[str] = None):
    """Get a DynamoDB Table resource, defaulting to the configured metadata table."""
    manager = AWSClientManager()
    return manager.get_resource('dynamodb').Table(table_name or manager.settings.dynamodb_table_name)
