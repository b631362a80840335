# cli.py
import logging

import click

from storeit_api.database import MetadataTable
from storeit_api.identity.directory import CognitoDirectory
from storeit_api.logging_config import configure_logging
from storeit_api.provisioning import create_metadata_table, create_s3_bucket
from storeit_api.services.auth import AuthService
from storeit_api.settings import get_settings

logger = logging.getLogger(__name__)


@click.group()
def cli():
    """CLI commands for running and provisioning the StoreIt Files API"""
    configure_logging(get_settings().log_level)


@cli.command()
def show_config():
    """Show current configuration"""
    settings = get_settings()

    print("Current Configuration:")
    print(f"  Deployment Mode: {settings.deployment_mode}")
    print(f"  AWS Region: {settings.aws_region}")
    print(f"  AWS Endpoint: {settings.aws_endpoint_url}")
    print(f"  S3 Bucket: {settings.s3_bucket_name}")
    print(f"  DynamoDB Table: {settings.dynamodb_table_name}")
    print(f"  Cognito User Pool: {settings.cognito_user_pool_id}")
    print(f"  Cognito Client: {settings.cognito_client_id}")
    print(f"  JWKS URL: {settings.jwks_url}")
    print(f"  Log Level: {settings.log_level}")


@cli.command()
def create_resources():
    """Create the S3 bucket and DynamoDB table (local moto server or AWS)"""
    settings = get_settings()
    bucket_ok = create_s3_bucket(settings.s3_bucket_name)
    table_ok = create_metadata_table(settings.dynamodb_table_name)
    if bucket_ok and table_ok:
        print(f"✅ Bucket {settings.s3_bucket_name} and table {settings.dynamodb_table_name} are ready")
    else:
        print("❌ Resource creation failed, see the log for details")
        raise SystemExit(1)


@cli.command()
@click.argument("email")
def issue_reset_code(email):
    """Store a six-digit password-reset code for EMAIL and print it"""
    settings = get_settings()
    auth = AuthService(CognitoDirectory(settings), MetadataTable(table_name=settings.dynamodb_table_name), settings)
    record = auth.issue_reset_code(email)
    print(f"Reset code for {email}: {record.code} (valid for {settings.reset_code_ttl_seconds}s)")


@cli.command()
@click.option("--host", default="0.0.0.0", help="Interface to bind")
@click.option("--port", default=8000, type=int, help="Port to listen on")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host, port, reload):
    """Run the API locally with uvicorn"""
    import uvicorn

    settings = get_settings()
    print(f"Serving StoreIt Files API on http://{host}:{port} in {settings.deployment_mode} mode")
    uvicorn.run("storeit_api.main:create_app", host=host, port=port, reload=reload, factory=True)


if __name__ == "__main__":
    cli()
