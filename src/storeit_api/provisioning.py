"""Create the bucket and metadata table for local development and tests."""
import logging
from typing import Optional

from botocore.exceptions import ClientError

from storeit_api.aws_clients import get_dynamodb_resource, get_s3_client
from storeit_api.settings import get_settings

logger = logging.getLogger(__name__)


def create_s3_bucket(bucket_name: Optional[str] = None, s3_client=None) -> bool:
    """Create an S3 bucket with proper error handling."""
    settings = get_settings()
    bucket_name = bucket_name or settings.s3_bucket_name
    s3_client = s3_client or get_s3_client()
    region = settings.aws_region

    try:
        if region == 'us-east-1':
            s3_client.create_bucket(Bucket=bucket_name)
        else:
            s3_client.create_bucket(
                Bucket=bucket_name,
                CreateBucketConfiguration={'LocationConstraint': region}
            )
        logger.info(f"Created S3 bucket: {bucket_name}")
        return True
    except s3_client.exceptions.BucketAlreadyExists:
        logger.info(f"S3 bucket already exists: {bucket_name}")
        return True
    except s3_client.exceptions.BucketAlreadyOwnedByYou:
        logger.info(f"S3 bucket already owned by you: {bucket_name}")
        return True
    except ClientError as e:
        logger.error(f"Error creating S3 bucket {bucket_name}: {str(e)}")
        return False


def create_metadata_table(table_name: Optional[str] = None, dynamodb_resource=None) -> bool:
    """
    Create the single metadata table keyed by (ownerId, recordId).

    On-demand billing, no secondary indexes.
    """
    settings = get_settings()
    table_name = table_name or settings.dynamodb_table_name
    dynamodb_resource = dynamodb_resource or get_dynamodb_resource()

    try:
        table = dynamodb_resource.create_table(
            TableName=table_name,
            KeySchema=[
                {'AttributeName': 'ownerId', 'KeyType': 'HASH'},
                {'AttributeName': 'recordId', 'KeyType': 'RANGE'},
            ],
            AttributeDefinitions=[
                {'AttributeName': 'ownerId', 'AttributeType': 'S'},
                {'AttributeName': 'recordId', 'AttributeType': 'S'},
            ],
            BillingMode='PAY_PER_REQUEST',
        )
        table.wait_until_exists()
        logger.info(f"Created DynamoDB table: {table_name}")
        return True
    except ClientError as e:
        if e.response.get('Error', {}).get('Code') == 'ResourceInUseException':
            logger.info(f"DynamoDB table already exists: {table_name}")
            return True
        logger.error(f"Error creating DynamoDB table {table_name}: {str(e)}")
        return False
