"""Functions for reading objects from an S3 bucket--the "R" in CRUD."""

from typing import TYPE_CHECKING, Optional

from botocore.exceptions import ClientError

from storeit_api.aws_clients import get_s3_client

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client


def object_exists_in_s3(
    bucket_name: str,
    object_key: str,
    s3_client: Optional["S3Client"] = None,
) -> bool:
    """
    Check if an object exists in the S3 bucket using head_object.

    :param bucket_name: Name of the S3 bucket.
    :param object_key: Key of the object to check.
    :param s3_client: Optional S3 client to use. If not provided, a new client will be created.

    :return: True if the object exists, False otherwise.
    """
    s3_client = s3_client or get_s3_client()
    try:
        s3_client.head_object(Bucket=bucket_name, Key=object_key)
        return True
    except ClientError as err:
        error_code = err.response.get("Error", {}).get("Code")
        if error_code in ("404", "NoSuchKey", "NotFound"):
            return False
        raise


def fetch_s3_object_bytes(
    bucket_name: str,
    object_key: str,
    s3_client: Optional["S3Client"] = None,
) -> bytes:
    """
    Fetch an object's full body from S3.

    Chunks and files are read whole; nothing here streams.

    :param bucket_name: Name of the S3 bucket.
    :param object_key: Key of the object to fetch.
    :param s3_client: Optional S3 client to use. If not provided, a new client will be created.

    :return: The object's bytes.
    """
    s3_client = s3_client or get_s3_client()
    response = s3_client.get_object(Bucket=bucket_name, Key=object_key)
    body = response["Body"]
    try:
        return body.read()
    finally:
        body.close()
