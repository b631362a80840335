"""Functions for writing objects to an S3 bucket--the "C" and "U" in CRUD."""

from typing import TYPE_CHECKING, Dict, Optional

from storeit_api.aws_clients import get_s3_client

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client


def upload_s3_object(
    bucket_name: str,
    object_key: str,
    file_content: bytes,
    content_type: Optional[str] = None,
    metadata: Optional[Dict[str, str]] = None,
    s3_client: Optional["S3Client"] = None,
) -> None:
    """
    Upload a file to an S3 bucket.

    :param bucket_name: The name of the S3 bucket.
    :param object_key: path to the object in the S3 bucket.
    :param file_content: The content of the file to upload.
    :param content_type: The MIME type of the file, e.g. "text/plain" for a text file.
    :param metadata: Optional user metadata stored with the object.
    :param s3_client: An optional boto3 S3 client. If not provided, one will be created.
    """
    content_type = content_type or "application/octet-stream"
    s3_client = s3_client or get_s3_client()
    put_kwargs = {
        "Bucket": bucket_name,
        "Key": object_key,
        "Body": file_content,
        "ContentType": content_type,
    }
    if metadata:
        put_kwargs["Metadata"] = metadata
    s3_client.put_object(**put_kwargs)


def copy_s3_object(
    bucket_name: str,
    source_key: str,
    destination_key: str,
    s3_client: Optional["S3Client"] = None,
) -> None:
    """
    Copy an object to a new key within the same bucket.

    S3 has no rename, so callers rename by copying and then deleting the source.

    :param bucket_name: The name of the S3 bucket.
    :param source_key: path to the existing object.
    :param destination_key: path the copy is written to.
    :param s3_client: An optional boto3 S3 client. If not provided, one will be created.
    """
    s3_client = s3_client or get_s3_client()
    s3_client.copy_object(
        Bucket=bucket_name,
        CopySource={"Bucket": bucket_name, "Key": source_key},
        Key=destination_key,
    )
