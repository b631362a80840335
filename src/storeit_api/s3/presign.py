"""Signed and public URLs for objects in the files bucket."""

from typing import TYPE_CHECKING, Optional

from storeit_api.aws_clients import get_s3_client

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client


def generate_presigned_download_url(
    bucket_name: str,
    object_key: str,
    expires_in: int,
    download_file_name: Optional[str] = None,
    content_type: Optional[str] = None,
    s3_client: Optional["S3Client"] = None,
) -> str:
    """
    Mint a time-limited GET URL for one object.

    :param bucket_name: Name of the S3 bucket.
    :param object_key: Key of the object the URL grants access to.
    :param expires_in: Lifetime of the URL in seconds.
    :param download_file_name: When set, the response is served as an attachment with this name.
    :param content_type: When set, overrides the Content-Type S3 serves the object with.
    :param s3_client: Optional S3 client to use. If not provided, a new client will be created.

    :return: The presigned URL.
    """
    s3_client = s3_client or get_s3_client()
    params = {"Bucket": bucket_name, "Key": object_key}
    if download_file_name:
        params["ResponseContentDisposition"] = f'attachment; filename="{download_file_name}"'
    if content_type:
        params["ResponseContentType"] = content_type
    return s3_client.generate_presigned_url(
        ClientMethod="get_object",
        Params=params,
        ExpiresIn=expires_in,
    )


def public_object_url(bucket_name: str, region: str, object_key: str) -> str:
    """Virtual-hosted style URL; only resolves if the bucket policy allows anonymous reads."""
    return f"https://{bucket_name}.s3.{region}.amazonaws.com/{object_key}"
