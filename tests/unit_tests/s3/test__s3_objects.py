from urllib.parse import parse_qs, urlparse

import boto3

from storeit_api.s3.delete_objects import delete_s3_object
from storeit_api.s3.keys import chunk_object_key, file_object_key
from storeit_api.s3.presign import generate_presigned_download_url, public_object_url
from storeit_api.s3.read_objects import fetch_s3_object_bytes, object_exists_in_s3
from storeit_api.s3.write_objects import copy_s3_object, upload_s3_object
from tests.consts import TEST_BUCKET_NAME, TEST_REGION

TEST_KEY = "owner-1/file-1/report.pdf"
TEST_CONTENT = b"%PDF-1.4\n%%EOF"


def test_object_keys():
    assert file_object_key("owner-1", "file-1", "report.pdf") == "owner-1/file-1/report.pdf"
    assert chunk_object_key("owner-1", "upload-1", 7) == "owner-1/upload-1/chunk_7"


def test_upload_and_fetch_object(mocked_aws):
    s3_client = boto3.client("s3")
    upload_s3_object(TEST_BUCKET_NAME, TEST_KEY, TEST_CONTENT, content_type="application/pdf", s3_client=s3_client)

    assert object_exists_in_s3(TEST_BUCKET_NAME, TEST_KEY, s3_client=s3_client)
    assert fetch_s3_object_bytes(TEST_BUCKET_NAME, TEST_KEY, s3_client=s3_client) == TEST_CONTENT

    head = s3_client.head_object(Bucket=TEST_BUCKET_NAME, Key=TEST_KEY)
    assert head["ContentType"] == "application/pdf"


def test_upload_defaults_to_octet_stream(mocked_aws):
    upload_s3_object(TEST_BUCKET_NAME, TEST_KEY, TEST_CONTENT)
    head = boto3.client("s3").head_object(Bucket=TEST_BUCKET_NAME, Key=TEST_KEY)
    assert head["ContentType"] == "application/octet-stream"


def test_object_exists_is_false_for_missing_key(mocked_aws):
    assert not object_exists_in_s3(TEST_BUCKET_NAME, "owner-1/missing/nothing.txt")


def test_copy_then_delete_moves_object(mocked_aws):
    new_key = "owner-1/file-1/renamed.pdf"
    upload_s3_object(TEST_BUCKET_NAME, TEST_KEY, TEST_CONTENT)

    copy_s3_object(TEST_BUCKET_NAME, TEST_KEY, new_key)
    delete_s3_object(TEST_BUCKET_NAME, TEST_KEY)

    assert not object_exists_in_s3(TEST_BUCKET_NAME, TEST_KEY)
    assert fetch_s3_object_bytes(TEST_BUCKET_NAME, new_key) == TEST_CONTENT


def test_delete_missing_object_is_not_an_error(mocked_aws):
    delete_s3_object(TEST_BUCKET_NAME, "owner-1/never/existed.txt")


def test_presigned_url_carries_disposition_and_expiry(mocked_aws):
    upload_s3_object(TEST_BUCKET_NAME, TEST_KEY, TEST_CONTENT)

    url = generate_presigned_download_url(
        TEST_BUCKET_NAME,
        TEST_KEY,
        expires_in=3600,
        download_file_name="report.pdf",
        content_type="application/pdf",
    )

    parsed = urlparse(url)
    query = parse_qs(parsed.query)
    assert parsed.path.endswith("/report.pdf")
    assert query["response-content-disposition"] == ['attachment; filename="report.pdf"']
    assert query["response-content-type"] == ["application/pdf"]
    assert query.get("X-Amz-Expires", query.get("Expires")) is not None


def test_public_object_url():
    assert public_object_url(TEST_BUCKET_NAME, TEST_REGION, TEST_KEY) == (
        f"https://{TEST_BUCKET_NAME}.s3.{TEST_REGION}.amazonaws.com/{TEST_KEY}"
    )
