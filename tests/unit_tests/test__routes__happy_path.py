import base64

from fastapi import status
from fastapi.testclient import TestClient

from tests.consts import ALICE_EMAIL, ALICE_NAME, ALICE_SUB, BOB_EMAIL, CAROL_EMAIL, TEST_BUCKET_NAME
from tests.fixtures.aws_fixtures import object_keys, read_object

# Constants for testing
TEST_FILE_NAME = "test.txt"
TEST_FILE_CONTENT = b"Hello, world!"
TEST_PDF_NAME = "test.pdf"
TEST_PDF_CONTENT = b"%PDF-1.4\n1 0 obj\n<<>>\nendobj\ntrailer\n<</Root 1 0 R>>\n%%EOF"


def b64(content: bytes) -> str:
    return base64.b64encode(content).decode()


def upload(client: TestClient, headers, name=TEST_FILE_NAME, content=TEST_FILE_CONTENT, **extra) -> dict:
    response = client.post(
        "/upload",
        json={"fileName": name, "fileData": b64(content), **extra},
        headers=headers,
    )
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()


def test_health_needs_no_token(client: TestClient):
    response = client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "ok"
    assert response.json()["components"]["bucket"] == TEST_BUCKET_NAME


def test_unknown_route_and_wrong_method_use_error_envelope(client: TestClient, alice_headers):
    response = client.get("/nope", headers=alice_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"error": "Route not found"}

    response = client.patch("/files/abc", headers=alice_headers)
    assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED
    assert response.json() == {"error": "Method not allowed"}


def test_missing_token_is_unauthorized(client: TestClient):
    response = client.get("/files")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "Missing or invalid Authorization header"}


def test_expired_token_is_unauthorized(client: TestClient, make_token):
    response = client.get("/files", headers={"Authorization": f"Bearer {make_token(expires_in=-60)}"})

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "Token expired"}


def test_me(client: TestClient, alice_headers):
    response = client.get("/auth/me", headers=alice_headers)

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "userId": ALICE_SUB,
        "email": ALICE_EMAIL,
        "username": ALICE_NAME,
        "emailVerified": True,
    }


def test_access_token_identity_comes_from_directory(client: TestClient, make_token):
    headers = {"Authorization": f"Bearer {make_token(token_use='access')}"}
    response = client.get("/auth/me", headers=headers)

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["email"] == ALICE_EMAIL


def test_upload_and_browse(client: TestClient, alice_headers, s3_client):
    created = upload(client, alice_headers)
    assert created["fileName"] == TEST_FILE_NAME
    assert created["byteSize"] == len(TEST_FILE_CONTENT)
    file_id = created["fileId"]

    blob_key = f"{ALICE_SUB}/{file_id}/{TEST_FILE_NAME}"
    assert read_object(s3_client, blob_key) == TEST_FILE_CONTENT

    listing = client.get("/files", headers=alice_headers).json()
    assert listing["total"] == 1
    assert listing["documents"][0]["fileId"] == file_id
    assert listing["documents"][0]["owner"] == ALICE_NAME

    document = client.get(f"/files/{file_id}", headers=alice_headers).json()
    assert document["name"] == TEST_FILE_NAME
    assert document["type"] == "document"
    assert document["bucketFileId"] == blob_key


def test_list_query_params(client: TestClient, alice_headers):
    upload(client, alice_headers, name="a.txt", content=b"1")
    upload(client, alice_headers, name="b.png", content=b"22")
    upload(client, alice_headers, name="c.txt", content=b"333")

    response = client.get("/files", params={"types": "document", "sort": "size-desc", "limit": 1}, headers=alice_headers)
    assert [d["name"] for d in response.json()["documents"]] == ["c.txt"]

    response = client.get("/files", params={"search": "B."}, headers=alice_headers)
    assert [d["name"] for d in response.json()["documents"]] == ["b.png"]

    response = client.get("/files", params={"sort": "weight-asc"}, headers=alice_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    response = client.get("/files", params={"limit": 0}, headers=alice_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_stats(client: TestClient, alice_headers):
    upload(client, alice_headers, name="a.txt", content=b"1234")
    upload(client, alice_headers, name="b.png", content=b"12")

    stats = client.get("/files/stats", headers=alice_headers).json()

    assert stats["used"] == 6
    assert stats["document"]["size"] == 4
    assert stats["image"]["size"] == 2


def test_rename_download_delete(client: TestClient, alice_headers, s3_client):
    file_id = upload(client, alice_headers, name=TEST_PDF_NAME, content=TEST_PDF_CONTENT)["fileId"]

    response = client.put(f"/files/{file_id}/rename", json={"name": "renamed.pdf"}, headers=alice_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["file"]["name"] == "renamed.pdf"
    assert object_keys(s3_client) == [f"{ALICE_SUB}/{file_id}/renamed.pdf"]

    response = client.get(f"/files/{file_id}/download", headers=alice_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["fileName"] == "renamed.pdf"

    response = client.post("/download", json={"fileId": file_id}, headers=alice_headers)
    assert response.json()["fileName"] == "renamed.pdf"

    response = client.delete(f"/files/{file_id}", headers=alice_headers)
    assert response.json() == {"message": "File deleted successfully"}
    assert object_keys(s3_client) == []

    response = client.get(f"/files/{file_id}", headers=alice_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"error": "File not found"}


def test_other_users_cannot_touch_my_files(client: TestClient, alice_headers, bob_headers):
    file_id = upload(client, alice_headers)["fileId"]

    assert client.get(f"/files/{file_id}", headers=bob_headers).status_code == status.HTTP_404_NOT_FOUND
    assert client.delete(f"/files/{file_id}", headers=bob_headers).status_code == status.HTTP_404_NOT_FOUND
    response = client.post("/files/signed-url", json={"key": f"{ALICE_SUB}/{file_id}/{TEST_FILE_NAME}"}, headers=bob_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_stream_rejects_non_video(client: TestClient, alice_headers):
    file_id = upload(client, alice_headers)["fileId"]

    response = client.get(f"/files/{file_id}/stream", headers=alice_headers)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "File is not a video"}


def test_share_flow(client: TestClient, alice_headers, bob_headers, carol_headers):
    file_id = upload(client, alice_headers)["fileId"]

    response = client.put(f"/files/{file_id}/share", json={"emails": [BOB_EMAIL]}, headers=alice_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["sharedWith"] == [BOB_EMAIL]

    shared = client.get("/files/shared-with-me", headers=bob_headers).json()
    assert shared["total"] == 1
    assert shared["documents"][0]["owner"] == ALICE_NAME
    assert shared["documents"][0]["isShared"] is True

    access = client.get(f"/files/{file_id}/access", headers=bob_headers)
    assert access.json()["hasAccess"] is True
    assert access.json()["file"]["owner"] == ALICE_NAME
    assert access.json()["file"]["sharedBy"] == ALICE_SUB

    download = client.post(f"/files/{file_id}/download-shared", headers=bob_headers)
    assert download.json()["fileName"] == TEST_FILE_NAME

    denied = client.get(f"/files/{file_id}/access", headers=carol_headers)
    assert denied.status_code == status.HTTP_403_FORBIDDEN
    assert denied.json() == {"error": "Access denied to this file"}

    # a single email string is accepted and replaces the list
    client.put(f"/files/{file_id}/share", json={"emails": CAROL_EMAIL}, headers=alice_headers)
    assert client.get("/files/shared-with-me", headers=bob_headers).json()["total"] == 0
    assert client.get("/files/shared-with-me", headers=carol_headers).json()["total"] == 1


def test_share_with_unknown_user(client: TestClient, alice_headers):
    file_id = upload(client, alice_headers)["fileId"]

    response = client.put(
        f"/files/{file_id}/share",
        json={"emails": [BOB_EMAIL, "ghost@example.com"]},
        headers=alice_headers,
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN
    body = response.json()
    assert body["validUsers"] == [BOB_EMAIL]
    assert body["invalidUsers"] == ["ghost@example.com"]
    assert client.get(f"/files/{file_id}", headers=alice_headers).json()["users"] == []


def test_missing_fields_and_bad_json(client: TestClient, alice_headers):
    response = client.post("/upload", json={"fileName": "x.txt"}, headers=alice_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "Missing required fields: fileData"}

    response = client.post(
        "/upload",
        content=b"{not json",
        headers={**alice_headers, "Content-Type": "application/json"},
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "Invalid JSON in request body"}

    response = client.post("/upload", json={"fileName": "x.txt", "fileData": "@@@"}, headers=alice_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "Invalid base64 file data"}


def test_auth_routes_use_directory(client: TestClient, fake_directory):
    response = client.post(
        "/auth/signup",
        json={"email": "dave@example.com", "password": "Secret123!", "username": "Dave"},
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["userSub"] == "sub-dave@example.com"

    response = client.post("/auth/signin", json={"email": ALICE_EMAIL, "password": "Secret123!"})
    assert response.json()["token"] == "access-token"
    assert response.json()["user"]["email"] == ALICE_EMAIL

    response = client.post("/auth/forgot-password", json={"email": "ghost@example.com"})
    assert response.status_code == status.HTTP_404_NOT_FOUND

    response = client.post("/auth/confirm", json={"email": ALICE_EMAIL, "otp": "1", "type": "other"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "Invalid confirmation type"}

    response = client.post("/auth/verify-reset-otp", json={"email": ALICE_EMAIL, "resetCode": "12"})
    assert response.json() == {"error": "Invalid reset code format"}
