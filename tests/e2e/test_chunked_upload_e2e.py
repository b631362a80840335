"""
End-to-end chunked upload through the HTTP API: init, out-of-order chunks,
complete, then the file shows up in the listing and can be shared.
"""
import base64

from fastapi import status
from fastapi.testclient import TestClient

from tests.consts import ALICE_SUB, BOB_EMAIL
from tests.fixtures.aws_fixtures import object_keys, read_object

CHUNKS = [b"a" * 1024, b"b" * 1024, b"c" * 512]


def b64(content: bytes) -> str:
    return base64.b64encode(content).decode()


def init_upload(client: TestClient, headers, total_chunks=len(CHUNKS)) -> dict:
    response = client.post(
        "/upload/init",
        json={
            "fileName": "holiday.mp4",
            "fileType": "video/mp4",
            "fileSize": sum(len(c) for c in CHUNKS),
            "totalChunks": total_chunks,
        },
        headers=headers,
    )
    assert response.status_code == status.HTTP_200_OK, response.text
    return response.json()


def send_chunk(client: TestClient, headers, ids: dict, index: int) -> dict:
    response = client.post(
        "/upload/chunk",
        json={
            "uploadId": ids["uploadId"],
            "fileId": ids["fileId"],
            "chunkIndex": index,
            "chunkData": b64(CHUNKS[index]),
        },
        headers=headers,
    )
    assert response.status_code == status.HTTP_200_OK, response.text
    return response.json()


def complete(client: TestClient, headers, ids: dict):
    return client.post(
        "/upload/complete",
        json={"uploadId": ids["uploadId"], "fileId": ids["fileId"]},
        headers=headers,
    )


def test_chunked_upload_lifecycle(client: TestClient, alice_headers, bob_headers, s3_client):
    ids = init_upload(client, alice_headers)

    for index in (1, 2, 0):
        progress = send_chunk(client, alice_headers, ids, index)
    assert progress["uploadedChunks"] == 3
    assert progress["totalChunks"] == 3

    # re-sending a chunk does not change the count
    assert send_chunk(client, alice_headers, ids, 1)["uploadedChunks"] == 3

    response = complete(client, alice_headers, ids)
    assert response.status_code == status.HTTP_200_OK, response.text
    body = response.json()
    assert body["fileId"] == ids["fileId"]
    assert body["byteSize"] == sum(len(c) for c in CHUNKS)
    assert body["message"] == "Upload completed successfully"

    blob_key = f"{ALICE_SUB}/{ids['fileId']}/holiday.mp4"
    assert object_keys(s3_client) == [blob_key]
    assert read_object(s3_client, blob_key) == b"".join(CHUNKS)

    listing = client.get("/files", params={"types": "video"}, headers=alice_headers).json()
    assert listing["total"] == 1
    assert listing["documents"][0]["byteSize"] == sum(len(c) for c in CHUNKS)

    stream = client.get(f"/files/{ids['fileId']}/stream", headers=alice_headers)
    assert stream.status_code == status.HTTP_200_OK
    assert stream.json()["fileSize"] == sum(len(c) for c in CHUNKS)

    # the session is gone, so completing again cannot create a second file
    again = complete(client, alice_headers, ids)
    assert again.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_409_CONFLICT)
    assert client.get("/files", headers=alice_headers).json()["total"] == 1

    client.put(f"/files/{ids['fileId']}/share", json={"emails": [BOB_EMAIL]}, headers=alice_headers)
    shared = client.get("/files/shared-with-me", headers=bob_headers).json()
    assert [d["fileId"] for d in shared["documents"]] == [ids["fileId"]]


def test_incomplete_upload_cannot_be_completed(client: TestClient, alice_headers):
    ids = init_upload(client, alice_headers)
    send_chunk(client, alice_headers, ids, 0)

    response = complete(client, alice_headers, ids)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "Upload incomplete: received 1 of 3 chunks"}


def test_chunk_out_of_range_and_foreign_session(client: TestClient, alice_headers, bob_headers):
    ids = init_upload(client, alice_headers)

    response = client.post(
        "/upload/chunk",
        json={"uploadId": ids["uploadId"], "fileId": ids["fileId"], "chunkIndex": 3, "chunkData": b64(b"x")},
        headers=alice_headers,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    response = client.post(
        "/upload/chunk",
        json={"uploadId": ids["uploadId"], "fileId": ids["fileId"], "chunkIndex": 0, "chunkData": b64(b"x")},
        headers=bob_headers,
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_init_validation(client: TestClient, alice_headers):
    response = client.post(
        "/upload/init",
        json={"fileName": "x.mp4", "fileType": "video/mp4", "fileSize": 10, "totalChunks": 0},
        headers=alice_headers,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    response = client.post("/upload/init", json={"fileName": "x.mp4"}, headers=alice_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"].startswith("Missing required fields")
