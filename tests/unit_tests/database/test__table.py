import pytest
from boto3.dynamodb.conditions import Attr

from storeit_api.database import FileRecord, RecordType, UploadSession, UploadStatus
from storeit_api.errors import ConflictError


def make_file(owner_id="owner-1", file_id="file-1", name="notes.txt", shared_with=None):
    return FileRecord(
        owner_id=owner_id,
        record_id=file_id,
        file_name=name,
        mime_type="text/plain",
        byte_size=5,
        blob_key=f"{owner_id}/{file_id}/{name}",
        shared_with=shared_with or [],
    )


def make_session(owner_id="owner-1", upload_id="upload-1", total_chunks=3):
    return UploadSession(
        owner_id=owner_id,
        record_id=upload_id,
        actual_file_id="file-9",
        file_name="movie.mp4",
        mime_type="video/mp4",
        declared_byte_size=30,
        total_chunks=total_chunks,
    )


def test_put_get_delete(metadata_table):
    metadata_table.put(make_file())

    record = metadata_table.get("owner-1", "file-1")
    assert isinstance(record, FileRecord)
    assert record.file_name == "notes.txt"
    assert record.byte_size == 5

    metadata_table.delete("owner-1", "file-1")
    assert metadata_table.get("owner-1", "file-1") is None


def test_query_by_owner_filters_record_type(metadata_table):
    metadata_table.put(make_file(file_id="file-1"))
    metadata_table.put(make_file(file_id="file-2"))
    metadata_table.put(make_session())
    metadata_table.put(make_file(owner_id="owner-2", file_id="file-3"))

    everything = metadata_table.query_by_owner("owner-1")
    files = metadata_table.query_by_owner("owner-1", RecordType.FILE)

    assert len(everything) == 3
    assert sorted(r.record_id for r in files) == ["file-1", "file-2"]


def test_query_by_owner_skips_unreadable_items(metadata_table):
    metadata_table.put(make_file())
    metadata_table.table.put_item(Item={"ownerId": "owner-1", "recordId": "junk", "recordType": "LEGACY"})

    records = metadata_table.query_by_owner("owner-1")

    assert [r.record_id for r in records] == ["file-1"]


def test_scan_all_applies_filter_and_predicate(metadata_table):
    metadata_table.put(make_file(owner_id="owner-1", file_id="file-1", shared_with=["bob@example.com"]))
    metadata_table.put(make_file(owner_id="owner-2", file_id="file-2", shared_with=["bob@example.com"]))
    metadata_table.put(make_file(owner_id="owner-3", file_id="file-3", shared_with=["carol@example.com"]))

    pushed_down = metadata_table.scan_all(filter_expression=Attr("sharedWith").contains("bob@example.com"))
    predicate_only = metadata_table.scan_all(predicate=lambda r: r.owner_id == "owner-3")

    assert sorted(r.record_id for r in pushed_down) == ["file-1", "file-2"]
    assert [r.record_id for r in predicate_only] == ["file-3"]


def test_update_returns_updated_record(metadata_table):
    metadata_table.put(make_file())

    updated = metadata_table.update("owner-1", "file-1", {"shared_with": ["bob@example.com"]})

    assert updated.shared_with == ["bob@example.com"]
    assert metadata_table.get("owner-1", "file-1").shared_with == ["bob@example.com"]


def test_update_of_missing_record_conflicts(metadata_table):
    with pytest.raises(ConflictError):
        metadata_table.update("owner-1", "missing", {"file_name": "x.txt"})
    assert metadata_table.get("owner-1", "missing") is None


def test_set_chunk_counts_each_index_once(metadata_table):
    metadata_table.put(make_session())

    metadata_table.set_chunk("owner-1", "upload-1", 0, "owner-1/upload-1/chunk_0")
    metadata_table.set_chunk("owner-1", "upload-1", 1, "owner-1/upload-1/chunk_1")
    session = metadata_table.set_chunk("owner-1", "upload-1", 0, "owner-1/upload-1/chunk_0")

    assert session.uploaded_chunks == 2
    assert session.uploaded_chunks == len(session.chunks)
    assert set(session.chunks) == {"0", "1"}


def test_set_chunk_rejected_once_assembling(metadata_table):
    metadata_table.put(make_session())
    metadata_table.set_chunk("owner-1", "upload-1", 0, "owner-1/upload-1/chunk_0")
    metadata_table.transition_status("owner-1", "upload-1", UploadStatus.INITIATED, UploadStatus.ASSEMBLING)

    with pytest.raises(ConflictError):
        metadata_table.set_chunk("owner-1", "upload-1", 1, "owner-1/upload-1/chunk_1")
    with pytest.raises(ConflictError):
        metadata_table.set_chunk("owner-1", "upload-1", 0, "owner-1/upload-1/chunk_0")


def test_transition_status_is_compare_and_swap(metadata_table):
    metadata_table.put(make_session())

    session = metadata_table.transition_status(
        "owner-1", "upload-1", UploadStatus.INITIATED, UploadStatus.ASSEMBLING
    )
    assert session.status == UploadStatus.ASSEMBLING

    with pytest.raises(ConflictError):
        metadata_table.transition_status("owner-1", "upload-1", UploadStatus.INITIATED, UploadStatus.ASSEMBLING)
