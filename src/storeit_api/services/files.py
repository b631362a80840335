"""
Owner-side file operations: single-shot upload, browsing, stats, rename,
delete and signed URLs.
"""

import base64
import binascii
import logging
import uuid
from typing import Any, Dict, List, Optional

from storeit_api.database import FileRecord, MetadataTable, RecordType
from storeit_api.errors import BadRequestError, ForbiddenError, NotFoundError
from storeit_api.file_types import (
    MEDIA_CATEGORIES,
    FileCategory,
    categorize,
    file_extension,
    mime_type_for,
)
from storeit_api.s3.delete_objects import delete_s3_object
from storeit_api.s3.keys import file_object_key
from storeit_api.s3.presign import generate_presigned_download_url, public_object_url
from storeit_api.s3.write_objects import copy_s3_object, upload_s3_object
from storeit_api.settings import Settings, get_settings

logger = logging.getLogger(__name__)

SORT_OPTIONS = ("$createdAt-desc", "$createdAt-asc", "name-asc", "name-desc", "size-asc", "size-desc")
DEFAULT_SORT = "$createdAt-desc"


def decode_file_data(file_data: str) -> bytes:
    """Decode a base64 payload, tolerating a `data:<mime>;base64,` prefix."""
    if file_data.startswith("data:") and "," in file_data:
        file_data = file_data.split(",", 1)[1]
    try:
        return base64.b64decode(file_data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise BadRequestError("Invalid base64 file data") from e


def validate_file_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise BadRequestError("File name is required")
    if "/" in name:
        raise BadRequestError("File name cannot contain '/'")
    return name


class FileService:
    """Operations a caller performs on the files they own"""

    def __init__(self, table: MetadataTable, settings: Optional[Settings] = None, s3_client=None):
        self.table = table
        self.settings = settings or get_settings()
        self.bucket_name = self.settings.s3_bucket_name
        self.s3_client = s3_client

    def file_url(self, record: FileRecord, category: FileCategory) -> str:
        """Signed URL for media (players cannot send auth headers), public URL otherwise."""
        if category in MEDIA_CATEGORIES:
            return generate_presigned_download_url(
                self.bucket_name,
                record.blob_key,
                self.settings.download_url_expiry_seconds,
                s3_client=self.s3_client,
            )
        return public_object_url(self.bucket_name, self.settings.aws_region, record.blob_key)

    def to_document(self, record: FileRecord, owner_name: str, **extra: Any) -> Dict[str, Any]:
        """Shape a File Record the way the file browser consumes it."""
        category = categorize(record.mime_type, record.file_name)
        uploaded_at = record.uploaded_at.isoformat()
        return {
            "$id": record.file_id,
            "$createdAt": uploaded_at,
            "fileId": record.file_id,
            "ownerId": record.owner_id,
            "name": record.file_name,
            "fileName": record.file_name,
            "mimeType": record.mime_type,
            "size": record.byte_size,
            "byteSize": record.byte_size,
            "type": category.value,
            "category": category.value,
            "extension": file_extension(record.file_name),
            "url": self.file_url(record, category),
            "bucketFileId": record.blob_key,
            "uploadedAt": uploaded_at,
            "users": list(record.shared_with),
            "owner": owner_name,
            **extra,
        }

    def get_file(self, owner_id: str, file_id: str) -> FileRecord:
        record = self.table.get(owner_id, file_id)
        if not isinstance(record, FileRecord):
            raise NotFoundError("File not found")
        return record

    def owned_files(self, owner_id: str) -> List[FileRecord]:
        return [
            record for record in self.table.query_by_owner(owner_id, RecordType.FILE)
            if isinstance(record, FileRecord)
        ]

    def upload(self, owner_id: str, file_name: str, file_data: str, mime_type: Optional[str] = None) -> FileRecord:
        """Store a whole file sent as base64; the blob is written before the record."""
        file_name = validate_file_name(file_name)
        content = decode_file_data(file_data)
        mime_type = mime_type or mime_type_for(file_name)
        file_id = str(uuid.uuid4())
        blob_key = file_object_key(owner_id, file_id, file_name)

        upload_s3_object(
            self.bucket_name,
            blob_key,
            content,
            content_type=mime_type,
            s3_client=self.s3_client,
        )
        record = FileRecord(
            owner_id=owner_id,
            record_id=file_id,
            file_name=file_name,
            mime_type=mime_type,
            byte_size=len(content),
            blob_key=blob_key,
        )
        self.table.put(record)
        logger.info(f"Uploaded {file_name} ({len(content)} bytes) as {file_id} for {owner_id}")
        return record

    def list_files(
        self,
        owner_id: str,
        owner_name: str,
        search: Optional[str] = None,
        types: Optional[List[str]] = None,
        sort: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Search, filter by category, sort and cap the caller's files."""
        sort = sort or DEFAULT_SORT
        if sort not in SORT_OPTIONS:
            raise BadRequestError(f"Invalid sort option: {sort}")
        if limit is not None and limit < 1:
            raise BadRequestError("limit must be a positive integer")

        records = self.owned_files(owner_id)

        if search:
            needle = search.lower()
            records = [r for r in records if needle in r.file_name.lower()]

        wanted = {t.strip().lower() for t in (types or []) if t.strip()}
        if wanted:
            records = [r for r in records if categorize(r.mime_type, r.file_name).value in wanted]

        field, direction = sort.rsplit("-", 1)
        sort_keys = {
            "$createdAt": lambda r: r.uploaded_at,
            "name": lambda r: r.file_name.lower(),
            "size": lambda r: r.byte_size,
        }
        records.sort(key=sort_keys[field], reverse=direction == "desc")

        if limit is not None:
            records = records[:limit]

        documents = [self.to_document(record, owner_name) for record in records]
        return {"documents": documents, "total": len(documents)}

    def storage_stats(self, owner_id: str) -> Dict[str, Any]:
        """Bytes used per category, with each category's most recent upload time."""
        stats: Dict[str, Any] = {
            "used": 0,
            "all": self.settings.storage_quota_bytes,
        }
        for category in FileCategory:
            stats[category.value] = {"size": 0, "latestDate": None}

        for record in self.owned_files(owner_id):
            bucket = stats[categorize(record.mime_type, record.file_name).value]
            bucket["size"] += record.byte_size
            uploaded_at = record.uploaded_at.isoformat()
            if bucket["latestDate"] is None or uploaded_at > bucket["latestDate"]:
                bucket["latestDate"] = uploaded_at
            stats["used"] += record.byte_size
        return stats

    def rename(self, owner_id: str, file_id: str, new_name: str) -> FileRecord:
        """
        Rename by copying the blob to its new key, deleting the old key and
        then updating the record. Renaming to the current name is a no-op.
        """
        new_name = validate_file_name(new_name)
        record = self.get_file(owner_id, file_id)
        new_key = file_object_key(owner_id, file_id, new_name)
        if new_key == record.blob_key:
            return record

        copy_s3_object(self.bucket_name, record.blob_key, new_key, s3_client=self.s3_client)
        delete_s3_object(self.bucket_name, record.blob_key, s3_client=self.s3_client)
        updated = self.table.update(owner_id, file_id, {"file_name": new_name, "blob_key": new_key})
        logger.info(f"Renamed {file_id} from {record.file_name} to {new_name}")
        return updated

    def delete(self, owner_id: str, file_id: str) -> None:
        record = self.get_file(owner_id, file_id)
        delete_s3_object(self.bucket_name, record.blob_key, s3_client=self.s3_client)
        self.table.delete(owner_id, file_id)
        logger.info(f"Deleted {file_id} ({record.file_name}) for {owner_id}")

    def download_url(self, owner_id: str, file_id: str) -> Dict[str, Any]:
        record = self.get_file(owner_id, file_id)
        return self.attachment_url(record)

    def attachment_url(self, record: FileRecord) -> Dict[str, Any]:
        """Signed URL that makes the browser save the file under its name."""
        expires_in = self.settings.download_url_expiry_seconds
        url = generate_presigned_download_url(
            self.bucket_name,
            record.blob_key,
            expires_in,
            download_file_name=record.file_name,
            content_type=record.mime_type,
            s3_client=self.s3_client,
        )
        return {"downloadUrl": url, "fileName": record.file_name, "expiresIn": expires_in}

    def stream_url(self, owner_id: str, file_id: str) -> Dict[str, Any]:
        record = self.get_file(owner_id, file_id)
        if categorize(record.mime_type, record.file_name) is not FileCategory.VIDEO:
            raise BadRequestError("File is not a video")
        expires_in = self.settings.stream_url_expiry_seconds
        url = generate_presigned_download_url(
            self.bucket_name,
            record.blob_key,
            expires_in,
            content_type=record.mime_type,
            s3_client=self.s3_client,
        )
        return {
            "streamUrl": url,
            "fileName": record.file_name,
            "fileType": record.mime_type,
            "fileSize": record.byte_size,
            "expiresIn": expires_in,
        }

    def signed_url_for_key(self, owner_id: str, blob_key: str) -> Dict[str, Any]:
        """Signed URL for a raw blob key, restricted to keys under the caller's prefix."""
        if not blob_key:
            raise BadRequestError("Missing required fields: key")
        if not blob_key.startswith(f"{owner_id}/"):
            raise ForbiddenError("Access denied to this file")
        expires_in = self.settings.download_url_expiry_seconds
        url = generate_presigned_download_url(
            self.bucket_name,
            blob_key,
            expires_in,
            s3_client=self.s3_client,
        )
        return {"url": url, "expiresIn": expires_in}
