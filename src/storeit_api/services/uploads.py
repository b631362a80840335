"""
Chunked upload sessions.

A session moves initiated -> assembling -> complete. Chunks are accepted only
while initiated; finalize claims the session with a compare-and-swap on the
status, so two finalize calls can never both assemble the same upload.
"""

import logging
import uuid
from typing import Dict

from botocore.exceptions import BotoCoreError, ClientError

from storeit_api.database import FileRecord, MetadataTable, UploadSession, UploadStatus
from storeit_api.errors import BadRequestError, ConflictError, NotFoundError
from storeit_api.s3.delete_objects import delete_s3_object
from storeit_api.s3.keys import chunk_object_key, file_object_key
from storeit_api.s3.read_objects import fetch_s3_object_bytes
from storeit_api.s3.write_objects import upload_s3_object
from storeit_api.services.files import validate_file_name
from storeit_api.utils.decorators import log_execution_time, retry

logger = logging.getLogger(__name__)

CHUNK_CONTENT_TYPE = "application/octet-stream"


class UploadSessionManager:
    """Initiate, feed and finalize chunked uploads for one bucket and table"""

    def __init__(self, table: MetadataTable, bucket_name: str, s3_client=None):
        self.table = table
        self.bucket_name = bucket_name
        self.s3_client = s3_client

    def _get_session(self, owner_id: str, upload_id: str) -> UploadSession:
        # Sessions live in the owner's partition, so another caller's session is simply not found
        session = self.table.get(owner_id, upload_id)
        if not isinstance(session, UploadSession):
            raise NotFoundError("Upload session not found")
        return session

    def initiate(
        self,
        owner_id: str,
        file_name: str,
        mime_type: str,
        declared_byte_size: int,
        total_chunks: int,
    ) -> Dict[str, str]:
        file_name = validate_file_name(file_name)
        if not mime_type:
            raise BadRequestError("Missing required fields: fileType")
        if total_chunks is None or total_chunks < 1:
            raise BadRequestError("totalChunks must be at least 1")
        if declared_byte_size is None or declared_byte_size < 0:
            raise BadRequestError("fileSize must not be negative")

        session = UploadSession(
            owner_id=owner_id,
            record_id=str(uuid.uuid4()),
            actual_file_id=str(uuid.uuid4()),
            file_name=file_name,
            mime_type=mime_type,
            declared_byte_size=declared_byte_size,
            total_chunks=total_chunks,
        )
        self.table.put(session)
        logger.info(
            f"Initiated upload {session.upload_id} for {file_name}: "
            f"{total_chunks} chunks, {declared_byte_size} bytes declared"
        )
        return {"uploadId": session.upload_id, "fileId": session.actual_file_id}

    def accept_chunk(
        self,
        owner_id: str,
        upload_id: str,
        chunk_index: int,
        chunk_bytes: bytes,
    ) -> Dict[str, int]:
        """Store one chunk; re-sending an index overwrites it without recounting."""
        session = self._get_session(owner_id, upload_id)
        if session.status != UploadStatus.INITIATED:
            raise ConflictError("Upload session is no longer accepting chunks")
        if chunk_index < 0 or chunk_index >= session.total_chunks:
            raise BadRequestError(
                f"chunkIndex must be between 0 and {session.total_chunks - 1}"
            )

        blob_key = chunk_object_key(owner_id, upload_id, chunk_index)
        upload_s3_object(
            self.bucket_name,
            blob_key,
            chunk_bytes,
            content_type=CHUNK_CONTENT_TYPE,
            s3_client=self.s3_client,
        )
        session = self.table.set_chunk(owner_id, upload_id, chunk_index, blob_key)
        logger.debug(f"Upload {upload_id}: chunk {chunk_index} stored ({session.uploaded_chunks}/{session.total_chunks})")
        return {"uploadedChunks": session.uploaded_chunks, "totalChunks": session.total_chunks}

    @retry(max_attempts=3, exceptions=(ClientError, BotoCoreError))
    def _fetch_chunk(self, blob_key: str) -> bytes:
        return fetch_s3_object_bytes(self.bucket_name, blob_key, s3_client=self.s3_client)

    def _delete_chunks(self, session: UploadSession) -> None:
        for blob_key in session.chunks.values():
            try:
                delete_s3_object(self.bucket_name, blob_key, s3_client=self.s3_client)
            except (ClientError, BotoCoreError) as e:
                logger.warning(
                    f"Failed to delete chunk {blob_key}: {str(e)}",
                    extra={"event": "orphaned_chunk", "blob_key": blob_key, "upload_id": session.upload_id},
                )

    def _release(self, owner_id: str, upload_id: str) -> None:
        """Hand a claimed session back so finalize can be retried."""
        try:
            self.table.transition_status(owner_id, upload_id, UploadStatus.ASSEMBLING, UploadStatus.INITIATED)
        except (ConflictError, ClientError, BotoCoreError) as e:
            logger.error(f"Could not release upload {upload_id} after a failed finalize: {str(e)}")

    @log_execution_time
    def finalize(self, owner_id: str, upload_id: str, file_id: str) -> FileRecord:
        """
        Assemble all chunks in numeric index order into the final object and
        create its File Record.

        Raises BadRequestError when `file_id` does not match the session or
        chunks are missing, and ConflictError when another finalize already
        claimed the session.
        """
        session = self._get_session(owner_id, upload_id)
        if file_id != session.actual_file_id:
            raise BadRequestError("File ID does not match upload session")
        if not session.is_complete:
            raise BadRequestError(
                f"Upload incomplete: received {session.uploaded_chunks} of {session.total_chunks} chunks"
            )

        session = self.table.transition_status(
            owner_id, upload_id, UploadStatus.INITIATED, UploadStatus.ASSEMBLING
        )

        try:
            assembled = b"".join(self._fetch_chunk(key) for key in session.ordered_chunk_keys())
            blob_key = file_object_key(owner_id, session.actual_file_id, session.file_name)
            upload_s3_object(
                self.bucket_name,
                blob_key,
                assembled,
                content_type=session.mime_type if "/" in session.mime_type else None,
                s3_client=self.s3_client,
            )
            record = FileRecord(
                owner_id=owner_id,
                record_id=session.actual_file_id,
                file_name=session.file_name,
                mime_type=session.mime_type,
                byte_size=len(assembled),
                blob_key=blob_key,
            )
            self.table.put(record)
        except Exception:
            self._release(owner_id, upload_id)
            raise

        if record.byte_size != session.declared_byte_size:
            logger.info(
                f"Upload {upload_id} assembled {record.byte_size} bytes, "
                f"{session.declared_byte_size} were declared"
            )

        self.table.update(owner_id, upload_id, {"status": UploadStatus.COMPLETE})
        self._delete_chunks(session)
        self.table.delete(owner_id, upload_id)
        logger.info(f"Finalized upload {upload_id} into file {record.file_id} ({record.byte_size} bytes)")
        return record

