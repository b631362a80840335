from fastapi import APIRouter, Depends, status
from fastapi.concurrency import run_in_threadpool

from storeit_api.dependencies import get_current_identity, get_file_service, get_upload_manager
from storeit_api.identity.tokens import Identity
from storeit_api.schemas import (
    ChunkUploadRequest,
    ChunkUploadResponse,
    CompleteUploadRequest,
    InitUploadRequest,
    InitUploadResponse,
    UploadedFileResponse,
    UploadRequest,
)
from storeit_api.services.files import FileService, decode_file_data
from storeit_api.services.uploads import UploadSessionManager

router = APIRouter(prefix="/upload")


@router.post("", status_code=status.HTTP_201_CREATED, response_model=UploadedFileResponse)
async def upload_file(
    body: UploadRequest,
    identity: Identity = Depends(get_current_identity),
    files: FileService = Depends(get_file_service),
):
    """Upload a whole file in one request as base64."""
    record = await run_in_threadpool(
        files.upload, identity.subject, body.file_name, body.file_data, body.file_type
    )
    return UploadedFileResponse(file_id=record.file_id, file_name=record.file_name, byte_size=record.byte_size)


@router.post("/init", response_model=InitUploadResponse)
async def init_upload(
    body: InitUploadRequest,
    identity: Identity = Depends(get_current_identity),
    uploads: UploadSessionManager = Depends(get_upload_manager),
):
    """Open a chunked upload session."""
    ids = await run_in_threadpool(
        uploads.initiate,
        identity.subject,
        body.file_name,
        body.file_type,
        body.file_size,
        body.total_chunks,
    )
    return InitUploadResponse(upload_id=ids["uploadId"], file_id=ids["fileId"])


@router.post("/chunk", response_model=ChunkUploadResponse)
async def upload_chunk(
    body: ChunkUploadRequest,
    identity: Identity = Depends(get_current_identity),
    uploads: UploadSessionManager = Depends(get_upload_manager),
):
    """Store one base64 encoded chunk. Re-sending an index replaces it."""
    chunk_bytes = decode_file_data(body.chunk_data)
    progress = await run_in_threadpool(
        uploads.accept_chunk, identity.subject, body.upload_id, body.chunk_index, chunk_bytes
    )
    return ChunkUploadResponse(
        uploaded_chunks=progress["uploadedChunks"],
        total_chunks=progress["totalChunks"],
    )


@router.post("/complete", response_model=UploadedFileResponse)
async def complete_upload(
    body: CompleteUploadRequest,
    identity: Identity = Depends(get_current_identity),
    uploads: UploadSessionManager = Depends(get_upload_manager),
):
    """Assemble the chunks into the final file."""
    record = await run_in_threadpool(uploads.finalize, identity.subject, body.upload_id, body.file_id)
    return UploadedFileResponse(
        file_id=record.file_id,
        file_name=record.file_name,
        byte_size=record.byte_size,
        message="Upload completed successfully",
    )
