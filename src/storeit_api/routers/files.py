from fastapi import APIRouter, Depends, Path
from fastapi.concurrency import run_in_threadpool

from storeit_api.dependencies import get_current_identity, get_file_service
from storeit_api.identity.tokens import Identity
from storeit_api.schemas import (
    DownloadRequest,
    GetFilesQueryParams,
    RenameRequest,
    SignedUrlRequest,
)
from storeit_api.services.files import FileService

router = APIRouter()

FILE_ID = Path(..., description="Id of a file owned by the caller")


@router.get("/files")
async def get_files(
    query_params: GetFilesQueryParams = Depends(),
    identity: Identity = Depends(get_current_identity),
    files: FileService = Depends(get_file_service),
):
    """
    List the caller's files.

    Args:
        query_params: search text, comma separated categories, sort key and limit

    Returns:
        `{documents, total}` where `total` counts the returned documents
    """
    return await run_in_threadpool(
        files.list_files,
        identity.subject,
        identity.display_name,
        query_params.search,
        query_params.type_list,
        query_params.sort,
        query_params.limit,
    )


@router.get("/files/stats")
async def get_storage_stats(
    identity: Identity = Depends(get_current_identity),
    files: FileService = Depends(get_file_service),
):
    """Bytes used per category against the storage allowance."""
    return await run_in_threadpool(files.storage_stats, identity.subject)


@router.post("/files/signed-url")
async def create_signed_url(
    body: SignedUrlRequest,
    identity: Identity = Depends(get_current_identity),
    files: FileService = Depends(get_file_service),
):
    return await run_in_threadpool(files.signed_url_for_key, identity.subject, body.key)


@router.post("/download")
async def create_download_url(
    body: DownloadRequest,
    identity: Identity = Depends(get_current_identity),
    files: FileService = Depends(get_file_service),
):
    return await run_in_threadpool(files.download_url, identity.subject, body.file_id)


@router.get("/files/{file_id}")
async def get_file(
    file_id: str = FILE_ID,
    identity: Identity = Depends(get_current_identity),
    files: FileService = Depends(get_file_service),
):
    record = await run_in_threadpool(files.get_file, identity.subject, file_id)
    return files.to_document(record, identity.display_name)


async def _rename(file_id: str, body: RenameRequest, identity: Identity, files: FileService):
    record = await run_in_threadpool(files.rename, identity.subject, file_id, body.name)
    return {"message": "File renamed successfully", "file": files.to_document(record, identity.display_name)}


@router.put("/files/{file_id}")
async def update_file(
    body: RenameRequest,
    file_id: str = FILE_ID,
    identity: Identity = Depends(get_current_identity),
    files: FileService = Depends(get_file_service),
):
    """Rename a file; the only mutable metadata is its name."""
    return await _rename(file_id, body, identity, files)


@router.put("/files/{file_id}/rename")
async def rename_file(
    body: RenameRequest,
    file_id: str = FILE_ID,
    identity: Identity = Depends(get_current_identity),
    files: FileService = Depends(get_file_service),
):
    return await _rename(file_id, body, identity, files)


@router.delete("/files/{file_id}")
async def delete_file(
    file_id: str = FILE_ID,
    identity: Identity = Depends(get_current_identity),
    files: FileService = Depends(get_file_service),
):
    await run_in_threadpool(files.delete, identity.subject, file_id)
    return {"message": "File deleted successfully"}


@router.get("/files/{file_id}/download")
async def get_download_url(
    file_id: str = FILE_ID,
    identity: Identity = Depends(get_current_identity),
    files: FileService = Depends(get_file_service),
):
    """One-hour signed URL that downloads the file as an attachment."""
    return await run_in_threadpool(files.download_url, identity.subject, file_id)


@router.get("/files/{file_id}/stream")
async def get_stream_url(
    file_id: str = FILE_ID,
    identity: Identity = Depends(get_current_identity),
    files: FileService = Depends(get_file_service),
):
    """Two-hour signed URL for playing a video in the browser."""
    return await run_in_threadpool(files.stream_url, identity.subject, file_id)
