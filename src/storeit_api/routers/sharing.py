from fastapi import APIRouter, Depends, Path
from fastapi.concurrency import run_in_threadpool

from storeit_api.dependencies import get_current_identity, get_sharing_service
from storeit_api.identity.tokens import Identity
from storeit_api.schemas import ShareRequest
from storeit_api.services.sharing import SharingService

router = APIRouter()


@router.get("/files/shared-with-me")
async def get_shared_with_me(
    identity: Identity = Depends(get_current_identity),
    sharing: SharingService = Depends(get_sharing_service),
):
    """Files other users have shared with the caller's email."""
    return await sharing.list_shared_with_me(identity.email)


@router.put("/files/{file_id}/share")
async def share_file(
    body: ShareRequest,
    file_id: str = Path(..., description="Id of a file owned by the caller"),
    identity: Identity = Depends(get_current_identity),
    sharing: SharingService = Depends(get_sharing_service),
):
    """
    Replace the file's recipient list. Every email must belong to exactly one
    registered account, otherwise nothing changes and the response lists
    `validUsers` and `invalidUsers`. An empty list revokes all shares.
    """
    record = await run_in_threadpool(sharing.share, identity.subject, file_id, body.emails)
    return {
        "message": "File shared successfully",
        "sharedWith": record.shared_with,
        "file": sharing.files.to_document(record, identity.display_name),
    }


@router.get("/files/{file_id}/access")
async def check_shared_access(
    file_id: str,
    identity: Identity = Depends(get_current_identity),
    sharing: SharingService = Depends(get_sharing_service),
):
    record = await run_in_threadpool(sharing.resolve_shared_access, identity.email, file_id)
    owner_name = await run_in_threadpool(sharing.owner_display_name, record.owner_id)
    return {
        "hasAccess": True,
        "file": sharing.shared_document(record, owner_name),
    }


@router.post("/files/{file_id}/download-shared")
async def download_shared_file(
    file_id: str,
    identity: Identity = Depends(get_current_identity),
    sharing: SharingService = Depends(get_sharing_service),
):
    """One-hour signed URL for a file shared with the caller."""
    return await run_in_threadpool(sharing.shared_download_url, identity.email, file_id)
