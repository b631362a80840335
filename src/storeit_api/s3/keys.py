"""Object key layout for the files bucket."""


def file_object_key(owner_id: str, file_id: str, file_name: str) -> str:
    return f"{owner_id}/{file_id}/{file_name}"


def chunk_object_key(owner_id: str, upload_id: str, chunk_index: int) -> str:
    return f"{owner_id}/{upload_id}/chunk_{chunk_index}"
