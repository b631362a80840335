"""File categories and MIME types derived from a file's declared type and name."""

from enum import Enum


class FileCategory(str, Enum):
    """Categories used by the file browser filters and the storage stats."""
    IMAGE = "image"
    DOCUMENT = "document"
    VIDEO = "video"
    AUDIO = "audio"
    OTHER = "other"


MEDIA_CATEGORIES = (FileCategory.VIDEO, FileCategory.AUDIO)

IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "bmp", "webp", "svg"}
DOCUMENT_EXTENSIONS = {"pdf", "doc", "docx", "txt", "rtf", "odt", "pages"}
VIDEO_EXTENSIONS = {"mp4", "avi", "mov", "wmv", "flv", "webm", "mkv"}
AUDIO_EXTENSIONS = {"mp3", "wav", "flac", "aac", "ogg", "wma"}

MIME_TYPES = {
    # Images
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    # Documents
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "txt": "text/plain",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    # Videos
    "mp4": "video/mp4",
    "avi": "video/x-msvideo",
    "mov": "video/quicktime",
    "mkv": "video/x-matroska",
    "webm": "video/webm",
    # Audio
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "flac": "audio/flac",
    # Archives
    "zip": "application/zip",
    "rar": "application/x-rar-compressed",
    "tar": "application/x-tar",
    "gz": "application/gzip",
    # Other
    "json": "application/json",
    "xml": "application/xml",
    "csv": "text/csv",
}

DEFAULT_MIME_TYPE = "application/octet-stream"


def file_extension(file_name: str) -> str:
    """Lower-cased extension without the dot, or "" when the name has none."""
    if "." not in file_name:
        return ""
    return file_name.rsplit(".", 1)[-1].lower()


def mime_type_for(file_name: str) -> str:
    return MIME_TYPES.get(file_extension(file_name), DEFAULT_MIME_TYPE)


def categorize(mime_type: str, file_name: str) -> FileCategory:
    """
    Assign a browser category, checking the MIME type first and the extension second.

    Bare category names ("video", "audio", ...) are accepted as MIME types since
    older clients send those instead of a real content type.
    """
    mime = (mime_type or "").lower()
    extension = file_extension(file_name or "")

    if mime in {c.value for c in FileCategory if c is not FileCategory.OTHER}:
        return FileCategory(mime)
    if mime.startswith("image/") or extension in IMAGE_EXTENSIONS:
        return FileCategory.IMAGE
    if (mime.startswith("text/") or "document" in mime or "pdf" in mime
            or extension in DOCUMENT_EXTENSIONS):
        return FileCategory.DOCUMENT
    if mime.startswith("video/") or extension in VIDEO_EXTENSIONS:
        return FileCategory.VIDEO
    if mime.startswith("audio/") or extension in AUDIO_EXTENSIONS:
        return FileCategory.AUDIO
    return FileCategory.OTHER
