####################################
# --- Request/response schemas --- #
####################################

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """JSON bodies use camelCase; Python code uses snake_case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


#################
# --- Auth --- #
#################

class SignupRequest(CamelModel):
    email: str
    password: str
    username: str


class SigninRequest(CamelModel):
    email: str
    password: str


class ConfirmRequest(CamelModel):
    """`type` is `signup` or `password-reset`."""
    email: str
    otp: str
    type: str
    password: Optional[str] = None


class VerifyRequest(CamelModel):
    email: str
    otp: str


class EmailRequest(CamelModel):
    """Body for forgot-password and resend-otp."""
    email: str


class ResetPasswordRequest(CamelModel):
    email: str
    reset_code: str
    new_password: str


class VerifyResetOtpRequest(CamelModel):
    email: str
    reset_code: str


class RefreshRequest(CamelModel):
    refresh_token: str
    username: Optional[str] = None


####################
# --- Uploads --- #
####################

class UploadRequest(CamelModel):
    """Single-shot upload of a base64 encoded file."""
    file_data: str
    file_name: str
    file_type: Optional[str] = None
    file_size: Optional[int] = None


class InitUploadRequest(CamelModel):
    file_name: str
    file_type: str
    file_size: int = Field(ge=0)
    total_chunks: int = Field(ge=1)


class InitUploadResponse(CamelModel):
    upload_id: str
    file_id: str
    message: str = "Upload initialized"


class ChunkUploadRequest(CamelModel):
    upload_id: str
    file_id: str
    chunk_index: int = Field(ge=0)
    chunk_data: str = Field(description="Base64 encoded chunk bytes")


class ChunkUploadResponse(CamelModel):
    uploaded_chunks: int
    total_chunks: int
    message: str = "Chunk uploaded successfully"


class CompleteUploadRequest(CamelModel):
    upload_id: str
    file_id: str


class UploadedFileResponse(CamelModel):
    """Returned by single-shot upload and chunked finalize."""
    file_id: str
    file_name: str
    byte_size: int
    message: str = "File uploaded successfully"


##################
# --- Files --- #
##################

class GetFilesQueryParams(BaseModel):
    """Query parameters for `GET /files`."""
    search: Optional[str] = None
    types: Optional[str] = Field(default=None, description="Comma separated categories")
    sort: Optional[str] = Field(default=None, description="e.g. $createdAt-desc, name-asc, size-desc")
    limit: Optional[int] = None

    @property
    def type_list(self) -> List[str]:
        return [t for t in (self.types or "").split(",") if t.strip()]


class RenameRequest(CamelModel):
    name: str


class ShareRequest(CamelModel):
    emails: List[str]

    @field_validator("emails", mode="before")
    @classmethod
    def accept_single_email(cls, v):
        if isinstance(v, str):
            return [v]
        return v


class DownloadRequest(CamelModel):
    file_id: str


class SignedUrlRequest(CamelModel):
    key: str
