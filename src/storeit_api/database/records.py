"""
Record shapes stored in the metadata table.

Every item carries `ownerId` (partition key), `recordId` (sort key) and a
`recordType` discriminator. Attribute names are camelCase on the wire; the
models use snake_case fields with camelCase aliases.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

RESET_CODES_OWNER = "RESET_CODES"


class RecordType(str, Enum):
    """Values of the `recordType` discriminator"""
    FILE = "FILE"
    UPLOAD_SESSION = "UPLOAD_SESSION"
    RESET_CODE = "RESET_CODE"


class UploadStatus(str, Enum):
    """Upload session lifecycle: initiated -> assembling -> complete"""
    INITIATED = "initiated"
    ASSEMBLING = "assembling"
    COMPLETE = "complete"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TableRecord(BaseModel):
    """Fields shared by every item in the table."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    owner_id: str
    record_id: str

    def to_item(self) -> Dict[str, Any]:
        """Serialize to a DynamoDB item (camelCase keys, ISO timestamps)."""
        return self.model_dump(by_alias=True, mode="json")


class FileRecord(TableRecord):
    """One finished, downloadable file."""
    record_type: Literal["FILE"] = "FILE"
    file_name: str
    mime_type: str
    byte_size: int = Field(ge=0)
    blob_key: str
    uploaded_at: datetime = Field(default_factory=utc_now)
    shared_with: List[str] = Field(default_factory=list)

    @field_validator("shared_with")
    @classmethod
    def dedupe_recipients(cls, v: List[str]) -> List[str]:
        return list(dict.fromkeys(v))

    @property
    def file_id(self) -> str:
        return self.record_id


class UploadSession(TableRecord):
    """An in-progress chunked upload; `record_id` is the upload id."""
    record_type: Literal["UPLOAD_SESSION"] = "UPLOAD_SESSION"
    actual_file_id: str
    file_name: str
    mime_type: str
    declared_byte_size: int = Field(ge=0)
    total_chunks: int = Field(ge=1)
    uploaded_chunks: int = Field(default=0, ge=0)
    # chunk index (as a string, DynamoDB map keys are strings) -> chunk blob key
    chunks: Dict[str, str] = Field(default_factory=dict)
    status: UploadStatus = UploadStatus.INITIATED
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def upload_id(self) -> str:
        return self.record_id

    @property
    def is_complete(self) -> bool:
        return self.uploaded_chunks == self.total_chunks

    def ordered_chunk_keys(self) -> List[str]:
        """Chunk blob keys ordered by numeric index, so "10" sorts after "9"."""
        return [self.chunks[index] for index in sorted(self.chunks, key=int)]


class ResetCodeRecord(TableRecord):
    """A password-reset code, keyed by the requester's email."""
    owner_id: str = RESET_CODES_OWNER
    record_type: Literal["RESET_CODE"] = "RESET_CODE"
    code: str
    expires_at: int = Field(description="Expiry as epoch milliseconds")

    @property
    def email(self) -> str:
        return self.record_id

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or utc_now()
        return now.timestamp() * 1000 > self.expires_at


Record = Annotated[
    Union[FileRecord, UploadSession, ResetCodeRecord],
    Field(discriminator="record_type"),
]

_record_adapter = TypeAdapter(Record)


def parse_record(item: Dict[str, Any]) -> Union[FileRecord, UploadSession, ResetCodeRecord]:
    """Deserialize a raw table item into its record shape based on `recordType`."""
    return _record_adapter.validate_python(item)
