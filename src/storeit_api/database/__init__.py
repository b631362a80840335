"""
Metadata store for the Files API.

One DynamoDB table keyed by (ownerId, recordId) holds three record shapes,
told apart by the `recordType` attribute: finished files, in-progress upload
sessions and password-reset codes.
"""

from .records import (
    FileRecord,
    Record,
    RecordType,
    ResetCodeRecord,
    UploadSession,
    UploadStatus,
    parse_record,
)
from .table import MetadataTable

__all__ = [
    'FileRecord', 'UploadSession', 'ResetCodeRecord', 'Record',
    'RecordType', 'UploadStatus', 'parse_record',
    'MetadataTable',
]
