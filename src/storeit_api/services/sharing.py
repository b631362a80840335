"""
Sharing and shared access.

A file is shared by listing recipient emails in its `sharedWith` attribute.
The table has no index on recipients, so every recipient-side lookup is a
full scan: the filter is pushed down to DynamoDB and re-checked here.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from boto3.dynamodb.conditions import Attr
from fastapi.concurrency import run_in_threadpool

from storeit_api.database import FileRecord, MetadataTable, RecordType
from storeit_api.errors import ForbiddenError, StoreItError
from storeit_api.identity.directory import BaseDirectory
from storeit_api.services.files import FileService

logger = logging.getLogger(__name__)

ACCESS_DENIED = "Access denied to this file"


def normalize_emails(emails: Iterable[str]) -> List[str]:
    """Strip, drop blanks and de-duplicate while keeping the caller's order."""
    cleaned = [email.strip() for email in emails if email and email.strip()]
    return list(dict.fromkeys(cleaned))


class SharingService:
    """Owner-side sharing plus recipient-side listing and access checks"""

    def __init__(self, table: MetadataTable, directory: BaseDirectory, files: FileService):
        self.table = table
        self.directory = directory
        self.files = files

    def validate_recipients(self, emails: Iterable[str]) -> Tuple[List[str], List[str]]:
        """
        Split emails into (valid, invalid). An email is valid only when exactly
        one account carries it; directory errors count as invalid.
        """
        valid, invalid = [], []
        for email in normalize_emails(emails):
            try:
                matches = self.directory.find_accounts_by_email(email)
            except StoreItError as e:
                logger.warning(f"Recipient lookup failed for {email}: {e}")
                matches = []
            if len(matches) == 1:
                valid.append(email)
            else:
                invalid.append(email)
        return valid, invalid

    def share(self, owner_id: str, file_id: str, emails: Iterable[str]) -> FileRecord:
        """Replace the file's recipient list. One unknown recipient rejects the whole request."""
        record = self.files.get_file(owner_id, file_id)
        valid, invalid = self.validate_recipients(emails)
        if invalid:
            raise ForbiddenError(
                f"Some users are not registered: {', '.join(invalid)}",
                validUsers=valid,
                invalidUsers=invalid,
            )

        updated = self.table.update(owner_id, record.file_id, {"shared_with": valid})
        logger.info(f"Shared {file_id} with {len(valid)} recipient(s)")
        return updated

    def _records_shared_with(self, email: str, file_id: Optional[str] = None) -> List[FileRecord]:
        condition = Attr("recordType").eq(RecordType.FILE.value) & Attr("sharedWith").contains(email)
        if file_id is not None:
            condition = condition & Attr("recordId").eq(file_id)

        def is_shared(record) -> bool:
            return (
                isinstance(record, FileRecord)
                and email in record.shared_with
                and (file_id is None or record.file_id == file_id)
            )

        return self.table.scan_all(predicate=is_shared, filter_expression=condition)

    def owner_display_name(self, owner_id: str) -> str:
        """Owner's name, falling back to a lookup by email and then the raw id."""
        try:
            account = self.directory.get_account(owner_id)
            return account.display_name or account.email or owner_id
        except StoreItError:
            pass
        try:
            accounts = self.directory.find_accounts_by_email(owner_id)
        except StoreItError as e:
            logger.debug(f"Owner lookup by email failed for {owner_id}: {e}")
            return owner_id
        if accounts:
            return accounts[0].display_name or accounts[0].email or owner_id
        return owner_id

    def shared_document(self, record: FileRecord, owner_name: str) -> Dict[str, Any]:
        """A recipient-side document: tagged as shared, with the owner id and a link."""
        document = self.files.to_document(record, owner_name, isShared=True, sharedBy=record.owner_id)
        document["downloadUrl"] = document["url"]
        return document

    async def list_shared_with_me(self, email: str) -> Dict[str, Any]:
        """Every file shared with `email`, each tagged with its owner's display name."""
        records = await run_in_threadpool(self._records_shared_with, email)
        owner_ids = sorted({record.owner_id for record in records})
        names = await asyncio.gather(
            *(run_in_threadpool(self.owner_display_name, owner_id) for owner_id in owner_ids)
        )
        owner_names = dict(zip(owner_ids, names))

        documents = [self.shared_document(record, owner_names[record.owner_id]) for record in records]
        return {"documents": documents, "total": len(documents)}

    def resolve_shared_access(self, email: str, file_id: str) -> FileRecord:
        """The shared file, or ForbiddenError whether it is missing or simply not shared."""
        records = self._records_shared_with(email, file_id)
        if not records:
            raise ForbiddenError(ACCESS_DENIED)
        return records[0]

    def shared_download_url(self, email: str, file_id: str) -> Dict[str, Any]:
        record = self.resolve_shared_access(email, file_id)
        return self.files.attachment_url(record)
