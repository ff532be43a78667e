from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from teamshare.core.exceptions import Forbidden, NotFound
from teamshare.schemas.file import FileDetailsUpdate, FileRecord
from teamshare.services.permissions import (
    Requester,
    VisibilitySnapshot,
    can_download,
    can_modify,
    can_toggle_visibility,
    filter_visible,
)
from teamshare.services.uploads import ContentStore
from teamshare.storage.base import RecordStore

logger = logging.getLogger(__name__)


@dataclass
class DeletionReport:
    deleted: int = 0
    blob_failures: List[str] = field(default_factory=list)


def list_files_for(
    store: RecordStore,
    requester: Requester,
    *,
    search: Optional[str] = None,
    team: Optional[int] = None,
    file_type: Optional[str] = None,
    assignment: Optional[str] = None,
) -> List[FileRecord]:
    """Candidate files for the first filter given, then the visibility filter."""
    if search:
        files = store.search_files(search)
    elif team is not None:
        files = store.list_files_by_team(team)
    elif file_type:
        files = store.list_files_by_type(file_type)
    elif assignment:
        files = store.list_files_by_assignment(assignment)
    else:
        files = store.list_files()

    if requester.is_admin:
        return files
    return filter_visible(files, requester, VisibilitySnapshot.load(store))


def get_file_or_404(store: RecordStore, file_id: str) -> FileRecord:
    file = store.get_file(file_id)
    if file is None:
        raise NotFound("File not found")
    return file


def resolve_download(store: RecordStore, content: ContentStore, requester: Requester, file_id: str) -> tuple[FileRecord, Path]:
    file = get_file_or_404(store, file_id)
    if not can_download(file, requester, store):
        raise Forbidden("Access denied")
    if not content.exists(file.stored_name):
        raise NotFound("stored_file_missing")
    return file, content.path_for(file.stored_name)


def update_details(store: RecordStore, requester: Requester, file_id: str, update: FileDetailsUpdate) -> FileRecord:
    file = get_file_or_404(store, file_id)
    if not can_modify(file, requester):
        raise Forbidden("Can only modify your own files")
    updated = store.update_file_details(file_id, update)
    if updated is None:
        raise NotFound("File not found")
    return updated


def set_visibility(store: RecordStore, requester: Requester, file_id: str, is_visible: bool) -> FileRecord:
    if not requester.is_admin:
        raise Forbidden("Admin access required")
    file = get_file_or_404(store, file_id)
    if not can_toggle_visibility(file, requester):
        raise Forbidden("Can only modify your own files")
    updated = store.update_file_visibility(file_id, is_visible)
    if updated is None:
        raise NotFound("File not found")
    return updated


def delete_files(store: RecordStore, content: ContentStore, files: Iterable[FileRecord]) -> DeletionReport:
    """Delete bytes then record for each file, independently.

    A blob that cannot be removed is logged and listed; its record is still
    deleted. An interruption leaves earlier deletions in place.
    """
    report = DeletionReport()
    for file in files:
        if not content.delete(file.stored_name):
            report.blob_failures.append(file.stored_name)
        if store.delete_file(file.id):
            report.deleted += 1
    return report


def delete_owned_file(store: RecordStore, content: ContentStore, requester: Requester, file_id: str) -> DeletionReport:
    file = get_file_or_404(store, file_id)
    if not can_modify(file, requester):
        raise Forbidden("Can only delete your own files")
    return delete_files(store, content, [file])
