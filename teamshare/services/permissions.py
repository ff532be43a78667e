"""Who may see, download and change which files.

Listing and download share one visibility rule, checked in this order:

1. admins see everything;
2. instructor files (team 0) follow their own ``is_visible`` flag, whatever
   the assignment's open-view state;
3. other files are visible to their owning team, or to everyone while their
   assignment is open-view.

Changing a file is about ownership, not visibility.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Iterable, List

from teamshare.schemas.file import FileRecord
from teamshare.storage.base import RecordStore

ADMIN_TEAM_NUMBER = 0


@dataclass(frozen=True)
class Requester:
    team_number: int
    is_admin: bool = False

    @property
    def owner_team_number(self) -> int:
        """Team number stamped on files this requester uploads."""
        return ADMIN_TEAM_NUMBER if self.is_admin else self.team_number


@dataclass(frozen=True)
class VisibilitySnapshot:
    """Open-view assignments read once per request."""

    open_assignments: FrozenSet[str] = frozenset()

    @classmethod
    def load(cls, store: RecordStore) -> "VisibilitySnapshot":
        return cls(
            frozenset(setting.assignment for setting in store.list_assignment_settings() if setting.is_open_view)
        )

    def is_open(self, assignment: str) -> bool:
        return assignment in self.open_assignments


def is_visible(file: FileRecord, requester: Requester, snapshot: VisibilitySnapshot) -> bool:
    if requester.is_admin:
        return True
    if file.team_number == ADMIN_TEAM_NUMBER:
        return file.is_visible
    return file.team_number == requester.team_number or snapshot.is_open(file.assignment)


def filter_visible(
    files: Iterable[FileRecord],
    requester: Requester,
    snapshot: VisibilitySnapshot,
) -> List[FileRecord]:
    if requester.is_admin:
        return list(files)
    return [file for file in files if is_visible(file, requester, snapshot)]


def can_download(file: FileRecord, requester: Requester, store: RecordStore) -> bool:
    """Download-time check; only the file's own assignment setting is read."""
    if requester.is_admin:
        return True
    if file.team_number == ADMIN_TEAM_NUMBER:
        return file.is_visible
    if file.team_number == requester.team_number:
        return True
    setting = store.get_assignment_setting(file.assignment)
    return bool(setting and setting.is_open_view)


def can_modify(file: FileRecord, requester: Requester) -> bool:
    """Edit or delete through the normal session path: owners only.

    Admin sessions own team 0 content; deleting other teams' files needs the
    elevated admin route.
    """
    return file.team_number == requester.owner_team_number


def can_toggle_visibility(file: FileRecord, requester: Requester) -> bool:
    return requester.is_admin and file.team_number == ADMIN_TEAM_NUMBER
