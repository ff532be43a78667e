"""Record store interface shared by the SQL and in-memory backends."""

from __future__ import annotations

import abc
from typing import Iterable, List, Optional

from teamshare.schemas.assignment import AssignmentSetting
from teamshare.schemas.file import FileCreate, FileDetailsUpdate, FileRecord
from teamshare.schemas.team import TeamAccount, TeamCreate


class RecordStore(abc.ABC):
    """Durable collections of team accounts, file records and assignment settings.

    Every method returns detached pydantic models; callers never see backend
    rows. Each call is independent: there are no multi-operation transactions.
    """

    kind: str = "abstract"

    # -- team accounts -----------------------------------------------------

    @abc.abstractmethod
    def get_team(self, team_id: str) -> Optional[TeamAccount]: ...

    @abc.abstractmethod
    def get_team_by_number(self, team_number: int) -> Optional[TeamAccount]: ...

    @abc.abstractmethod
    def get_team_by_name(self, team_name: str) -> Optional[TeamAccount]:
        """Case-insensitive lookup."""

    @abc.abstractmethod
    def create_team(self, data: TeamCreate) -> TeamAccount: ...

    @abc.abstractmethod
    def update_team_login(self, team_number: int) -> None: ...

    @abc.abstractmethod
    def update_team_password(self, team_number: int, password_hash: str) -> None: ...

    @abc.abstractmethod
    def is_team_name_available(self, team_name: str, exclude_team_number: Optional[int] = None) -> bool: ...

    @abc.abstractmethod
    def list_teams(self) -> List[TeamAccount]:
        """All accounts ordered by team number."""

    @abc.abstractmethod
    def delete_team(self, team_number: int) -> bool: ...

    # -- file records ------------------------------------------------------

    @abc.abstractmethod
    def create_file(self, data: FileCreate) -> FileRecord: ...

    @abc.abstractmethod
    def get_file(self, file_id: str) -> Optional[FileRecord]: ...

    @abc.abstractmethod
    def list_files(self) -> List[FileRecord]:
        """All files, newest upload first. Other listings use the same order."""

    @abc.abstractmethod
    def list_files_by_team(self, team_number: int) -> List[FileRecord]: ...

    @abc.abstractmethod
    def list_files_by_type(self, file_type: str) -> List[FileRecord]:
        """Files whose extension contains ``file_type``, case-insensitively."""

    @abc.abstractmethod
    def list_files_by_assignment(self, assignment: str) -> List[FileRecord]: ...

    @abc.abstractmethod
    def search_files(self, query: str) -> List[FileRecord]:
        """Case-insensitive substring match on label, original name, description or any tag."""

    @abc.abstractmethod
    def delete_file(self, file_id: str) -> bool: ...

    @abc.abstractmethod
    def update_file_visibility(self, file_id: str, is_visible: bool) -> Optional[FileRecord]: ...

    @abc.abstractmethod
    def update_file_details(self, file_id: str, update: FileDetailsUpdate) -> Optional[FileRecord]: ...

    # -- assignment settings -----------------------------------------------

    @abc.abstractmethod
    def list_assignment_settings(self) -> List[AssignmentSetting]:
        """All settings ordered by assignment name."""

    @abc.abstractmethod
    def get_assignment_setting(self, assignment: str) -> Optional[AssignmentSetting]: ...

    @abc.abstractmethod
    def upsert_assignment_setting(self, assignment: str, is_open_view: bool) -> AssignmentSetting: ...

    @abc.abstractmethod
    def has_assignment_settings(self) -> bool: ...

    def seed_default_assignments(self, assignments: Iterable[str]) -> int:
        """Create closed settings for ``assignments`` unless any setting exists.

        Returns the number of rows created.
        """
        if self.has_assignment_settings():
            return 0
        created = 0
        for assignment in assignments:
            self.upsert_assignment_setting(assignment, False)
            created += 1
        return created

    def ping(self) -> None:
        """Raise if the backend cannot serve requests."""

    def close(self) -> None:
        """Release backend resources."""
