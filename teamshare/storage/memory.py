"""Volatile record store used when no database is reachable."""

from __future__ import annotations

import threading
from typing import Callable, Dict, List, Optional

from teamshare.core.exceptions import Conflict
from teamshare.db.base import new_id, utcnow
from teamshare.schemas.assignment import AssignmentSetting
from teamshare.schemas.file import FileCreate, FileDetailsUpdate, FileRecord
from teamshare.schemas.team import TeamAccount, TeamCreate
from teamshare.storage.base import RecordStore


def _newest_first(files: List[FileRecord]) -> List[FileRecord]:
    return sorted(files, key=lambda record: record.uploaded_at, reverse=True)


class MemoryRecordStore(RecordStore):
    """Keeps each collection in a dict guarded by its own lock.

    Records handed out are copies, so callers cannot mutate stored state.
    """

    kind = "memory"

    def __init__(self) -> None:
        self._teams: Dict[str, TeamAccount] = {}
        self._files: Dict[str, FileRecord] = {}
        self._settings: Dict[str, AssignmentSetting] = {}
        self._teams_lock = threading.RLock()
        self._files_lock = threading.RLock()
        self._settings_lock = threading.RLock()

    # -- team accounts -----------------------------------------------------

    def _find_team(self, predicate: Callable[[TeamAccount], bool]) -> Optional[TeamAccount]:
        for team in self._teams.values():
            if predicate(team):
                return team
        return None

    def get_team(self, team_id: str) -> Optional[TeamAccount]:
        with self._teams_lock:
            team = self._teams.get(team_id)
            return team.model_copy() if team else None

    def get_team_by_number(self, team_number: int) -> Optional[TeamAccount]:
        with self._teams_lock:
            team = self._find_team(lambda t: t.team_number == team_number)
            return team.model_copy() if team else None

    def get_team_by_name(self, team_name: str) -> Optional[TeamAccount]:
        wanted = team_name.lower()
        with self._teams_lock:
            team = self._find_team(lambda t: (t.team_name or "").lower() == wanted)
            return team.model_copy() if team else None

    def create_team(self, data: TeamCreate) -> TeamAccount:
        with self._teams_lock:
            if self._find_team(lambda t: t.team_number == data.team_number):
                raise Conflict(f"Team {data.team_number} already exists")
            wanted = (data.team_name or "").lower()
            if wanted and self._find_team(lambda t: (t.team_name or "").lower() == wanted):
                raise Conflict("Team name already taken")
            team = TeamAccount(
                id=new_id(),
                team_number=data.team_number,
                team_name=data.team_name,
                password_hash=data.password_hash,
                is_active=data.is_active,
                created_at=utcnow(),
            )
            self._teams[team.id] = team
            return team.model_copy()

    def update_team_login(self, team_number: int) -> None:
        with self._teams_lock:
            team = self._find_team(lambda t: t.team_number == team_number)
            if team:
                self._teams[team.id] = team.model_copy(update={"last_login": utcnow()})

    def update_team_password(self, team_number: int, password_hash: str) -> None:
        with self._teams_lock:
            team = self._find_team(lambda t: t.team_number == team_number)
            if team:
                self._teams[team.id] = team.model_copy(update={"password_hash": password_hash})

    def is_team_name_available(self, team_name: str, exclude_team_number: Optional[int] = None) -> bool:
        wanted = team_name.lower()
        with self._teams_lock:
            clash = self._find_team(
                lambda t: (t.team_name or "").lower() == wanted and t.team_number != exclude_team_number
            )
            return clash is None

    def list_teams(self) -> List[TeamAccount]:
        with self._teams_lock:
            teams = sorted(self._teams.values(), key=lambda t: t.team_number)
            return [team.model_copy() for team in teams]

    def delete_team(self, team_number: int) -> bool:
        with self._teams_lock:
            team = self._find_team(lambda t: t.team_number == team_number)
            if team is None:
                return False
            del self._teams[team.id]
            return True

    # -- file records ------------------------------------------------------

    def _select_files(self, predicate: Callable[[FileRecord], bool]) -> List[FileRecord]:
        with self._files_lock:
            matches = [record.model_copy(deep=True) for record in self._files.values() if predicate(record)]
        return _newest_first(matches)

    def create_file(self, data: FileCreate) -> FileRecord:
        record = FileRecord(id=new_id(), uploaded_at=utcnow(), **data.model_dump())
        with self._files_lock:
            self._files[record.id] = record
        return record.model_copy(deep=True)

    def get_file(self, file_id: str) -> Optional[FileRecord]:
        with self._files_lock:
            record = self._files.get(file_id)
            return record.model_copy(deep=True) if record else None

    def list_files(self) -> List[FileRecord]:
        return self._select_files(lambda record: True)

    def list_files_by_team(self, team_number: int) -> List[FileRecord]:
        return self._select_files(lambda record: record.team_number == team_number)

    def list_files_by_type(self, file_type: str) -> List[FileRecord]:
        wanted = file_type.lower()
        return self._select_files(lambda record: wanted in record.file_type.lower())

    def list_files_by_assignment(self, assignment: str) -> List[FileRecord]:
        return self._select_files(lambda record: record.assignment == assignment)

    def search_files(self, query: str) -> List[FileRecord]:
        needle = query.lower()

        def matches(record: FileRecord) -> bool:
            return (
                needle in record.label.lower()
                or needle in record.original_name.lower()
                or needle in (record.description or "").lower()
                or any(needle in tag.lower() for tag in record.tags)
            )

        return self._select_files(matches)

    def delete_file(self, file_id: str) -> bool:
        with self._files_lock:
            return self._files.pop(file_id, None) is not None

    def update_file_visibility(self, file_id: str, is_visible: bool) -> Optional[FileRecord]:
        with self._files_lock:
            record = self._files.get(file_id)
            if record is None:
                return None
            if record.is_visible != is_visible:
                record = record.model_copy(update={"is_visible": is_visible})
                self._files[file_id] = record
            return record.model_copy(deep=True)

    def update_file_details(self, file_id: str, update: FileDetailsUpdate) -> Optional[FileRecord]:
        with self._files_lock:
            record = self._files.get(file_id)
            if record is None:
                return None
            changes = update.changes()
            if changes:
                record = record.model_copy(update=changes)
                self._files[file_id] = record
            return record.model_copy(deep=True)

    # -- assignment settings -----------------------------------------------

    def list_assignment_settings(self) -> List[AssignmentSetting]:
        with self._settings_lock:
            settings = sorted(self._settings.values(), key=lambda s: s.assignment)
            return [setting.model_copy() for setting in settings]

    def get_assignment_setting(self, assignment: str) -> Optional[AssignmentSetting]:
        with self._settings_lock:
            setting = self._settings.get(assignment)
            return setting.model_copy() if setting else None

    def upsert_assignment_setting(self, assignment: str, is_open_view: bool) -> AssignmentSetting:
        with self._settings_lock:
            existing = self._settings.get(assignment)
            if existing is None:
                setting = AssignmentSetting(
                    id=new_id(),
                    assignment=assignment,
                    is_open_view=is_open_view,
                    updated_at=utcnow(),
                )
            else:
                setting = existing.model_copy(update={"is_open_view": is_open_view, "updated_at": utcnow()})
            self._settings[assignment] = setting
            return setting.model_copy()

    def has_assignment_settings(self) -> bool:
        with self._settings_lock:
            return bool(self._settings)

    def seed_default_assignments(self, assignments) -> int:
        # Held across the check and the inserts so concurrent seeding cannot double up.
        with self._settings_lock:
            return super().seed_default_assignments(assignments)
