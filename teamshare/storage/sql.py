"""Relational record store backed by SQLAlchemy."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, List, Optional

from sqlalchemy import delete, func, or_, select, text, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from teamshare.core.exceptions import Conflict
from teamshare.db.base import Base, utcnow
from teamshare.db.session import build_session_factory
from teamshare.models import AssignmentSettingRow, FileRow, FileTagRow, TeamRow
from teamshare.schemas.assignment import AssignmentSetting
from teamshare.schemas.file import FileCreate, FileDetailsUpdate, FileRecord
from teamshare.schemas.team import TeamAccount, TeamCreate
from teamshare.storage.base import RecordStore


def _contains(column, needle: str):
    return func.lower(column).contains(needle.lower(), autoescape=True)


class SqlRecordStore(RecordStore):
    """Each public method runs in its own short-lived session and commits on success."""

    kind = "sql"

    def __init__(self, engine: Engine, session_factory: Optional[sessionmaker[Session]] = None) -> None:
        self.engine = engine
        self._session_factory = session_factory or build_session_factory(engine)

    def create_schema(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def ping(self) -> None:
        with self.engine.connect() as connection:
            connection.execute(text("SELECT 1"))

    def close(self) -> None:
        self.engine.dispose()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # -- team accounts -----------------------------------------------------

    def _team_by_number(self, db: Session, team_number: int) -> Optional[TeamRow]:
        return db.scalars(select(TeamRow).where(TeamRow.team_number == team_number).limit(1)).first()

    def get_team(self, team_id: str) -> Optional[TeamAccount]:
        with self._session() as db:
            row = db.get(TeamRow, team_id)
            return TeamAccount.model_validate(row) if row else None

    def get_team_by_number(self, team_number: int) -> Optional[TeamAccount]:
        with self._session() as db:
            row = self._team_by_number(db, team_number)
            return TeamAccount.model_validate(row) if row else None

    def get_team_by_name(self, team_name: str) -> Optional[TeamAccount]:
        with self._session() as db:
            row = db.scalars(
                select(TeamRow).where(func.lower(TeamRow.team_name) == team_name.lower()).limit(1)
            ).first()
            return TeamAccount.model_validate(row) if row else None

    def create_team(self, data: TeamCreate) -> TeamAccount:
        row = TeamRow(
            team_number=data.team_number,
            team_name=data.team_name,
            password_hash=data.password_hash,
            is_active=data.is_active,
            created_at=utcnow(),
        )
        try:
            with self._session() as db:
                db.add(row)
                db.flush()
                return TeamAccount.model_validate(row)
        except IntegrityError as exc:
            if self.get_team_by_number(data.team_number) is not None:
                raise Conflict(f"Team {data.team_number} already exists") from exc
            raise Conflict("Team name already taken") from exc

    def update_team_login(self, team_number: int) -> None:
        with self._session() as db:
            db.execute(update(TeamRow).where(TeamRow.team_number == team_number).values(last_login=utcnow()))

    def update_team_password(self, team_number: int, password_hash: str) -> None:
        with self._session() as db:
            db.execute(
                update(TeamRow).where(TeamRow.team_number == team_number).values(password_hash=password_hash)
            )

    def is_team_name_available(self, team_name: str, exclude_team_number: Optional[int] = None) -> bool:
        with self._session() as db:
            query = select(TeamRow.id).where(func.lower(TeamRow.team_name) == team_name.lower())
            if exclude_team_number is not None:
                query = query.where(TeamRow.team_number != exclude_team_number)
            return db.scalars(query.limit(1)).first() is None

    def list_teams(self) -> List[TeamAccount]:
        with self._session() as db:
            rows = db.scalars(select(TeamRow).order_by(TeamRow.team_number.asc())).all()
            return [TeamAccount.model_validate(row) for row in rows]

    def delete_team(self, team_number: int) -> bool:
        with self._session() as db:
            result = db.execute(delete(TeamRow).where(TeamRow.team_number == team_number))
            return result.rowcount > 0

    # -- file records ------------------------------------------------------

    def _select_files(self, *criteria) -> List[FileRecord]:
        with self._session() as db:
            query = select(FileRow).where(*criteria).order_by(FileRow.uploaded_at.desc())
            return [FileRecord.model_validate(row) for row in db.scalars(query).all()]

    def create_file(self, data: FileCreate) -> FileRecord:
        values = data.model_dump(exclude={"tags"})
        row = FileRow(**values, uploaded_at=utcnow())
        row.tags = data.tags
        with self._session() as db:
            db.add(row)
            db.flush()
            return FileRecord.model_validate(row)

    def get_file(self, file_id: str) -> Optional[FileRecord]:
        with self._session() as db:
            row = db.get(FileRow, file_id)
            return FileRecord.model_validate(row) if row else None

    def list_files(self) -> List[FileRecord]:
        return self._select_files()

    def list_files_by_team(self, team_number: int) -> List[FileRecord]:
        return self._select_files(FileRow.team_number == team_number)

    def list_files_by_type(self, file_type: str) -> List[FileRecord]:
        return self._select_files(_contains(FileRow.file_type, file_type))

    def list_files_by_assignment(self, assignment: str) -> List[FileRecord]:
        return self._select_files(FileRow.assignment == assignment)

    def search_files(self, query: str) -> List[FileRecord]:
        return self._select_files(
            or_(
                _contains(FileRow.label, query),
                _contains(FileRow.original_name, query),
                _contains(FileRow.description, query),
                FileRow.tag_rows.any(_contains(FileTagRow.tag, query)),
            )
        )

    def delete_file(self, file_id: str) -> bool:
        with self._session() as db:
            row = db.get(FileRow, file_id)
            if row is None:
                return False
            db.delete(row)
            return True

    def update_file_visibility(self, file_id: str, is_visible: bool) -> Optional[FileRecord]:
        with self._session() as db:
            row = db.get(FileRow, file_id)
            if row is None:
                return None
            if row.is_visible != is_visible:
                row.is_visible = is_visible
                db.flush()
            return FileRecord.model_validate(row)

    def update_file_details(self, file_id: str, update: FileDetailsUpdate) -> Optional[FileRecord]:
        with self._session() as db:
            row = db.get(FileRow, file_id)
            if row is None:
                return None
            for field, value in update.changes().items():
                setattr(row, field, value)
            db.flush()
            return FileRecord.model_validate(row)

    # -- assignment settings -----------------------------------------------

    def list_assignment_settings(self) -> List[AssignmentSetting]:
        with self._session() as db:
            rows = db.scalars(select(AssignmentSettingRow).order_by(AssignmentSettingRow.assignment.asc())).all()
            return [AssignmentSetting.model_validate(row) for row in rows]

    def get_assignment_setting(self, assignment: str) -> Optional[AssignmentSetting]:
        with self._session() as db:
            row = db.scalars(
                select(AssignmentSettingRow).where(AssignmentSettingRow.assignment == assignment).limit(1)
            ).first()
            return AssignmentSetting.model_validate(row) if row else None

    def upsert_assignment_setting(self, assignment: str, is_open_view: bool) -> AssignmentSetting:
        with self._session() as db:
            row = db.scalars(
                select(AssignmentSettingRow).where(AssignmentSettingRow.assignment == assignment).limit(1)
            ).first()
            if row is None:
                row = AssignmentSettingRow(assignment=assignment)
                db.add(row)
            row.is_open_view = is_open_view
            row.updated_at = utcnow()
            db.flush()
            return AssignmentSetting.model_validate(row)

    def has_assignment_settings(self) -> bool:
        with self._session() as db:
            return db.scalars(select(AssignmentSettingRow.id).limit(1)).first() is not None
