"""Import all models so SQLAlchemy metadata is fully registered."""

from teamshare.db.base import Base

from teamshare.models.assignment_setting import AssignmentSettingRow
from teamshare.models.file import FileRow, FileTagRow
from teamshare.models.team import TeamRow

__all__ = [
    "Base",
    "AssignmentSettingRow",
    "FileRow",
    "FileTagRow",
    "TeamRow",
]
