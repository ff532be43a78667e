from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from teamshare.db.base import Base, UUIDMixin, utcnow


class AssignmentSettingRow(UUIDMixin, Base):
    __tablename__ = "assignment_settings"

    assignment: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    # Stored as the text "true"/"false".
    open_view_text: Mapped[str] = mapped_column(
        "is_open_view", String(5), nullable=False, default="false", server_default="false"
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    @property
    def is_open_view(self) -> bool:
        return self.open_view_text == "true"

    @is_open_view.setter
    def is_open_view(self, value: bool) -> None:
        self.open_view_text = "true" if value else "false"
