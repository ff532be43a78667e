from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamshare.db.base import Base, UUIDMixin, utcnow


class FileRow(UUIDMixin, Base):
    __tablename__ = "files"

    label: Mapped[str] = mapped_column(Text, nullable=False)
    original_name: Mapped[str] = mapped_column(Text, nullable=False)
    stored_name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    file_type: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    # Soft reference to teams.team_number; files may exist before the account does.
    team_number: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    assignment: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, server_default="true")
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
        index=True,
    )

    tag_rows: Mapped[List["FileTagRow"]] = relationship(
        back_populates="file",
        cascade="all, delete-orphan",
        order_by="FileTagRow.position",
        lazy="selectin",
    )

    @property
    def tags(self) -> List[str]:
        return [row.tag for row in self.tag_rows]

    @tags.setter
    def tags(self, values: List[str]) -> None:
        self.tag_rows = [FileTagRow(position=index, tag=tag) for index, tag in enumerate(values)]


class FileTagRow(Base):
    __tablename__ = "file_tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    file_id: Mapped[str] = mapped_column(ForeignKey("files.id", ondelete="CASCADE"), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    tag: Mapped[str] = mapped_column(Text, nullable=False)

    file: Mapped[FileRow] = relationship(back_populates="tag_rows")
