"""Destructive instructor operations. Callers must have passed the step-up check."""

from __future__ import annotations

import logging

from teamshare.core.exceptions import NotFound, ValidationFailed
from teamshare.core.logging import log_security_event
from teamshare.schemas.admin import RESET_CONFIRMATION, ResetServerResult
from teamshare.schemas.team import TeamDeleteResult
from teamshare.services.files import DeletionReport, delete_files, get_file_or_404
from teamshare.services.permissions import ADMIN_TEAM_NUMBER
from teamshare.services.uploads import ContentStore
from teamshare.storage.base import RecordStore

logger = logging.getLogger(__name__)


def delete_any_file(store: RecordStore, content: ContentStore, file_id: str) -> DeletionReport:
    file = get_file_or_404(store, file_id)
    report = delete_files(store, content, [file])
    if not report.deleted:
        raise NotFound("File not found")
    log_security_event("admin_file_deleted", extra={"file_id": file_id, "team_number": file.team_number})
    return report


def delete_all_files(store: RecordStore, content: ContentStore) -> DeletionReport:
    report = delete_files(store, content, store.list_files())
    log_security_event("admin_all_files_deleted", extra={"deleted": report.deleted})
    return report


def delete_team_files(store: RecordStore, content: ContentStore, team_number: int) -> DeletionReport:
    report = delete_files(store, content, store.list_files_by_team(team_number))
    log_security_event(
        "admin_team_files_deleted",
        extra={"team_number": team_number, "deleted": report.deleted},
    )
    return report


def delete_team(store: RecordStore, content: ContentStore, team_number: int) -> TeamDeleteResult:
    if team_number == ADMIN_TEAM_NUMBER:
        raise ValidationFailed("Invalid team number", errors=["The instructor account cannot be deleted"])

    account = store.get_team_by_number(team_number)
    team_files = store.list_files_by_team(team_number)
    if account is None and not team_files:
        raise NotFound(f"Team {team_number} not found")

    report = delete_files(store, content, team_files)
    store.delete_team(team_number)
    log_security_event("admin_team_deleted", extra={"team_number": team_number, "files_deleted": report.deleted})
    return TeamDeleteResult(
        message=f"Team {team_number} deleted successfully",
        files_deleted=report.deleted,
        blob_failures=report.blob_failures,
    )


def reset_server(store: RecordStore, content: ContentStore, confirm_text: str) -> ResetServerResult:
    """Start a new term: drop every file and team account, close every assignment.

    Assignment settings are kept and set to closed. Team 0 is never removed.
    """
    if confirm_text != RESET_CONFIRMATION:
        raise ValidationFailed("Confirmation text incorrect", errors=[f'Type "{RESET_CONFIRMATION}" to confirm'])

    report = delete_files(store, content, store.list_files())

    users_deleted = 0
    for team in store.list_teams():
        if team.team_number == ADMIN_TEAM_NUMBER:
            continue
        if store.delete_team(team.team_number):
            users_deleted += 1

    assignments_reset = 0
    for setting in store.list_assignment_settings():
        store.upsert_assignment_setting(setting.assignment, False)
        assignments_reset += 1

    actions = []
    if report.deleted:
        actions.append(f"{report.deleted} files deleted")
    if users_deleted:
        actions.append(f"{users_deleted} users deleted")
    if assignments_reset:
        actions.append(f"{assignments_reset} assignments reset")
    message = (
        f"Server reset successful: {', '.join(actions)}"
        if actions
        else "No data to reset - server is already clean"
    )

    log_security_event(
        "admin_server_reset",
        extra={
            "files_deleted": report.deleted,
            "users_deleted": users_deleted,
            "assignments_reset": assignments_reset,
        },
    )
    return ResetServerResult(
        message=message,
        files_deleted=report.deleted,
        users_deleted=users_deleted,
        assignments_reset=assignments_reset,
        blob_failures=report.blob_failures,
    )
