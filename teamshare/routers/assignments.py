from __future__ import annotations

from typing import List, Union

from fastapi import APIRouter, Depends

from teamshare.core.deps import get_current_requester, get_store, require_admin
from teamshare.schemas.assignment import AssignmentSetting, AssignmentSettingPublic, AssignmentSettingUpdate
from teamshare.services.permissions import Requester
from teamshare.storage.base import RecordStore

router = APIRouter(prefix="/api/assignment-settings", tags=["assignments"])


@router.get("", response_model=None)
def list_assignment_settings(
    requester: Requester = Depends(get_current_requester),
    store: RecordStore = Depends(get_store),
) -> Union[List[AssignmentSetting], List[AssignmentSettingPublic]]:
    settings = store.list_assignment_settings()
    if requester.is_admin:
        return settings
    # Teams only learn which assignments are open.
    return [AssignmentSettingPublic.model_validate(setting) for setting in settings]


@router.put("", response_model=AssignmentSetting)
def update_assignment_setting(
    payload: AssignmentSettingUpdate,
    _admin: Requester = Depends(require_admin),
    store: RecordStore = Depends(get_store),
) -> AssignmentSetting:
    return store.upsert_assignment_setting(payload.assignment, payload.is_open_view)
