from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError

from teamshare.core.deps import get_store
from teamshare.storage.base import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/healthz")
def healthcheck(store: RecordStore = Depends(get_store)) -> dict[str, str]:
    """Liveness plus a round trip to the record store. 503 when the store is down."""
    try:
        store.ping()
    except SQLAlchemyError as exc:
        logger.error("Healthcheck failed: %s", exc, exc_info=True)
        raise HTTPException(status_code=503, detail="Service unavailable") from exc
    return {"status": "ok", "store": store.kind}
