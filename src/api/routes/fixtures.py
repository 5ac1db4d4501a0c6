from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from core.logging import get_logger
from core.persistence import CorpusStore

router = APIRouter(tags=["fixtures"])
logger = get_logger("api.routes.fixtures")


@router.get("/fixtures", summary="Partite del corpus per data")
def get_fixtures(date: Optional[str] = Query(None, description="YYYY-MM-DD, default oggi (UTC)")):
    day = date or datetime.now(timezone.utc).strftime("%Y-%m-%d")
    try:
        datetime.strptime(day, "%Y-%m-%d")
    except ValueError:
        raise HTTPException(status_code=422, detail="date deve essere nel formato YYYY-MM-DD")
    fixtures = CorpusStore().load().for_date(day)
    return {
        "date": day,
        "count": len(fixtures),
        "items": [f.to_dict() for f in fixtures],
    }
