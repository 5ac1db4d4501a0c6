from __future__ import annotations

from fastapi import APIRouter, HTTPException

from core.config import get_settings
from core.logging import get_logger
from core.persistence import CorpusStore
from analysis.service import analyze_fixture

router = APIRouter(tags=["analysis"])
logger = get_logger("api.routes.analysis")


@router.get("/analysis/{fixture_id}", summary="Partite simili e frequenze esiti")
def get_analysis(fixture_id: str):
    settings = get_settings()
    corpus = CorpusStore().load()
    target = corpus.get(fixture_id)
    if target is None:
        raise HTTPException(status_code=404, detail=f"fixture {fixture_id} non trovata")
    result = analyze_fixture(target, corpus.snapshot(), settings)
    return result.to_dict(max_listed=settings.analysis_max_listed)
