from __future__ import annotations

from fastapi import APIRouter

from core.config import get_settings
from core.persistence import CorpusStore

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health check")
def health():
    """
    Health endpoint minimale: stato del corpus e parametri di similarità.
    """
    settings = get_settings()
    corpus = CorpusStore().load()
    return {
        "status": "ok",
        "corpus_size": len(corpus),
        "last_update": corpus.last_update,
        "similarity_threshold": settings.similarity_threshold,
        "min_similar_categories": settings.min_similar_categories,
    }
