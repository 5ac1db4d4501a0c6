#!/usr/bin/env python3
"""
Aggiorna il corpus storico scaricando le fixture degli ultimi N giorni
(più oggi) dalla sorgente Mackolik e unendole ai dati esistenti.

Uso:
    PYTHONPATH=src python scripts/update_corpus.py --days-back 3
    PYTHONPATH=src python scripts/update_corpus.py --date 2024-05-25
"""
from __future__ import annotations

import argparse
from datetime import date as date_cls, timedelta
from typing import List, Optional

from core.config import get_settings, load_env_file
from core.logging import get_logger, refresh_levels
from core.persistence import CorpusStore, ingest
from providers.mackolik.base import FixtureSourceBase
from providers.mackolik.fixtures_provider import MackolikFixturesProvider

log = get_logger("scripts.update_corpus")


def dates_to_update(days_back: int, today: Optional[date_cls] = None) -> List[str]:
    """Date da aggiornare, dalla più vecchia a oggi (inclusa)."""
    today = today or date_cls.today()
    return [(today - timedelta(days=d)).isoformat() for d in range(days_back, -1, -1)]


def update_corpus(
    dates: List[str],
    source: FixtureSourceBase,
    store: CorpusStore,
    persist: bool = True,
) -> dict:
    corpus = store.load()
    totals = {"added": 0, "updated": 0, "unchanged": 0, "dates": 0}
    for day in dates:
        fixtures = source.fetch_fixtures(day)
        if not fixtures:
            log.info("%s: nessuna partita ricevuta", day)
            continue
        corpus, stats = ingest(corpus, day, fixtures)
        totals["dates"] += 1
        for k in ("added", "updated", "unchanged"):
            totals[k] += stats[k]
        log.info("%s: %s", day, stats)

    if persist and totals["dates"]:
        store.save(corpus)
    log.info("Aggiornamento corpus completato", extra={"corpus_stats": {**totals, "size": len(corpus)}})
    return totals


def main() -> None:
    load_env_file()
    refresh_levels()

    settings = get_settings()
    ap = argparse.ArgumentParser(description="Aggiorna il corpus storico dalle quote Mackolik")
    ap.add_argument("--days-back", type=int, default=settings.update_days_back)
    ap.add_argument("--date", type=str, default=None, help="Singola data YYYY-MM-DD")
    args = ap.parse_args()

    dates = [args.date] if args.date else dates_to_update(max(args.days_back, 0))
    update_corpus(dates, MackolikFixturesProvider(), CorpusStore(), persist=settings.persist_corpus)


if __name__ == "__main__":
    main()
