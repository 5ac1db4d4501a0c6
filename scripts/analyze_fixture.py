#!/usr/bin/env python3
"""
Analisi da riga di comando di una partita del corpus.

Uso:
    PYTHONPATH=src python scripts/analyze_fixture.py "Galatasaray vs Fenerbahçe" --date 2024-05-25
"""
from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from core.config import get_settings, load_env_file
from core.logging import refresh_levels
from core.persistence import CorpusStore
from analysis.report import NarrativeGenerator, render_report
from analysis.service import analyze_fixture, find_fixture


def main(argv: Optional[List[str]] = None, generator: Optional[NarrativeGenerator] = None) -> int:
    load_env_file()
    refresh_levels()

    ap = argparse.ArgumentParser(description="Partite con quote simili e frequenze esiti")
    ap.add_argument("query", help='id partita oppure "Casa vs Ospite"')
    ap.add_argument("--date", type=str, default=None)
    args = ap.parse_args(argv)

    settings = get_settings()
    snapshot = CorpusStore().load().snapshot()
    target = find_fixture(snapshot, args.query, date=args.date)
    if target is None:
        print(f"[analyze_fixture] partita non trovata: {args.query}")
        return 1

    result = analyze_fixture(target, snapshot, settings)
    print(render_report(result, generator, max_listed=settings.analysis_max_listed))
    return 0


if __name__ == "__main__":
    sys.exit(main())
