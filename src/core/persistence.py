from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from json import JSONDecodeError
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .config import get_settings
from .models import CorpusSnapshot, FixtureRecord, MatchScore

LOGGER = logging.getLogger(__name__)

# Condiviso da tutte le istanze: route e script creano un CorpusStore per chiamata
_WRITE_LOCK = threading.Lock()


# ---------------------------------------------------------------------------
# Corpus
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Corpus:
    """
    Corpus storico: data (YYYY-MM-DD) -> lista di fixture, più timestamp
    dell'ultimo aggiornamento. Immutabile: ingest() ritorna un nuovo Corpus.
    """

    matches: Mapping[str, Tuple[FixtureRecord, ...]] = field(default_factory=dict)
    last_update: Optional[str] = None

    def __post_init__(self) -> None:
        matches = {date: tuple(day) for date, day in (self.matches or {}).items()}
        object.__setattr__(self, "matches", MappingProxyType(matches))

    def __len__(self) -> int:
        return sum(len(day) for day in self.matches.values())

    def snapshot(self) -> CorpusSnapshot:
        """Lista piatta (ordinata per data, ordine di inserimento nel giorno)."""
        out: List[FixtureRecord] = []
        for date in sorted(self.matches):
            out.extend(self.matches[date])
        return tuple(out)

    def for_date(self, date: str) -> Tuple[FixtureRecord, ...]:
        return tuple(self.matches.get(date, ()))

    def get(self, fixture_id: str) -> Optional[FixtureRecord]:
        for day in self.matches.values():
            for fx in day:
                if fx.id == fixture_id:
                    return fx
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matches": {
                date: [_normalized(fx).to_dict() for fx in day]
                for date, day in sorted(self.matches.items())
            },
            "last_update": self.last_update,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Corpus":
        matches: Dict[str, Tuple[FixtureRecord, ...]] = {}
        raw_matches = raw.get("matches") or {}
        skipped = 0
        for date, day in raw_matches.items():
            if not isinstance(day, list):
                continue
            records: List[FixtureRecord] = []
            for item in day:
                fx = FixtureRecord.from_dict(item) if isinstance(item, Mapping) else None
                if fx is None:
                    skipped += 1
                    continue
                records.append(fx)
            matches[str(date)] = tuple(records)
        if skipped:
            LOGGER.warning("Scartati %d record malformati dal corpus", skipped)
        return cls(matches=matches, last_update=raw.get("last_update"))


def _normalized(fx: FixtureRecord) -> FixtureRecord:
    # Orario salvato sempre come HH:MM
    if fx.time and len(fx.time) > 5:
        return replace(fx, time=fx.time[:5])
    return fx


# ---------------------------------------------------------------------------
# Merge / ingest
# ---------------------------------------------------------------------------


def merge_fixture(existing: FixtureRecord, new: FixtureRecord) -> Tuple[FixtureRecord, bool]:
    """
    Aggiorna un record esistente con i dati appena scaricati.
    - status: sempre aggiornato se cambia
    - punteggi: aggiornati solo se il nuovo record li ha (mai cancellati)
    - quote: aggiornate solo finché la partita non è terminata
    Ritorna (record, aggiornato?).
    """
    updates: Dict[str, Any] = {}

    if new.status is not existing.status:
        updates["status"] = new.status

    if new.result is not None:
        old = existing.result
        new_ft, new_ht = new.result.full_time, new.result.half_time
        ft = new_ft if new_ft[0] is not None else (old.full_time if old else (None, None))
        ht = new_ht if new_ht[0] is not None else (old.half_time if old else (None, None))
        merged = MatchScore(ft_home=ft[0], ft_away=ft[1], ht_home=ht[0], ht_away=ht[1])
        if merged != old:
            updates["result"] = merged

    if new.odds and not existing.is_finished and dict(new.odds) != dict(existing.odds):
        updates["odds"] = dict(new.odds)

    if not updates:
        return existing, False
    return replace(existing, **updates), True


def ingest(
    corpus: Corpus, date: str, fixtures: Sequence[FixtureRecord]
) -> Tuple[Corpus, Dict[str, int]]:
    """
    Unisce le fixture di una data nel corpus. Ritorna un NUOVO Corpus
    (copy-on-write) e le statistiche {added, updated, unchanged}.
    """
    day: List[FixtureRecord] = list(corpus.matches.get(date, ()))
    index = {fx.id: i for i, fx in enumerate(day)}
    stats = {"added": 0, "updated": 0, "unchanged": 0}

    for fx in fixtures:
        pos = index.get(fx.id)
        if pos is None:
            index[fx.id] = len(day)
            day.append(fx)
            stats["added"] += 1
            continue
        merged, changed = merge_fixture(day[pos], fx)
        if changed:
            day[pos] = merged
            stats["updated"] += 1
        else:
            stats["unchanged"] += 1

    matches = dict(corpus.matches)
    matches[date] = tuple(day)
    now = datetime.now(timezone.utc).isoformat(timespec="seconds")
    return Corpus(matches=matches, last_update=now), stats


# ---------------------------------------------------------------------------
# Low level
# ---------------------------------------------------------------------------


def _ensure_dir(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _write_json_atomic(path: Path, data: Any, indent: int = 4) -> None:
    _ensure_dir(path)
    with tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", dir=path.parent, prefix=path.name + ".", suffix=".tmp", delete=False
    ) as f:
        tmp_path = Path(f.name)
        try:
            json.dump(data, f, ensure_ascii=False, indent=indent)
            f.flush()
            os.fsync(f.fileno())
        except BaseException:
            f.close()
            tmp_path.unlink(missing_ok=True)
            raise
    os.replace(tmp_path, path)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class CorpusStore:
    """
    Persistenza JSON del corpus storico.
    Le scritture sono serializzate da un lock di processo condiviso; i lettori lavorano su snapshot
    immutabili e non vengono mai toccati da un save concorrente.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        if path is None:
            path = Path(get_settings().historic_data_file)
        self.path = Path(path)
        self._lock = _WRITE_LOCK

    def load(self) -> Corpus:
        """
        Carica il corpus. File mancante, vuoto, JSON corrotto o privo della
        chiave 'matches' -> corpus vuoto (con log).
        """
        if not self.path.exists():
            LOGGER.info("File corpus %s non trovato, uso corpus vuoto", self.path)
            return Corpus()
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            LOGGER.warning("Error reading corpus file %s: %s", self.path, e)
            return Corpus()
        if not text.strip():
            LOGGER.info("File corpus %s vuoto, uso corpus vuoto", self.path)
            return Corpus()
        try:
            raw = json.loads(text)
        except JSONDecodeError:
            LOGGER.warning("Invalid / corrupt corpus JSON at %s", self.path)
            return Corpus()
        if not isinstance(raw, dict) or not isinstance(raw.get("matches"), dict):
            LOGGER.warning("Invalid structure in corpus JSON (missing 'matches') at %s", self.path)
            return Corpus()
        corpus = Corpus.from_dict(raw)
        LOGGER.info("Corpus caricato: %s (%d partite)", self.path, len(corpus))
        return corpus

    def save(self, corpus: Corpus) -> None:
        with self._lock:
            _write_json_atomic(self.path, corpus.to_dict())
        LOGGER.info("Corpus salvato: %s (%d partite)", self.path, len(corpus))


__all__ = [
    "Corpus",
    "CorpusStore",
    "merge_fixture",
    "ingest",
]
