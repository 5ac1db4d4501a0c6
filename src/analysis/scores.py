from __future__ import annotations

import re
from typing import Any, Optional, Tuple

ScorePair = Tuple[Optional[int], Optional[int]]

UNKNOWN_SCORE: ScorePair = (None, None)

# Segnaposto del feed per punteggio assente: "-", "- - -", "--"
_PLACEHOLDER_RE = re.compile(r"^[\s\-]*$")
_GOALS_RE = re.compile(r"^[0-9]+$")


def parse_score(text: Any) -> ScorePair:
    """
    Converte un punteggio testuale ("2-1") in (gol_casa, gol_ospiti).

    Ritorna (None, None) se il testo è vuoto, un segnaposto, contiene "None"
    o non si divide in esattamente due interi non negativi separati da "-".
    Un parsing parziale (un lato numerico, l'altro no) è scartato per intero.
    Non solleva mai eccezioni.
    """
    if not isinstance(text, str):
        return UNKNOWN_SCORE
    if _PLACEHOLDER_RE.match(text) or "None" in text:
        return UNKNOWN_SCORE
    parts = [p.strip() for p in text.split("-")]
    if len(parts) != 2:
        return UNKNOWN_SCORE
    home, away = parts
    if not _GOALS_RE.match(home) or not _GOALS_RE.match(away):
        return UNKNOWN_SCORE
    return int(home), int(away)


__all__ = ["ScorePair", "UNKNOWN_SCORE", "parse_score"]
