import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

HISTORIC_DATA_FILE_NAME = "historic_matches.json"


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    v = value.strip().lower()
    if v in {"0", "false", "no"}:
        return False
    return True


@dataclass
class Settings:
    similarity_threshold: float
    min_similar_categories: int
    log_level: str

    bet_data_dir: str
    historic_data_file: str
    persist_corpus: bool

    mackolik_max_attempts: int
    mackolik_backoff_base: float
    mackolik_backoff_factor: float
    mackolik_backoff_jitter: float
    mackolik_timeout: float

    update_days_back: int
    team_match_cutoff: int
    analysis_max_listed: int

    @classmethod
    def from_env(cls) -> "Settings":
        def _int(name: str, default: int) -> int:
            raw = os.getenv(name)
            if not raw:
                return default
            try:
                return int(raw)
            except ValueError as e:
                raise ValueError(f"Variabile {name} deve essere un intero (valore: {raw!r})") from e

        def _float(name: str, default: float) -> float:
            raw = os.getenv(name)
            if not raw:
                return default
            try:
                return float(raw)
            except ValueError as e:
                raise ValueError(f"Variabile {name} deve essere un numero (valore: {raw!r})") from e

        similarity_threshold = _float("SIMILARITY_THRESHOLD", 0.05)
        if similarity_threshold < 0:
            raise ValueError(
                f"Variabile SIMILARITY_THRESHOLD deve essere >= 0 (valore: {similarity_threshold!r})"
            )
        min_similar_categories = _int("MIN_SIMILAR_CATEGORIES", 3)
        if min_similar_categories < 1:
            raise ValueError(
                f"Variabile MIN_SIMILAR_CATEGORIES deve essere >= 1 (valore: {min_similar_categories!r})"
            )
        log_level = os.getenv("BET_LOG_LEVEL", "INFO").upper()

        bet_data_dir = os.getenv("BET_DATA_DIR", "data")
        historic_data_file = os.getenv("HISTORIC_DATA_FILE") or str(
            Path(bet_data_dir) / HISTORIC_DATA_FILE_NAME
        )
        persist_corpus = _parse_bool(os.getenv("PERSIST_CORPUS"), True)

        max_attempts = _int("MACKOLIK_MAX_ATTEMPTS", 3)
        if max_attempts < 1:
            max_attempts = 1
        backoff_base = _float("MACKOLIK_BACKOFF_BASE", 0.5)
        backoff_factor = _float("MACKOLIK_BACKOFF_FACTOR", 2.0)
        backoff_jitter = _float("MACKOLIK_BACKOFF_JITTER", 0.2)
        timeout = _float("MACKOLIK_TIMEOUT", 10.0)

        update_days_back = _int("UPDATE_DAYS_BACK", 3)
        if update_days_back < 0:
            update_days_back = 0
        team_match_cutoff = _int("TEAM_MATCH_CUTOFF", 80)
        team_match_cutoff = max(0, min(team_match_cutoff, 100))
        analysis_max_listed = _int("ANALYSIS_MAX_LISTED", 10)

        return cls(
            similarity_threshold=similarity_threshold,
            min_similar_categories=min_similar_categories,
            log_level=log_level,
            bet_data_dir=bet_data_dir,
            historic_data_file=historic_data_file,
            persist_corpus=persist_corpus,
            mackolik_max_attempts=max_attempts,
            mackolik_backoff_base=backoff_base,
            mackolik_backoff_factor=backoff_factor,
            mackolik_backoff_jitter=backoff_jitter,
            mackolik_timeout=timeout,
            update_days_back=update_days_back,
            team_match_cutoff=team_match_cutoff,
            analysis_max_listed=analysis_max_listed,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


def load_env_file() -> Optional[str]:
    """
    Carica il .env più vicino (senza sovrascrivere l'ambiente) e invalida la
    cache: i settings letti prima del caricamento non restano in uso.
    """
    path = find_dotenv(usecwd=True)
    if path:
        load_dotenv(path, override=False)
    get_settings.cache_clear()
    return path or None


def _reset_settings_cache_for_tests() -> None:
    get_settings.cache_clear()


__all__ = [
    "HISTORIC_DATA_FILE_NAME",
    "Settings",
    "get_settings",
    "load_env_file",
    "_reset_settings_cache_for_tests",
]
