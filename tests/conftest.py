import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
for p in (SRC, ROOT):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))

import pytest  # noqa: E402
from core.config import _reset_settings_cache_for_tests  # noqa: E402
from core.models import FixtureRecord, FixtureStatus, MatchScore  # noqa: E402


@pytest.fixture(autouse=True)
def reset_settings_cache():
    _reset_settings_cache_for_tests()
    yield
    _reset_settings_cache_for_tests()


@pytest.fixture
def make_fixture():
    """
    Factory di FixtureRecord per i test.
    odds: dict {Market: {esito: quota}}; ft/ht: stringhe "2-1" o None.
    """
    counter = {"n": 0}

    def _make(
        odds=None,
        ft=None,
        ht=None,
        status=FixtureStatus.FINISHED,
        fixture_id=None,
        home="Home",
        away="Away",
        date="2024-05-01",
        with_result=True,
    ):
        counter["n"] += 1
        flat = {}
        for market, prices in (odds or {}).items():
            for outcome, price in prices.items():
                flat[(market, outcome)] = price
        result = None
        if status is FixtureStatus.FINISHED and with_result:
            result = MatchScore.from_dict({"ftScore": ft, "htScore": ht})
        return FixtureRecord(
            id=fixture_id or f"fx{counter['n']}",
            date=date,
            time="20:00",
            league="Süper Lig",
            home_team=home,
            away_team=away,
            status=status,
            result=result,
            odds=flat,
        )

    return _make
