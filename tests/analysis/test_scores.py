import pytest

from analysis.scores import parse_score


def test_parse_valid_score() -> None:
    assert parse_score("2-1") == (2, 1)
    assert parse_score(" 0 - 0 ") == (0, 0)
    assert parse_score("10-3") == (10, 3)


@pytest.mark.parametrize(
    "raw",
    ["", "   ", "-", "- - -", "2-1-0", "2-", "-1", "a-1", "2-x", "None-None", "2:1", "2.5-1", None, 21],
)
def test_parse_unknown_returns_both_none(raw) -> None:
    assert parse_score(raw) == (None, None)


def test_partial_parse_rejected_entirely() -> None:
    home, away = parse_score("3-?")
    assert home is None and away is None
