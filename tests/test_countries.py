import pytest

from leadhub.core.countries import parse_countries


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Summer-TR-Sale", ["TR"]),
        ("US_DE_Bundle", ["US", "DE"]),
        ("Lead Gen / UK / 2024", ["UK"]),
        ("TR", ["TR"]),
        ("TRAINING campaign", []),
        ("Brand awareness", []),
        ("", []),
    ],
)
def test_parse_countries(name, expected):
    assert parse_countries(name) == expected


def test_parse_is_case_insensitive_and_deduplicated():
    assert parse_countries("tr-promo-TR") == ["TR"]

