"""Tests for price text normalization."""

import pytest

from pricewatch.scrapers.utils.normalizer import PriceNormalizer


class TestPriceNormalizer:
    """Tests for PriceNormalizer.normalize."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("10,11\u00a0€", 10.11),
            ("€\u00a010,11", 10.11),
            ("€10.11", 10.11),
            ("10.11€", 10.11),
            ("12,50 zł", 12.5),
            ("  7 ", 7.0),
            ("1999", 1999.0),
        ],
    )
    def test_parses_storefront_prices(self, raw, expected):
        assert PriceNormalizer.normalize(raw) == pytest.approx(expected)

    @pytest.mark.parametrize(
        "raw", ["abc", "", "1.234,56", "10 11", "€", "1_000", "١٢,5"]
    )
    def test_unparsable_text_gives_sentinel(self, raw):
        assert PriceNormalizer.normalize(raw) == PriceNormalizer.SENTINEL_PRICE

    @pytest.mark.parametrize("raw", ["inf", "nan", "-Infinity", "1e999"])
    def test_non_finite_numbers_give_sentinel(self, raw):
        assert PriceNormalizer.normalize(raw) == PriceNormalizer.SENTINEL_PRICE

    def test_is_deterministic(self):
        assert PriceNormalizer.normalize("10,11\u00a0€") == PriceNormalizer.normalize("10,11\u00a0€")

    def test_is_sentinel(self):
        assert PriceNormalizer.is_sentinel(PriceNormalizer.normalize("n/a"))
        assert not PriceNormalizer.is_sentinel(9.99)
