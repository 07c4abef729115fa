"""Price text normalization for scraped listings."""

import math
import re
from typing import List, Tuple

import structlog

logger = structlog.get_logger(__name__)

# Plain ASCII decimal: no digit separators, no other scripts
_DECIMAL = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


class PriceNormalizer:
    """Locale-tolerant cleanup of storefront price strings.

    This is a deterministic text transform, not a general currency parser:
    - "10,11\\u00a0€" -> 10.11
    - "€10.11" -> 10.11
    - "12,50 zł" -> 12.5
    - "abc" -> SENTINEL_PRICE

    Unparsable text yields SENTINEL_PRICE instead of an error so that one
    malformed price never aborts an otherwise good page of listings.
    Downstream filters and alerts recognize the negative value and skip it.
    """

    # Order matters: the no-break-space variants go before the bare symbol
    REMOVE_TOKENS: List[str] = ["\u00a0€", "€\u00a0", "€", "zł"]
    REPLACE_TOKENS: List[Tuple[str, str]] = [(",", ".")]
    SENTINEL_PRICE: float = -9.99

    @classmethod
    def normalize(cls, raw: str) -> float:
        """Parse a price string into a float.

        Args:
            raw: Raw price text as extracted from the page

        Returns:
            Price value, or SENTINEL_PRICE if the text is not a number
        """
        cleaned = raw
        for token in cls.REMOVE_TOKENS:
            cleaned = cleaned.replace(token, "")
        for old, new in cls.REPLACE_TOKENS:
            cleaned = cleaned.replace(old, new)
        cleaned = cleaned.strip()

        if not _DECIMAL.fullmatch(cleaned):
            logger.debug("price_unparsable", raw=raw)
            return cls.SENTINEL_PRICE

        price = float(cleaned)
        if not math.isfinite(price):
            logger.debug("price_not_finite", raw=raw)
            return cls.SENTINEL_PRICE
        return price

    @classmethod
    def is_sentinel(cls, price: float) -> bool:
        """Check whether a price is the unparsable-text marker."""
        return math.isclose(price, cls.SENTINEL_PRICE, abs_tol=1e-6)
