"""Selector-based extraction of listings and proxy rows from HTML.

Pure HTML-to-record mapping: no I/O and no state, so the same document and
rules always give the same result.
"""

import re
from typing import Dict, List, Tuple

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

from pricewatch.core.exceptions import ElementNotFound, ProxyTableNotFound, SelectorError
from pricewatch.scrapers.base import Listing, ProxyParsingRules, Shop, ShopParsingRules
from pricewatch.scrapers.utils.normalizer import PriceNormalizer


_PAGE_NUMBER = re.compile(r"[0-9]+")


def parse_document(html: str) -> BeautifulSoup:
    """Parse a fetched page into a document tree."""
    return BeautifulSoup(html, "lxml")


def select(node: Tag, selector: str) -> List[Tag]:
    """All descendants of ``node`` matching ``selector``, in document order.

    Raises:
        SelectorError: If the selector is not valid CSS
    """
    try:
        return node.select(selector)
    except SelectorSyntaxError as e:
        raise SelectorError(selector, f"Invalid selector {selector!r}: {e}") from e


def select_first(node: Tag, selector: str) -> Tag:
    """First descendant of ``node`` matching ``selector``.

    Raises:
        SelectorError: If the selector is not valid CSS
        ElementNotFound: If nothing matches
    """
    try:
        element = node.select_one(selector)
    except SelectorSyntaxError as e:
        raise SelectorError(selector, f"Invalid selector {selector!r}: {e}") from e
    if element is None:
        raise ElementNotFound(selector)
    return element


def clean_text(element: Tag) -> str:
    """Text nodes under ``element`` joined by single spaces, trimmed, newlines flattened."""
    return element.get_text(" ").strip().replace("\n", " ")


def extract(node: Tag, selector: str) -> str:
    """Cleaned text of the first match of ``selector`` under ``node``."""
    return clean_text(select_first(node, selector))


def extract_attr(node: Tag, selector: str, attribute: str) -> str:
    """Raw attribute value of the first match of ``selector`` under ``node``.

    Attribute values are returned verbatim: hrefs are case- and
    whitespace-sensitive, unlike display text.

    Raises:
        ElementNotFound: If nothing matches or the match lacks the attribute
    """
    element = select_first(node, selector)
    value = element.get(attribute)
    if value is None:
        raise ElementNotFound(selector, attribute)
    if isinstance(value, list):
        # bs4 splits multi-valued attributes such as class
        return " ".join(value)
    return value


def extract_listing(shop: Shop, rules: ShopParsingRules, row: Tag) -> Listing:
    """Build one listing from a product row element.

    Raises:
        SelectorError: If a lookup is invalid or matches nothing in the row
    """
    name = extract(row, rules.name_lookup)
    price = PriceNormalizer.normalize(extract(row, rules.price_lookup))
    if rules.look_for_href:
        url = extract_attr(row, rules.url_lookup, "href")
    else:
        url = extract(row, rules.url_lookup)
    return Listing(shop=shop, full_name=name, price=price, url=url)


def extract_listings(shop: Shop, rules: ShopParsingRules, document: Tag) -> List[Listing]:
    """All listings on a page, in document order across every product table.

    A page without tables or rows yields an empty list.
    """
    listings = []
    for table in select(document, rules.product_table_lookup):
        for row in select(table, rules.product_lookup):
            listings.append(extract_listing(shop, rules, row))
    return listings


def extract_page_count(rules: ShopParsingRules, document: Tag) -> int:
    """Highest page number shown by the pagination widget.

    Non-numeric items ("...", "»", arrows) are ignored; 0 when nothing parses.
    """
    page_count = 0
    for element in select(document, rules.max_page_lookup):
        text = clean_text(element)
        if _PAGE_NUMBER.fullmatch(text):
            page_count = max(page_count, int(text))
    return page_count


def extract_proxy_table(
    document: Tag, rules: ProxyParsingRules, source: str = ""
) -> Tuple[List[str], List[List[str]]]:
    """Header names and data rows of the first proxy table on a page.

    Rows without data cells (typically the header row itself) are dropped.

    Raises:
        ProxyTableNotFound: If no element matches the table lookup
        SelectorError: If a lookup is not valid CSS
    """
    tables = select(document, rules.table_lookup)
    if not tables:
        raise ProxyTableNotFound(rules.table_lookup, source)
    table = tables[0]

    head = [clean_text(cell) for cell in select(table, rules.head_lookup)]
    rows = []
    for row_element in select(table, rules.row_lookup):
        row = [clean_text(cell) for cell in select(row_element, rules.data_lookup)]
        if row:
            rows.append(row)
    return head, rows


def zip_proxy_rows(head: List[str], rows: List[List[str]]) -> List[Dict[str, str]]:
    """Key every row's cells by header name (column order does not matter)."""
    return [dict(zip(head, row)) for row in rows]
