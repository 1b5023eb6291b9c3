"""
HTML helpers for extraction modules.

Agency pages publish most tabular data as plain <table> markup; these
helpers turn it into the same header-keyed dicts the delimited tokenizer
produces, so extraction code handles both sources the same way.
"""

import re
from typing import Dict, Iterable, List
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from drawdata.utils.delimited import zip_row


def _cell_text(cell) -> str:
    return re.sub(r"\s+", " ", cell.get_text(" ", strip=True)).strip()


def extract_tables(html: str, selector: str = "table") -> List[List[Dict[str, str]]]:
    """
    Extract every matching table as a list of header-keyed row dicts.

    Headers come from the first row containing <th> cells; rows with fewer
    than two <td> cells (spacers, section captions) are skipped. Tables
    without a header row are skipped.
    """
    soup = BeautifulSoup(html, "html.parser")
    tables = []

    for table in soup.select(selector):
        headers: List[str] = []
        rows: List[Dict[str, str]] = []
        for tr in table.find_all("tr"):
            header_cells = tr.find_all("th")
            data_cells = tr.find_all("td")
            if header_cells and not data_cells and not headers:
                headers = [_cell_text(th) for th in header_cells]
                continue
            if headers and len(data_cells) >= 2:
                rows.append(zip_row(headers, [_cell_text(td) for td in data_cells]))
        if headers:
            tables.append(rows)

    return tables


def extract_links(html: str, base_url: str, suffixes: Iterable[str]) -> List[str]:
    """
    Return absolute URLs of links whose path ends with one of the suffixes.

    Order follows the page; duplicates are dropped.
    """
    suffixes = tuple(s.lower() for s in suffixes)
    soup = BeautifulSoup(html, "html.parser")
    links: List[str] = []

    for anchor in soup.find_all("a", href=True):
        url = urljoin(base_url, anchor["href"].strip())
        if urlparse(url).path.lower().endswith(suffixes) and url not in links:
            links.append(url)

    return links
