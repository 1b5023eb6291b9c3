"""
Oregon Department of Fish and Wildlife (ODFW).

Controlled hunt statistics are published through the report downloads
portal as CSV files and, for the current year, as HTML tables on the same
page. Units are controlled hunt numbers ("Hunt 216A").

ODFW draw system: 75% preference / 25% random for controlled hunts.
"""

from typing import Dict, List, Optional, Tuple
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from drawdata.fetchers.transport import RetrievalExhausted
from drawdata.sources.base import BaseSource
from drawdata.sources.parsing import (
    first_value,
    match_species,
    parse_count,
    parse_optional_int,
    parse_percent,
)
from drawdata.sources.types import DrawHistoryRecord, LeftoverTagRecord, UnitRecord
from drawdata.utils.delimited import tokenize_records
from drawdata.utils.html_tables import extract_tables

REPORT_DOWNLOADS_URL = "https://odfw.huntfishoregon.com/reportdownloads"

SPECIES_ALIASES = {
    "elk": "elk",
    "roosevelt elk": "elk",
    "rocky mountain elk": "elk",
    "deer": "mule_deer",
    "mule deer": "mule_deer",
    "blacktail deer": "blacktail",
    "black-tailed deer": "blacktail",
    "columbia blacktail": "blacktail",
    "blacktail": "blacktail",
    "antelope": "pronghorn",
    "pronghorn": "pronghorn",
    "bighorn sheep": "bighorn_sheep",
    "sheep": "bighorn_sheep",
    "mountain goat": "mountain_goat",
    "goat": "mountain_goat",
    "bear": "black_bear",
    "black bear": "black_bear",
    "cougar": "mountain_lion",
    "mountain lion": "mountain_lion",
}

HUNT_KEYS = ("hunt number", "hunt", "unit", "hunt code")
DRAW_LINK_WORDS = ("draw", "controlled", "statistics", "applicant")
LEFTOVER_WORDS = ("leftover", "remaining", "available")


def download_links(html: str, base_url: str) -> List[Tuple[str, str]]:
    """(absolute url, link text) for every CSV link on the page."""
    soup = BeautifulSoup(html, "html.parser")
    links = []
    for anchor in soup.find_all("a", href=True):
        url = urljoin(base_url, anchor["href"].strip())
        if urlparse(url).path.lower().endswith(".csv"):
            links.append((url, anchor.get_text(" ", strip=True)))
    return links


class OregonSource(BaseSource):
    source_id = "OR"
    source_name = "Oregon"
    source_url = REPORT_DOWNLOADS_URL

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._portal_html: Optional[str] = None
        self._draw_rows: Optional[List[Dict[str, str]]] = None

    async def _portal(self) -> str:
        """Fetch the report downloads page once per run and fingerprint it."""
        if self._portal_html is None:
            html = await self.fetch_page(REPORT_DOWNLOADS_URL)
            await self.check_structure(html, REPORT_DOWNLOADS_URL)
            self._portal_html = html
        return self._portal_html

    async def _load_draw_rows(self) -> List[Dict[str, str]]:
        """Rows from draw-statistics CSVs plus any wide HTML tables on the portal."""
        if self._draw_rows is not None:
            return self._draw_rows

        html = await self._portal()
        rows: List[Dict[str, str]] = []

        for url, label in download_links(html, REPORT_DOWNLOADS_URL):
            if not any(word in label.lower() for word in DRAW_LINK_WORDS):
                continue
            try:
                text = await self.fetch_page(url)
            except RetrievalExhausted as e:
                self.log(f"Failed: {label}: {e}")
                continue
            await self.check_structure(text, url)
            rows.extend(tokenize_records(text))

        # Current-year statistics tables; leftover tables carry no year column
        for table in extract_tables(html):
            if table and len(table[0]) >= 3 and "year" in table[0]:
                rows.extend(table)

        self._draw_rows = rows
        return rows

    def parse_draw_row(self, row: Dict[str, str]) -> Optional[DrawHistoryRecord]:
        hunt = first_value(row, *HUNT_KEYS)
        species = match_species(first_value(row, "species", "animal"), SPECIES_ALIASES)
        year = parse_count(row.get("year"))
        if not hunt or not species or year < 2000:
            return None

        return DrawHistoryRecord(
            unit_ref=f"{self.source_id}:{species}:{hunt}",
            year=year,
            applicants=parse_count(
                first_value(row, "1st choice applicants", "applicants", "total applicants")
            ),
            tags=parse_count(first_value(row, "tags", "permits", "tags available")),
            odds=parse_percent(first_value(row, "draw odds", "success")),
            min_points_drawn=parse_optional_int(row.get("pref point cutoff")),
        )

    async def collect_units(self) -> List[UnitRecord]:
        units = []
        seen = set()
        for row in await self._load_draw_rows():
            hunt = first_value(row, *HUNT_KEYS)
            species = match_species(first_value(row, "species", "animal"), SPECIES_ALIASES)
            if not hunt or not species or (species, hunt) in seen:
                continue
            seen.add((species, hunt))
            units.append(
                UnitRecord(
                    source=self.source_id,
                    species=species,
                    unit_code=hunt,
                    unit_name=f"Hunt {hunt}",
                )
            )
        self.log(f"Extracted {len(units)} units")
        return units

    async def collect_draw_history(self) -> List[DrawHistoryRecord]:
        parsed = [self.parse_draw_row(row) for row in await self._load_draw_rows()]
        results = [record for record in parsed if record is not None]
        self.log(f"Total draw history rows: {len(results)}")
        return results

    async def collect_leftover_tags(self) -> List[LeftoverTagRecord]:
        html = await self._portal()
        leftovers = []

        def to_record(row: Dict[str, str], url: str) -> Optional[LeftoverTagRecord]:
            unit_code = first_value(row, *HUNT_KEYS)
            available = parse_count(first_value(row, "available", "remaining", "permits"))
            if not unit_code or available <= 0:
                return None
            return LeftoverTagRecord(
                source=self.source_id,
                species=match_species(row.get("species", ""), SPECIES_ALIASES) or "elk",
                unit_code=unit_code,
                tags_available=available,
                source_url=url,
            )

        for url, label in download_links(html, REPORT_DOWNLOADS_URL):
            if not any(word in label.lower() for word in LEFTOVER_WORDS):
                continue
            try:
                text = await self.fetch_page(url)
            except RetrievalExhausted:
                continue
            for row in tokenize_records(text):
                record = to_record(row, url)
                if record:
                    leftovers.append(record)

        for table in extract_tables(html):
            headers = " ".join(table[0].keys()) if table else ""
            if not any(word in headers for word in LEFTOVER_WORDS):
                continue
            for row in table:
                record = to_record(row, REPORT_DOWNLOADS_URL)
                if record:
                    leftovers.append(record)

        self.log(f"Found {len(leftovers)} leftover tag entries")
        return leftovers
