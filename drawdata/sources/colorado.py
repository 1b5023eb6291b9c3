"""
Colorado Parks & Wildlife (CPW).

CPW publishes draw recaps as CSV downloads per species. There is no
standalone unit list, so units are derived from the recaps themselves.
Fees come from a verified structured list plus a live scrape of the fee
pages; deadlines, seasons and announcements are read from the big-game
pages.

CPW draw system: hybrid preference draw (80% to top point holders, 20%
random), applied per hunt code with first and second choices.

Recap URLs change yearly; update RECAP_URLS when CPW publishes new data.
"""

import re
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup
from django.utils import timezone

from drawdata.fetchers.transport import RetrievalExhausted
from drawdata.sources.base import BaseSource
from drawdata.sources.fees import FeeDeduplicator
from drawdata.sources.parsing import (
    first_value,
    match_species,
    parse_amount,
    parse_count,
    parse_optional_int,
    parse_percent,
)
from drawdata.sources.types import (
    DeadlineRecord,
    DrawHistoryRecord,
    FeeRecord,
    LeftoverTagRecord,
    RegulationRecord,
    SeasonRecord,
    UnitRecord,
)
from drawdata.utils.delimited import tokenize_records
from drawdata.utils.html_tables import extract_links, extract_tables

CPW_BASE = "https://cpw.state.co.us"
BIG_GAME_URL = f"{CPW_BASE}/hunting/big-game"
PRIMARY_DRAW_URL = f"{CPW_BASE}/hunting/big-game/primary-draw"
FEE_PAGE_URLS = [PRIMARY_DRAW_URL, f"{CPW_BASE}/hunting/licenses-and-fees"]
LEFTOVER_URLS = [
    f"{CPW_BASE}/hunting/big-game/leftover-licenses",
    f"{CPW_BASE}/hunting/big-game/secondary-draw",
]

_STATS = f"{CPW_BASE}/Documents/Hunting/BigGame/Statistics"

RECAP_URLS: List[Tuple[str, str]] = [
    (f"{_STATS}/Elk/ElkDrawRecap.csv", "elk"),
    (f"{_STATS}/Deer/DeerDrawRecap.csv", "mule_deer"),
    (f"{_STATS}/Bear/BearDrawRecap.csv", "black_bear"),
    (f"{_STATS}/Moose/MooseDrawRecap.csv", "moose"),
    (f"{_STATS}/Pronghorn/PronghornDrawRecap.csv", "pronghorn"),
    (f"{_STATS}/Elk/ElkDrawOdds.csv", "elk"),
    (f"{_STATS}/Deer/DeerDrawOdds.csv", "mule_deer"),
]

STATS_PAGES: List[Tuple[str, str]] = [
    (f"{BIG_GAME_URL}/elk/statistics", "elk"),
    (f"{BIG_GAME_URL}/deer/statistics", "mule_deer"),
    (f"{BIG_GAME_URL}/bear/statistics", "black_bear"),
    (f"{BIG_GAME_URL}/moose/statistics", "moose"),
    (f"{BIG_GAME_URL}/pronghorn/statistics", "pronghorn"),
]

SPECIES_ALIASES = {
    "elk": "elk",
    "deer": "mule_deer",
    "mule": "mule_deer",
    "bear": "black_bear",
    "moose": "moose",
    "pronghorn": "pronghorn",
    "antelope": "pronghorn",
    "sheep": "bighorn_sheep",
    "goat": "mountain_goat",
    "lion": "mountain_lion",
    "cougar": "mountain_lion",
}

# Verified from CPW fee tables: (species, label, amount)
NONRESIDENT_TAG_COSTS = [
    ("elk", "NR Elk License", 825.03),
    ("mule_deer", "NR Deer License", 494.47),
    ("black_bear", "NR Bear License", 294.75),
    ("moose", "NR Moose License", 2758.49),
    ("pronghorn", "NR Pronghorn License", 494.47),
    ("bighorn_sheep", "NR Bighorn Sheep License", 2758.49),
    ("mountain_goat", "NR Mountain Goat License", 2758.49),
    ("mountain_lion", "NR Mountain Lion License", 825.03),
]
RESIDENT_TAG_COSTS = [
    ("elk", "Resident Elk License", 54.08),
    ("mule_deer", "Resident Deer License", 35.08),
    ("black_bear", "Resident Bear License", 35.08),
    ("moose", "Resident Moose License", 303.08),
    ("pronghorn", "Resident Pronghorn License", 35.08),
    ("bighorn_sheep", "Resident Bighorn Sheep License", 303.08),
    ("mountain_goat", "Resident Mountain Goat License", 303.08),
    ("mountain_lion", "Resident Mountain Lion License", 35.08),
]

UNIT_KEYS = ("gmu", "unit", "hunt code", "hunt_code", "game management unit", "hunt area")
YEAR_KEYS = ("year", "draw year", "season year")
APPLICANT_KEYS = (
    "nr apps", "nr applicants", "nonresident apps", "nr 1st choice apps",
    "total apps", "total applicants",
)
TAG_KEYS = (
    "nr tags", "nr licenses", "nonresident tags", "nr licenses issued",
    "total tags", "total licenses",
)
ODDS_KEYS = (
    "nr succ%", "nr success", "nr success%", "nonresident success%",
    "nr draw%", "total succ%", "draw odds",
)
MIN_POINT_KEYS = (
    "min pts drawn (nr)", "min points drawn", "min pts", "min pref pts",
    "nr min pts", "pref pts required",
)

DEADLINE_PATTERNS = [
    re.compile(
        r"(?:application|deadline|opens?|closes?|due|draw\s+results?)[^.]*?"
        r"([A-Z][a-z]+\.?\s+\d{1,2},?\s+\d{4})",
        re.IGNORECASE,
    ),
    re.compile(r"(\d{1,2}/\d{1,2}/\d{4})"),
]

FEE_PATTERN = re.compile(
    r"\$(\d+(?:,\d{3})*(?:\.\d{2})?)\s*(?:[-–]|for|per)?\s*([^\n$]{5,60})",
    re.IGNORECASE,
)

_MONTH = r"(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\.?"
SEASON_PATTERN = re.compile(
    r"(archery|muzzleloader|1st rifle|2nd rifle|3rd rifle|4th rifle|rifle|general)[^:\n]*:\s*"
    rf"({_MONTH}\s+\d{{1,2}})\s*[-–]\s*({_MONTH}\s+\d{{1,2}}|\d{{1,2}})",
    re.IGNORECASE,
)

REGULATION_KEYWORDS = (
    "regulation", "change", "update", "announcement", "closure",
    "leftover", "new rule", "draw",
)


def page_text(html: str) -> str:
    return BeautifulSoup(html, "html.parser").get_text("\n", strip=True)


def species_in_context(text: str) -> List[str]:
    """All species mentioned in a snippet; elk when none are."""
    lowered = text.lower()
    found = []
    for alias, species in SPECIES_ALIASES.items():
        if alias in lowered and species not in found:
            found.append(species)
    return found or ["elk"]


def season_date(month_day: str, year: int) -> Optional[str]:
    """Turn "Sept 2" into "YYYY-09-02"."""
    match = re.match(r"([A-Za-z]+)\.?\s+(\d{1,2})", month_day.strip())
    if not match:
        return None
    try:
        parsed = datetime.strptime(f"{match.group(1)[:3].title()} {match.group(2)} {year}", "%b %d %Y")
    except ValueError:
        return None
    return parsed.date().isoformat()


class ColoradoSource(BaseSource):
    source_id = "CO"
    source_name = "Colorado"
    source_url = BIG_GAME_URL

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._recaps: Optional[List[Tuple[str, List[Dict[str, str]]]]] = None

    # -------------------------------------------------------------------------
    # Draw recaps
    # -------------------------------------------------------------------------

    async def _load_recaps(self) -> List[Tuple[str, List[Dict[str, str]]]]:
        """
        Fetch recap CSVs once per run, as (species, rows) pairs.

        Direct URLs are tried first; when none yields data the statistics
        pages are scanned for CSV links. Raises the last retrieval error
        when nothing at all could be retrieved.
        """
        if self._recaps is not None:
            return self._recaps

        recaps = []
        last_error: Optional[RetrievalExhausted] = None

        for url, species in RECAP_URLS:
            try:
                text = await self.fetch_page(url)
            except RetrievalExhausted as e:
                self.log(f"{species} recap unavailable: {url}")
                last_error = e
                continue
            await self.check_structure(text, url)
            rows = tokenize_records(text)
            if rows:
                recaps.append((species, rows))

        if not recaps:
            self.log("No recap data at direct URLs; scanning statistics pages for links")
            for page_url, species in STATS_PAGES:
                try:
                    html = await self.fetch_page(page_url)
                except RetrievalExhausted as e:
                    last_error = e
                    continue
                await self.check_structure(html, page_url)
                for link in extract_links(html, page_url, (".csv",)):
                    try:
                        rows = tokenize_records(await self.fetch_page(link))
                    except RetrievalExhausted as e:
                        last_error = e
                        continue
                    if rows:
                        recaps.append((species, rows))

        if not recaps and last_error is not None:
            raise last_error

        self._recaps = recaps
        return recaps

    @staticmethod
    def unit_code(row: Dict[str, str]) -> str:
        return first_value(row, *UNIT_KEYS)

    def parse_recap_row(self, row: Dict[str, str], species: str) -> Optional[DrawHistoryRecord]:
        """Parse one recap row; rows without a unit or a plausible year are skipped."""
        unit_code = self.unit_code(row)
        if not unit_code:
            return None
        year = parse_count(first_value(row, *YEAR_KEYS))
        if year < 2000:
            return None

        return DrawHistoryRecord(
            unit_ref=f"{self.source_id}:{species}:{unit_code}",
            year=year,
            applicants=parse_count(first_value(row, *APPLICANT_KEYS)),
            tags=parse_count(first_value(row, *TAG_KEYS)),
            odds=parse_percent(first_value(row, *ODDS_KEYS)),
            min_points_drawn=parse_optional_int(first_value(row, *MIN_POINT_KEYS)),
        )

    async def collect_units(self) -> List[UnitRecord]:
        units = []
        seen = set()
        for species, rows in await self._load_recaps():
            for row in rows:
                code = self.unit_code(row)
                if not code or (species, code) in seen:
                    continue
                seen.add((species, code))
                units.append(
                    UnitRecord(
                        source=self.source_id,
                        species=species,
                        unit_code=code,
                        unit_name=f"GMU {code}",
                    )
                )
        self.log(f"Extracted {len(units)} unique units from recap data")
        return units

    async def collect_draw_history(self) -> List[DrawHistoryRecord]:
        results = []
        for species, rows in await self._load_recaps():
            parsed = [self.parse_recap_row(row, species) for row in rows]
            results.extend(record for record in parsed if record is not None)
        self.log(f"Total draw history rows: {len(results)}")
        return results

    # -------------------------------------------------------------------------
    # Deadlines, fees, seasons, regulations, leftovers
    # -------------------------------------------------------------------------

    async def collect_deadlines(self) -> List[DeadlineRecord]:
        html = await self.fetch_page(PRIMARY_DRAW_URL)
        await self.check_structure(html, PRIMARY_DRAW_URL)
        text = page_text(html)
        current_year = timezone.now().year

        deadlines = []
        seen = set()
        for pattern in DEADLINE_PATTERNS:
            for match in pattern.finditer(text):
                context = text[max(0, match.start() - 100): match.end() + 100].lower()
                date_text = match.group(1)

                deadline_type = "application_close"
                if "open" in context:
                    deadline_type = "application_open"
                if "result" in context:
                    deadline_type = "draw_results"
                if "leftover" in context or "secondary" in context:
                    deadline_type = "leftover"

                year_match = re.search(r"\d{4}", date_text)
                year = int(year_match.group()) if year_match else current_year

                for species in species_in_context(context):
                    key = (species, deadline_type, year)
                    if key in seen:
                        continue
                    seen.add(key)
                    deadlines.append(
                        DeadlineRecord(
                            source=self.source_id,
                            species=species,
                            deadline_type=deadline_type,
                            date=date_text,
                            year=year,
                            notes=" ".join(context.split())[:200],
                        )
                    )

        self.log(f"Found {len(deadlines)} deadlines")
        return deadlines

    def structured_fees(self) -> List[FeeRecord]:
        """Verified per-species tag costs and license-level fees."""
        fees = [
            FeeRecord(
                source=self.source_id,
                fee_name=label,
                amount=amount,
                residency="nonresident",
                species=species,
                frequency="per_species",
                notes="CPW nonresident tag/license cost",
            )
            for species, label, amount in NONRESIDENT_TAG_COSTS
        ]
        fees += [
            FeeRecord(
                source=self.source_id,
                fee_name=label,
                amount=amount,
                residency="resident",
                species=species,
                frequency="per_species",
                notes="CPW resident tag/license cost",
            )
            for species, label, amount in RESIDENT_TAG_COSTS
        ]
        fees += [
            FeeRecord(
                source=self.source_id,
                fee_name="NR Qualifying License",
                amount=101.49,
                residency="nonresident",
                frequency="annual",
                notes="Required NR hunting license to apply in the draw",
            ),
            FeeRecord(
                source=self.source_id,
                fee_name="Application Fee",
                amount=11,
                residency="both",
                frequency="per_species",
                notes=(
                    "Per-species application fee for the primary draw. Preference "
                    "points are free for common species and $100 for "
                    "once-in-a-lifetime species"
                ),
            ),
        ]
        return fees

    def scrape_fee_text(self, text: str, url: str, dedup: FeeDeduplicator) -> List[FeeRecord]:
        """Pull "$amount label" pairs from page text, skipping known fees."""
        fees = []
        for match in FEE_PATTERN.finditer(text):
            amount = parse_amount(match.group(1))
            label = " ".join(match.group(2).split())
            if amount is None or not 0 < amount < 5000 or len(label) <= 3:
                continue
            if not dedup.add(amount, label):
                continue

            lowered = label.lower()
            if "nonresident" in lowered:
                residency = "nonresident"
            elif "resident" in lowered:
                residency = "resident"
            else:
                residency = "both"

            if "per species" in lowered:
                frequency = "per_species"
            elif "annual" in lowered:
                frequency = "annual"
            else:
                frequency = "one_time"

            fees.append(
                FeeRecord(
                    source=self.source_id,
                    fee_name=label[:100],
                    amount=amount,
                    residency=residency,
                    species=match_species(lowered, SPECIES_ALIASES),
                    frequency=frequency,
                    notes=f"Live-scraped from {url}",
                )
            )
        return fees

    async def collect_fees(self) -> List[FeeRecord]:
        fees = self.structured_fees()
        dedup = FeeDeduplicator(fees)

        self.log("Attempting live fee scrape from CPW pages...")
        for url in FEE_PAGE_URLS:
            try:
                html = await self.fetch_page(url)
            except RetrievalExhausted as e:
                self.log(f"Live fee scrape failed for {url}: {e}")
                continue
            fees.extend(self.scrape_fee_text(page_text(html), url, dedup))

        self.log(f"Found {len(fees)} fee entries")
        return fees

    async def collect_seasons(self) -> List[SeasonRecord]:
        html = await self.fetch_page(BIG_GAME_URL)
        await self.check_structure(html, BIG_GAME_URL)
        year = timezone.now().year

        seasons = []
        for match in SEASON_PATTERN.finditer(page_text(html)):
            season_type = match.group(1).lower()
            start = season_date(match.group(2), year)
            end_text = match.group(3)
            if end_text.isdigit():
                # "Sep 2-30": end shares the start month
                end_text = f"{match.group(2).split()[0]} {end_text}"
            end = season_date(end_text, year)
            if not start or not end:
                continue
            for species in ("elk", "mule_deer"):
                seasons.append(
                    SeasonRecord(
                        source=self.source_id,
                        species=species,
                        season_type=season_type,
                        start_date=start,
                        end_date=end,
                        year=year,
                    )
                )

        self.log(f"Found {len(seasons)} season entries")
        return seasons

    async def collect_regulations(self) -> List[RegulationRecord]:
        html = await self.fetch_page(BIG_GAME_URL)
        soup = BeautifulSoup(html, "html.parser")

        regulations = []
        seen = set()
        for element in soup.select("h2, h3, h4, a"):
            text = " ".join(element.get_text(" ", strip=True).split())
            if not 10 <= len(text) <= 300 or text in seen:
                continue
            lowered = text.lower()
            if not any(keyword in lowered for keyword in REGULATION_KEYWORDS):
                continue
            seen.add(text)

            category = "announcement"
            if "regulation" in lowered or "rule" in lowered:
                category = "rule_change"
            if "closure" in lowered or "emergency" in lowered:
                category = "emergency_closure"
            if "leftover" in lowered:
                category = "leftover_tags"

            regulations.append(
                RegulationRecord(
                    source=self.source_id,
                    title=text[:200],
                    summary=text,
                    source_url=BIG_GAME_URL,
                    category=category,
                )
            )

        self.log(f"Found {len(regulations)} regulation entries")
        return regulations

    async def collect_leftover_tags(self) -> List[LeftoverTagRecord]:
        leftovers = []
        for url in LEFTOVER_URLS:
            try:
                html = await self.fetch_page(url)
            except RetrievalExhausted:
                # Pages only exist during the leftover season
                continue
            for table in extract_tables(html):
                for row in table:
                    unit_code = first_value(row, "gmu", "unit", "hunt code")
                    available = parse_count(first_value(row, "available", "remaining", "tags"))
                    if not unit_code or available <= 0:
                        continue
                    leftovers.append(
                        LeftoverTagRecord(
                            source=self.source_id,
                            species=match_species(row.get("species", ""), SPECIES_ALIASES) or "elk",
                            unit_code=unit_code,
                            tags_available=available,
                            source_url=url,
                        )
                    )

        self.log(f"Found {len(leftovers)} leftover tag entries")
        return leftovers
