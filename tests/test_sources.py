"""
Tests for the agency extraction modules, served from mocked HTTP.
"""

import pytest
from django.utils import timezone

from drawdata.fetchers.transport import RetrievalExhausted
from drawdata.sources import colorado
from drawdata.sources.colorado import ColoradoSource, season_date
from drawdata.sources.oregon import REPORT_DOWNLOADS_URL, OregonSource, download_links

ELK_RECAP = colorado.RECAP_URLS[0][0]

RECAP_CSV = (
    "GMU,Year,NR Apps,NR Tags,NR Succ%,Min Pts Drawn (NR)\r\n"
    '10,2025,"1,200",60,5.0%,3\r\n'
    "201,2025,400,0,0,\r\n"
    ",2025,5,5,,\r\n"
    "10,1999,10,1,,\r\n"
)


@pytest.fixture
def colorado_source(mock_transport_factory, memory_store):
    def build(routes):
        return ColoradoSource(store=memory_store, transport=mock_transport_factory(routes))

    return build


class TestColoradoRecaps:
    """Tests for recap-derived units and draw history."""

    @pytest.mark.asyncio
    async def test_units_from_recap(self, colorado_source):
        source = colorado_source({ELK_RECAP: RECAP_CSV})

        units = await source.collect_units()

        assert [(u.species, u.unit_code, u.unit_name) for u in units] == [
            ("elk", "10", "GMU 10"),
            ("elk", "201", "GMU 201"),
        ]

    @pytest.mark.asyncio
    async def test_draw_history_from_recap(self, colorado_source):
        source = colorado_source({ELK_RECAP: RECAP_CSV})

        history = await source.collect_draw_history()

        assert len(history) == 2
        first = history[0]
        assert first.unit_ref == "CO:elk:10"
        assert (first.year, first.applicants, first.tags) == (2025, 1200, 60)
        assert first.odds == 5.0
        assert first.min_points_drawn == 3
        # A zero odds column is left for derivation
        assert history[1].odds is None
        assert history[1].min_points_drawn is None

    @pytest.mark.asyncio
    async def test_recaps_fetched_once_per_run(self, mock_transport_factory, memory_store):
        requests = []
        source = ColoradoSource(
            store=memory_store,
            transport=mock_transport_factory({ELK_RECAP: RECAP_CSV}, requests=requests),
        )

        await source.collect_units()
        await source.collect_draw_history()

        assert [str(r.url) for r in requests].count(ELK_RECAP) == 1

    @pytest.mark.asyncio
    async def test_recap_is_fingerprinted(self, colorado_source, memory_store):
        source = colorado_source({ELK_RECAP: RECAP_CSV})

        await source.collect_units()

        stored = memory_store.lookup("fingerprint", {"source": "CO", "url": ELK_RECAP})
        assert stored[0]["selector_paths"] == [
            "delimited:gmu,year,nr apps,nr tags,nr succ%,min pts drawn (nr)"
        ]

    @pytest.mark.asyncio
    async def test_falls_back_to_statistics_page_links(self, colorado_source):
        stats_page, _ = colorado.STATS_PAGES[0]
        csv_url = "https://cpw.state.co.us/files/elk-2025.csv"
        source = colorado_source({
            stats_page: '<html><body><a href="/files/elk-2025.csv">2025 elk recap</a></body></html>',
            csv_url: RECAP_CSV,
        })

        units = await source.collect_units()

        assert {u.unit_code for u in units} == {"10", "201"}

    @pytest.mark.asyncio
    async def test_nothing_reachable_raises(self, colorado_source):
        source = colorado_source({})

        with pytest.raises(RetrievalExhausted):
            await source.collect_units()


class TestColoradoPages:
    """Tests for deadlines, fees, seasons, regulations and leftovers."""

    @pytest.mark.asyncio
    async def test_deadlines(self, colorado_source):
        source = colorado_source({
            colorado.PRIMARY_DRAW_URL: "<html><body><p>Applications for elk close April 7, 2026.</p></body></html>",
        })

        deadlines = await source.collect_deadlines()

        assert len(deadlines) == 1
        assert deadlines[0].species == "elk"
        assert deadlines[0].deadline_type == "application_close"
        assert deadlines[0].date == "April 7, 2026"
        assert deadlines[0].year == 2026

    @pytest.mark.asyncio
    async def test_fees_merge_structured_and_live(self, colorado_source):
        source = colorado_source({
            colorado.PRIMARY_DRAW_URL: (
                "<html><body>"
                "<p>$825.03 - NR Elk License (verified)</p>"
                "<p>$45.00 per Nonresident small game license</p>"
                "</body></html>"
            ),
        })

        fees = await source.collect_fees()

        structured = len(source.structured_fees())
        assert len(fees) == structured + 1
        live = fees[-1]
        assert live.fee_name == "Nonresident small game license"
        assert live.amount == 45.0
        assert live.residency == "nonresident"
        assert live.notes.startswith("Live-scraped from")

    @pytest.mark.asyncio
    async def test_seasons(self, colorado_source):
        source = colorado_source({
            colorado.BIG_GAME_URL: "<html><body><p>Archery: Sept 2 - Sept 30</p><p>1st Rifle: Oct 14 - 18</p></body></html>",
        })
        year = timezone.now().year

        seasons = await source.collect_seasons()

        assert len(seasons) == 4
        archery = seasons[0]
        assert (archery.species, archery.season_type) == ("elk", "archery")
        assert archery.start_date == f"{year}-09-02"
        assert archery.end_date == f"{year}-09-30"
        rifle = seasons[2]
        assert rifle.season_type == "1st rifle"
        assert rifle.end_date == f"{year}-10-18"

    @pytest.mark.asyncio
    async def test_regulations(self, colorado_source):
        source = colorado_source({
            colorado.BIG_GAME_URL: (
                "<html><body>"
                "<h2>2026 Big Game Regulation Changes</h2>"
                "<h3>Contact us</h3>"
                '<a href="/leftovers">Leftover license list now available</a>'
                "</body></html>"
            ),
        })

        regulations = await source.collect_regulations()

        assert [(r.title, r.category) for r in regulations] == [
            ("2026 Big Game Regulation Changes", "rule_change"),
            ("Leftover license list now available", "leftover_tags"),
        ]

    @pytest.mark.asyncio
    async def test_leftover_tags(self, colorado_source):
        source = colorado_source({
            colorado.LEFTOVER_URLS[0]: (
                "<table><tr><th>GMU</th><th>Species</th><th>Available</th></tr>"
                "<tr><td>10</td><td>Elk</td><td>5</td></tr>"
                "<tr><td>20</td><td>Deer</td><td>0</td></tr></table>"
            ),
        })

        leftovers = await source.collect_leftover_tags()

        assert [(t.species, t.unit_code, t.tags_available) for t in leftovers] == [("elk", "10", 5)]

    def test_season_date(self):
        assert season_date("Sept 2", 2026) == "2026-09-02"
        assert season_date("Smarch 2", 2026) is None


PORTAL = """
<html><body>
  <h1>Report Downloads</h1>
  <a href="/files/controlled_hunt_draw_2025.csv">Controlled Hunt Draw Statistics 2025</a>
  <a href="/files/leftover.csv">Leftover Tags</a>
  <a href="/files/harvest.pdf">Harvest Report</a>
  <table>
    <tr><th>Hunt</th><th>Species</th><th>Remaining</th></tr>
    <tr><td>251</td><td>Mule Deer</td><td>2</td></tr>
  </table>
</body></html>
"""

DRAW_CSV = (
    "Hunt Number,Species,Year,1st Choice Applicants,Tags,Draw Odds,Pref Point Cutoff\n"
    "216A,Rocky Mountain Elk,2025,400,20,,4\n"
    "300,Blacktail Deer,2025,100,50,50%,\n"
    "999,Unicorn,2025,1,1,,\n"
)

OR_BASE = "https://odfw.huntfishoregon.com"


@pytest.fixture
def oregon_source(mock_transport_factory, memory_store):
    routes = {
        REPORT_DOWNLOADS_URL: PORTAL,
        f"{OR_BASE}/files/controlled_hunt_draw_2025.csv": DRAW_CSV,
        f"{OR_BASE}/files/leftover.csv": "Hunt,Species,Remaining\n216A,Elk,3\n",
    }
    return OregonSource(store=memory_store, transport=mock_transport_factory(routes))


class TestOregon:
    """Tests for the ODFW report downloads portal."""

    def test_download_links_only_csv(self):
        links = download_links(PORTAL, REPORT_DOWNLOADS_URL)
        assert [label for _, label in links] == [
            "Controlled Hunt Draw Statistics 2025",
            "Leftover Tags",
        ]

    @pytest.mark.asyncio
    async def test_units(self, oregon_source):
        units = await oregon_source.collect_units()

        assert [(u.species, u.unit_code, u.unit_name) for u in units] == [
            ("elk", "216A", "Hunt 216A"),
            ("blacktail", "300", "Hunt 300"),
        ]

    @pytest.mark.asyncio
    async def test_draw_history(self, oregon_source):
        history = await oregon_source.collect_draw_history()

        assert [(h.unit_ref, h.applicants, h.tags, h.odds, h.min_points_drawn) for h in history] == [
            ("OR:elk:216A", 400, 20, None, 4),
            ("OR:blacktail:300", 100, 50, 50.0, None),
        ]

    @pytest.mark.asyncio
    async def test_leftover_tags_from_csv_and_table(self, oregon_source):
        leftovers = await oregon_source.collect_leftover_tags()

        assert [(t.species, t.unit_code, t.tags_available) for t in leftovers] == [
            ("elk", "216A", 3),
            ("mule_deer", "251", 2),
        ]

    @pytest.mark.asyncio
    async def test_portal_unreachable_raises(self, mock_transport_factory, memory_store):
        source = OregonSource(store=memory_store, transport=mock_transport_factory({}))

        with pytest.raises(RetrievalExhausted):
            await source.collect_units()
