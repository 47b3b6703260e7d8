"""Tests for the CSV source import."""

import pytest

from pickboard.models.types import Source
from pickboard.scripts.import_sources import import_rows, is_active, normalize_url, read_rows

CSV = """Division,Team,Blog Name,URL,Network Type,Picks Format,Scraping Priority
AFC West,Kansas City Chiefs,Arrowhead Pride,arrowheadpride.com,SB Nation,Weekly column,Tier 1
AFC East,Bills,Buffalo Rumblings,https://www.buffalorumblings.com,SB Nation,Staff picks,Tier 3 - occasional
NFC East,Giants,Big Blue View,bigblueview.com,,Staff picks,Tier 4
,,,,,,
NFC West,Rams,Turf Show Times,,SB Nation,Staff picks,Tier 2
"""


class TestHelpers:
    def test_normalize_url(self):
        assert normalize_url("arrowheadpride.com") == "https://arrowheadpride.com"
        assert normalize_url(" http://x.test ") == "http://x.test"
        assert normalize_url("") == ""

    def test_is_active(self):
        assert is_active("Tier 1")
        assert is_active("tier 3 - occasional")
        assert not is_active("Tier 4")
        assert not is_active("")


class TestImport:
    def test_read_rows_skips_blank(self, tmp_path):
        path = tmp_path / "sources.csv"
        path.write_text(CSV, encoding="utf-8")
        rows = read_rows(str(path))
        assert [r["blog name"] for r in rows] == ["Arrowhead Pride", "Buffalo Rumblings", "Big Blue View", "Turf Show Times"]

    @pytest.mark.asyncio
    async def test_import_rows(self, repo, tmp_path):
        path = tmp_path / "sources.csv"
        path.write_text(CSV, encoding="utf-8")
        await repo.upsert_source(Source(name="Buffalo Rumblings", base_url="https://www.buffalorumblings.com"))

        counts = await import_rows(repo, read_rows(str(path)))

        assert (counts.imported, counts.skipped, counts.errors, counts.total) == (2, 2, 0, 4)
        arrowhead = await repo.find_source_by_url("https://arrowheadpride.com")
        assert arrowhead.associated_team == "KC"
        assert arrowhead.category == "SB Nation"
        assert arrowhead.active
        giants = await repo.find_source_by_url("https://bigblueview.com")
        assert giants.associated_team == "NYG"
        assert giants.category == "Staff picks"
        assert not giants.active
