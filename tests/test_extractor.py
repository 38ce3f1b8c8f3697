"""Layered field extraction from results pages."""
from __future__ import annotations

from scrapers.extractor import extract, extract_fields, pick
from tests.conftest import FakePage


class TestStrategies:
    def test_table_rows(self) -> None:
        html = """
        <table>
          <tr><th>Name</th><td>JANE DOE</td></tr>
          <tr><td>Status:</td><td>Active</td></tr>
          <tr><td>Only one cell</td></tr>
        </table>
        """
        fields = extract_fields(html, "")
        assert fields["Name"] == "JANE DOE"
        assert fields["Status"] == "Active"
        assert "Only one cell" not in fields

    def test_definition_list(self) -> None:
        html = "<dl><dt>Expiration Date</dt><dd>12/31/2025</dd></dl>"
        assert extract_fields(html, "")["Expiration Date"] == "12/31/2025"

    def test_labeled_blocks(self) -> None:
        html = """
        <div class="field"><span class="label">License Type</span><span>Registered Nurse</span></div>
        <div class="form-group"><label>Status</label><div>Active</div></div>
        """
        fields = extract_fields(html, "")
        assert fields["License Type"] == "Registered Nurse"
        assert fields["Status"] == "Active"

    def test_text_lines_colon_and_next_line(self) -> None:
        text = "License Status: Expired\nExpiration\n06/30/2024"
        fields = extract_fields("", text)
        assert fields["Status"] == "Expired"
        assert fields["Expiration"] == "06/30/2024"


class TestPrecedence:
    def test_table_beats_free_text(self) -> None:
        html = "<table><tr><td>Status</td><td>Active</td></tr></table>"
        text = "Status: Expired (renewal history)"
        assert extract_fields(html, text)["Status"] == "Active"

    def test_hidden_markup_ignored(self) -> None:
        html = """
        <table style="display:none"><tr><td>Status</td><td>Revoked</td></tr></table>
        <table><tr><td>Status</td><td>Active</td></tr></table>
        <script>var Status = "x";</script>
        """
        assert extract_fields(html, "")["Status"] == "Active"

    def test_first_writer_wins_within_tables(self) -> None:
        html = """
        <table><tr><td>Status</td><td>Active</td></tr></table>
        <table><tr><td>Status</td><td>Expired</td></tr></table>
        """
        assert extract_fields(html, "")["Status"] == "Active"


class TestPick:
    def test_case_insensitive(self) -> None:
        assert pick({"LICENSE STATUS": "Active"}, "Status", "License Status") == "Active"

    def test_label_order_wins(self) -> None:
        fields = {"Expires": "01/01/2026", "Expiration Date": "12/31/2025"}
        assert pick(fields, "Expiration Date", "Expires") == "12/31/2025"

    def test_missing(self) -> None:
        assert pick({"Name": ""}, "Name", "Status") is None


async def test_extract_reads_rendered_page() -> None:
    page = FakePage(
        html="<table><tr><td>Name</td><td>JANE DOE</td></tr></table>",
        text="Name\tJANE DOE\nStatus: Active",
    )
    fields = await extract(page)
    assert fields["Name"] == "JANE DOE"
    assert fields["Status"] == "Active"
