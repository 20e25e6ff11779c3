"""
Tests for the Markdown / HTML report.
"""
import pandas as pd
import pytest

from utils.report_writer import SurveyReport


@pytest.fixture
def chart(tmp_path):
    charts = tmp_path / "charts"
    charts.mkdir()
    path = charts / "q03_medians_by_country.png"
    path.write_bytes(b"\x89PNG")
    return path


@pytest.fixture
def report(chart):
    report = SurveyReport("Tabs vs Spaces", subtitle="Synthetic run")
    section = report.add_section("Within countries", ["Spaces users earn more in most countries."])
    frame = pd.DataFrame({'Country': ['Germany', 'Poland'], 'Spaces Premium (%)': [8.12345, -1.5]})
    report.add_table(section, "Median salary by country", frame)
    report.add_images(section, [str(chart), str(chart.parent / "missing.png")])
    return report


def test_markdown_layout(report, tmp_path):
    md = report.to_markdown(tmp_path)
    assert md.startswith("# Tabs vs Spaces")
    assert "## Within countries" in md
    assert "**Median salary by country**" in md
    assert "8.123" in md
    assert "![q03 medians by country](charts/q03_medians_by_country.png)" in md
    assert "missing.png" not in md


def test_empty_table_becomes_note(tmp_path):
    report = SurveyReport("T")
    section = report.add_section("S")
    report.add_table(section, "Medians by language", pd.DataFrame())
    assert section.tables == []
    assert section.paragraphs == []
    assert section.notes == ["Medians by language: no data with enough respondents."]
    assert "_Medians by language: no data with enough respondents._" in report.to_markdown(tmp_path)


def test_note_is_styled_not_underscored_in_html(tmp_path):
    report = SurveyReport("T")
    section = report.add_section("S")
    report.add_table(section, "Medians by language", None)
    html = report.to_html(tmp_path)
    assert "<em>Medians by language: no data with enough respondents.</em>" in html
    assert "_Medians by language" not in html



def test_long_table_is_truncated(tmp_path):
    report = SurveyReport("T")
    section = report.add_section("S")
    report.add_table(section, "Many rows", pd.DataFrame({'x': range(50)}), max_rows=5)
    md = report.to_markdown(tmp_path)
    assert "_Showing 5 of 50 rows._" in md


def test_interactive_chart_is_linked(tmp_path):
    html_chart = tmp_path / "box.html"
    html_chart.write_text("<html></html>")
    report = SurveyReport("T")
    section = report.add_section("S")
    report.add_images(section, [str(html_chart)])
    assert "[Interactive chart](box.html)" in report.to_markdown(tmp_path)


def test_html_rendering(report, tmp_path):
    html = report.to_html(tmp_path)
    assert "<table" in html
    assert "Within countries" in html
    assert 'src="charts/q03_medians_by_country.png"' in html


def test_save_writes_both_files(report, tmp_path):
    written = report.save(tmp_path / "out")
    assert [p.split("/")[-1].split("\\")[-1] for p in written] == ["report.md", "report.html"]
    assert (tmp_path / "out" / "report.md").read_text(encoding="utf-8").startswith("# Tabs vs Spaces")


def test_save_markdown_only(report, tmp_path):
    written = report.save(tmp_path, render_html=False)
    assert len(written) == 1
    assert not (tmp_path / "report.html").exists()
