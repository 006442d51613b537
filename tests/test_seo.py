from __future__ import annotations

from siteaudit_agent.analyzer import analyze_markup

from conftest import PAGE_URL, build_page, words

GOOD_DESCRIPTION = "d" * 140


def _seo(head="", body=""):
    return analyze_markup("seo", build_page(head, body), PAGE_URL)


def test_title_in_band_gets_full_points():
    report = _seo(f"<title>{'t' * 45}</title>")
    assert report.title_meta.title.status == "good"
    assert report.title_meta.title.length == 45
    assert report.score_details["title"].points == 25


def test_short_title_gets_partial_points():
    report = _seo(f"<title>{'t' * 10}</title>")
    assert report.title_meta.title.status == "warning"
    assert report.score_details["title"].points == 15
    assert any(r.title == "Title zu kurz" for r in report.recommendations)


def test_missing_title_is_an_error_with_high_priority_recommendation():
    report = _seo()
    assert report.title_meta.title.status == "error"
    assert report.score_details["title"].points == 0
    rec = next(r for r in report.recommendations if r.title == "Title-Tag fehlt")
    assert rec.priority == "high"


def test_whitespace_title_counts_as_missing():
    assert _seo("<title>   </title>").title_meta.title.status == "error"


def test_svg_title_is_not_the_page_title():
    report = _seo(body="<svg><title>Icon</title></svg>")
    assert report.title_meta.title.status == "error"


def test_no_images_gets_full_alt_points():
    report = _seo()
    assert report.images.total == 0
    assert report.score_details["images"].points == 15


def test_alt_coverage_is_proportional():
    report = _seo(body='<img src="a.png" alt="A"><img src="b.png">')
    assert report.images.with_alt == 1
    assert report.images.missing_alt == 1
    assert report.score_details["images"].points == 8
    assert any(r.description == "1 Bilder ohne Alt-Text gefunden" for r in report.recommendations)


def test_headings_and_h1_rules():
    report = _seo(body="<h1>Eins</h1><h2>Zwei</h2><h1>Noch eins</h1>")
    assert [h.level for h in report.headings] == ["h1", "h2", "h1"]
    assert report.score_details["headings"].points == 10
    assert report.heading_analysis.startswith("2 H1")


def test_link_classification():
    body = (
        '<a href="/kontakt">intern</a>'
        '<a href="https://example.de/shop">ohne www</a>'
        '<a href="https://other.org/">extern</a>'
        '<a href="mailto:info@example.de">mail</a>'
        '<a href="#top">anker</a>'
        '<a href="http://[invalid">kaputt</a>'
    )
    links = _seo(body=body).links
    assert links.internal == 2
    assert links.external == 1
    assert links.issues == ["Ungültige URL: http://[invalid"]


def test_well_optimized_page_scores_excellent():
    head = f'<title>{"t" * 45}</title><meta name="description" content="{GOOD_DESCRIPTION}">'
    body = f'<h1>Überschrift</h1><p>{words(320)}</p><a href="/about">Über uns</a><img src="x.png" alt="x">'
    report = _seo(head, body)
    assert report.score == 100
    assert report.band == "excellent"
    assert report.recommendations == []
    assert report.rubric_version == "seo-1"


def test_score_always_in_bounds():
    for markup in ("<p>x</p>", "<html>", "<<<>>>", "<div>" * 200):
        report = analyze_markup("seo", markup, PAGE_URL)
        assert 0 <= report.score <= 100


def test_identical_markup_gives_identical_reports():
    markup = build_page("<title>Gleich</title>", f"<h1>A</h1><p>{words(50)}</p><img src='a.jpg'>")
    first = analyze_markup("seo", markup, PAGE_URL).model_dump(exclude={"timestamp"})
    second = analyze_markup("seo", markup, PAGE_URL).model_dump(exclude={"timestamp"})
    assert first == second


def test_recommendations_keep_rubric_order():
    report = _seo(body='<p>kurz</p><img src="a.png">')
    assert [r.title for r in report.recommendations] == [
        "Title-Tag fehlt",
        "Meta Description fehlt",
        "H1-Überschrift fehlt",
        "Fehlende Alt-Texte",
        "Wenig Content",
        "Keine internen Links",
    ]
