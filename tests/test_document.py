from __future__ import annotations

import pytest

from siteaudit_agent.document import parse_document
from siteaudit_agent.errors import ParseFailure

from conftest import PAGE_URL, build_page


@pytest.mark.parametrize("markup", ["", "   \n", None])
def test_empty_markup_is_a_parse_failure(markup):
    with pytest.raises(ParseFailure):
        parse_document(markup, PAGE_URL)


def test_truncated_markup_still_parses():
    doc = parse_document("<html><body><div class='a'><p>open paragraph", PAGE_URL)
    assert doc.find_all("p")
    assert "open paragraph" in doc.body_text()


def test_body_text_skips_scripts_styles_and_comments():
    doc = parse_document(
        build_page(
            "<style>.x{color:red}</style>",
            "<p>sichtbar</p><script>var hidden = 1;</script><noscript>aus</noscript><!-- kommentar -->",
        ),
        PAGE_URL,
    )
    text = doc.body_text()
    assert "sichtbar" in text
    assert "hidden" not in text
    assert "aus" not in text
    assert "kommentar" not in text


def test_attribute_queries_are_case_insensitive():
    doc = parse_document(build_page(body='<div class="Site-Cookie-Banner big">x</div><div id="other">y</div>'), PAGE_URL)
    matches = doc.with_attr_containing("class", "cookie")
    assert len(matches) == 1
    assert doc.attr(matches[0], "class") == "Site-Cookie-Banner big"
    assert doc.attr(matches[0], "missing") is None


def test_hostname_and_outer_html():
    doc = parse_document(build_page(body="<span id='s'>hi</span>"), "https://Shop.Example.de/a")
    assert doc.hostname == "shop.example.de"
    span = doc.find_all("span")[0]
    assert doc.outer_html(span) == '<span id="s">hi</span>'
    assert "<span" in doc.outer_html()
