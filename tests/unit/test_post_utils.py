from datetime import UTC, datetime, timedelta, timezone
import re

import pytest

from services.post_utils import (
    blog_title_for_host,
    generate_snippet,
    html_to_text,
    parse_published_at,
    slugify,
)

SLUG_RE = re.compile(r"^[a-z0-9_]+(-[a-z0-9_]+)*$")


@pytest.mark.unit
@pytest.mark.parametrize(
    ("title", "expected"),
    [
        ("Hello World", "hello-world"),
        ("  Hello,   World!  ", "hello-world"),
        ("Python 3.12 -- what's new?", "python-312-whats-new"),
        ("snake_case stays", "snake_case-stays"),
        ("Café au lait", "caf-au-lait"),
        ("---", ""),
        ("!!!", ""),
    ],
)
def test_slugify_examples(title: str, expected: str):
    assert slugify(title) == expected


@pytest.mark.unit
@pytest.mark.parametrize(
    "title",
    ["Hello World", "  a  b  c ", "Über-Straße 12", "x--y---z", "-leading and trailing-", "Tabs\tand\nnewlines"],
)
def test_slugify_output_shape(title: str):
    slug = slugify(title)
    assert slug == "" or SLUG_RE.match(slug)
    assert slug == slug.lower()
    assert "--" not in slug
    assert not slug.startswith("-") and not slug.endswith("-")


@pytest.mark.unit
def test_slugify_is_idempotent():
    once = slugify("Deploying FastAPI behind a Reverse Proxy")
    assert slugify(once) == once


@pytest.mark.unit
def test_html_to_text_strips_tags_and_collapses_whitespace():
    assert html_to_text("<p>Hello <b>world</b></p>") == "Hello world"
    assert html_to_text("<h1>Title</h1>\n\n<p>Body   text</p>") == "Title Body text"
    assert html_to_text(None) == ""


@pytest.mark.unit
def test_snippet_of_simple_paragraph():
    assert generate_snippet("<p>Hello <b>world</b></p>") == "Hello world"


@pytest.mark.unit
def test_snippet_of_trivially_short_text_is_empty():
    assert generate_snippet("<p>Tiny</p>") == ""
    assert generate_snippet("<p>0123456789</p>") == ""
    assert generate_snippet("") == ""


@pytest.mark.unit
def test_snippet_truncates_on_word_boundary_with_ellipsis():
    html = "<p>" + " ".join(["word"] * 100) + "</p>"

    snippet = generate_snippet(html, max_length=50)

    assert snippet.endswith("...")
    assert len(snippet) <= 50
    assert snippet[:-3].split(" ") == ["word"] * len(snippet[:-3].split(" "))


@pytest.mark.unit
def test_snippet_truncates_single_long_word():
    snippet = generate_snippet("<p>" + "a" * 400 + "</p>", max_length=100)

    assert snippet == "a" * 97 + "..."


@pytest.mark.unit
def test_snippet_at_exact_limit_is_not_truncated():
    text = "x" * 250
    assert generate_snippet(f"<div>{text}</div>") == text


@pytest.mark.unit
def test_parse_published_at_accepts_dates_and_datetimes():
    assert parse_published_at("2024-03-01") == datetime(2024, 3, 1, tzinfo=UTC)
    assert parse_published_at("2024-03-01T10:30:00Z") == datetime(2024, 3, 1, 10, 30, tzinfo=UTC)

    with_offset = parse_published_at("2024-03-01T10:30:00+02:00")
    assert with_offset is not None
    assert with_offset.utcoffset() == timedelta(hours=2)
    assert with_offset == datetime(2024, 3, 1, 8, 30, tzinfo=timezone.utc)


@pytest.mark.unit
@pytest.mark.parametrize("value", ["", "yesterday", "2024-13-01", "01/03/2024"])
def test_parse_published_at_rejects_garbage(value: str):
    assert parse_published_at(value) is None


@pytest.mark.unit
@pytest.mark.parametrize(
    ("host", "expected"),
    [
        ("www.jane.dev", "Jane's Blog"),
        ("example.com:8443", "Example's Blog"),
        ("localhost:8000", "Blog Posts"),
        ("127.0.0.1", "Blog Posts"),
        ("", "Blog Posts"),
        (None, "Blog Posts"),
    ],
)
def test_blog_title_for_host(host, expected):
    assert blog_title_for_host(host) == expected
