import logging
from datetime import datetime, timezone
from pathlib import Path

import pytest

from folio.content import (
    Article,
    ArticleFormatError,
    ArticleLoader,
    parse_compiled_article,
    parse_frontmatter,
    serialize_compiled_article,
    sort_articles,
)
from folio.renderers import MarkdownRenderer


def compiled(title: str, date: str, body: str = "<p>Hi</p>") -> str:
    return (
        "---\n"
        f"title: {title}\n"
        f"date: {date}\n"
        "status: published\n"
        f"excerpt: About {title}\n"
        "---\n"
        "<!-- CONTENT_START -->\n"
        f"{body}"
    )


def test_parse_frontmatter_skips_unmatched_lines_and_strips_quotes():
    text = "\n".join(
        [
            'title: "Quoted title"',
            "subtitle: 'single'",
            "mixed: \"not matching'",
            "count: 3",
            "published: true",
            "not a field",
            "  indented: skipped",
            "empty:",
            "",
            "url: https://example.com/a:b",
        ]
    )
    fm = parse_frontmatter(text)
    assert fm == {
        "title": "Quoted title",
        "subtitle": "single",
        "mixed": "\"not matching'",
        "count": "3",
        "published": "true",
        "url": "https://example.com/a:b",
    }


def test_parse_frontmatter_strips_only_one_layer_of_quotes():
    assert parse_frontmatter("title: \"'nested'\"") == {"title": "'nested'"}


def test_parse_compiled_article_example():
    article = parse_compiled_article(compiled("Hello", "2024-01-01"), "hello.html")
    assert article.slug == "hello"
    assert article.title == "Hello"
    assert article.date == "2024-01-01"
    assert article.status == "published"
    assert article.excerpt == "About Hello"
    assert article.body == "<p>Hi</p>"
    assert article.published_at == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert article.formatted_date == "January 1, 2024"


def test_parse_compiled_article_keeps_body_line_breaks():
    body = "<h1>Title</h1>\n\n<p>One</p>\n<p>Two</p>\n"
    article = parse_compiled_article(compiled("Lines", "2024-02-02", body), "lines.html")
    assert article.body == body


def test_parse_compiled_article_marker_may_follow_other_lines():
    text = "---\ntitle: Late\n---\n<meta>\n<div><!-- CONTENT_START --></div>\n<p>Body</p>"
    article = parse_compiled_article(text, "late.html")
    assert article.body == "<p>Body</p>"
    assert article.title == "Late"


def test_parse_compiled_article_tolerates_crlf_delimiters():
    text = "---\r\ntitle: Windows\r\n---\r\n<!-- CONTENT_START -->\r\n<p>Hi</p>\r\n"
    article = parse_compiled_article(text, "windows.html")
    assert article.title == "Windows"
    assert article.body == "<p>Hi</p>\r\n"


@pytest.mark.parametrize(
    "text",
    [
        "title: No delimiter\n---\n<!-- CONTENT_START -->\n<p>x</p>",
        "\n---\ntitle: Leading blank\n---\n<!-- CONTENT_START -->\n<p>x</p>",
        "---\ntitle: Unclosed\n<!-- CONTENT_START -->\n<p>x</p>",
        "---\ntitle: No marker\n---\n<p>x</p>",
        "",
    ],
)
def test_parse_compiled_article_rejects_malformed_documents(text):
    with pytest.raises(ArticleFormatError) as excinfo:
        parse_compiled_article(text, "broken.html")
    assert excinfo.value.filename == "broken.html"
    assert "Invalid compiled article format: broken.html" in str(excinfo.value)


def test_marker_inside_frontmatter_does_not_count():
    text = "---\nnote: <!-- CONTENT_START -->\n---\n<p>x</p>"
    with pytest.raises(ArticleFormatError):
        parse_compiled_article(text, "inside.html")


def test_serialize_then_parse_reproduces_document():
    frontmatter = {
        "title": "Round trip",
        "date": "2024-03-04",
        "status": "published",
        "excerpt": "Short & sweet",
    }
    body = "<p>First</p>\n\n<pre>code</pre>"
    text = serialize_compiled_article(frontmatter, body)

    article = parse_compiled_article(text, "round-trip.html")
    assert article.frontmatter == frontmatter
    assert article.body == body
    assert serialize_compiled_article(article.frontmatter, article.body) == text


def test_sort_articles_newest_first_with_undated_last():
    articles = [
        Article("old", {"date": "2023-01-01"}),
        Article("nodate", {}),
        Article("new", {"date": "2024-06-01"}),
        Article("garbage", {"date": "not a date"}),
        Article("middle", {"date": "2023-06-01T12:00:00Z"}),
    ]
    assert [a.slug for a in sort_articles(articles)] == [
        "new",
        "middle",
        "old",
        "nodate",
        "garbage",
    ]


def test_sort_articles_keeps_ties_in_input_order():
    articles = [
        Article("b", {"date": "2024-01-01"}),
        Article("a", {"date": "2024-01-01"}),
    ]
    assert [a.slug for a in sort_articles(articles)] == ["b", "a"]


def test_loader_reads_only_compiled_documents(tmp_path):
    content = tmp_path / "content"
    content.mkdir()
    (content / "first.html").write_text(compiled("First", "2024-01-01"), encoding="utf-8")
    (content / "second.html").write_text(compiled("Second", "2024-02-01"), encoding="utf-8")
    (content / "draft.md").write_text("---\ntitle: Raw\n---\n# Raw", encoding="utf-8")
    (content / "notes.txt").write_text("ignore", encoding="utf-8")

    articles = ArticleLoader(content).load()
    assert [a.slug for a in articles] == ["second", "first"]
    assert articles[0].path == content / "second.html"


def test_loader_skips_broken_documents_and_logs(tmp_path, caplog):
    content = tmp_path / "content"
    content.mkdir()
    (content / "good.html").write_text(compiled("Good", "2024-01-01"), encoding="utf-8")
    (content / "broken.html").write_text(
        "---\ntitle: Broken\n---\n<p>no marker</p>", encoding="utf-8"
    )
    (content / "binary.html").write_bytes(b"\xff\xfe\x00garbage")

    with caplog.at_level(logging.WARNING, logger="folio.content"):
        articles = ArticleLoader(content).load()

    assert [a.slug for a in articles] == ["good"]
    assert "broken.html" in caplog.text
    assert "binary.html" in caplog.text


def test_loader_seeds_missing_content_dir(tmp_path):
    content = tmp_path / "content"
    articles = ArticleLoader(content).load()

    assert (content / "welcome.html").exists()
    assert len(articles) == 1
    welcome = articles[0]
    assert welcome.slug == "welcome"
    assert welcome.title == "Welcome to Your New Blog"
    assert welcome.status == "published"
    assert welcome.published_at is not None
    assert welcome.body.startswith("<pre")


def test_loader_seed_uses_given_renderer(tmp_path):
    content = tmp_path / "content"
    articles = ArticleLoader(content, renderer=MarkdownRenderer()).load()
    assert "<h1>" in articles[0].body


def test_loader_seed_does_not_overwrite(tmp_path):
    loader = ArticleLoader(tmp_path / "content")
    target = loader.seed_sample()
    target.write_text(compiled("Edited", "2020-01-01"), encoding="utf-8")
    loader.seed_sample()
    assert "Edited" in target.read_text(encoding="utf-8")


def test_loader_degrades_to_empty_when_directory_unreadable(tmp_path, monkeypatch, caplog):
    content = tmp_path / "content"
    content.mkdir()

    def broken_iterdir(self):
        raise PermissionError("denied")

    monkeypatch.setattr(Path, "iterdir", broken_iterdir)
    with caplog.at_level(logging.WARNING, logger="folio.content"):
        assert ArticleLoader(content).load() == []
    assert "denied" in caplog.text


def test_empty_content_dir_is_not_seeded(tmp_path):
    content = tmp_path / "content"
    content.mkdir()
    assert ArticleLoader(content).load() == []
    assert list(content.iterdir()) == []


def test_loader_treats_out_of_range_dates_as_oldest(tmp_path):
    content = tmp_path / "content"
    content.mkdir()
    (content / "ancient.html").write_text(
        compiled("Ancient", "0001-01-01T00:00:00+01:00"), encoding="utf-8"
    )
    (content / "recent.html").write_text(compiled("Recent", "2024-01-01"), encoding="utf-8")

    articles = ArticleLoader(content).load()

    assert [a.slug for a in articles] == ["recent", "ancient"]
    assert articles[1].published_at is None
