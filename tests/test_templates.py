import pytest

from folio.templates import TemplateNotFoundError, TemplateRenderer


def create_templates(tmp_path):
    templates = tmp_path / "templates"
    (templates / "partials").mkdir(parents=True)
    (templates / "partials" / "header.html").write_text(
        "<header>{{ name }}</header>", encoding="utf-8"
    )
    (templates / "page.html").write_text(
        '{% include "header" %}<h1>{{ article.title }}</h1>{{ article.content|safe }}',
        encoding="utf-8",
    )
    return templates


def test_render_escapes_values_and_keeps_safe_fields(tmp_path):
    renderer = TemplateRenderer(create_templates(tmp_path))
    html = renderer.render(
        "page",
        {
            "name": "Blog & Co",
            "article": {"title": "<b>Hello</b>", "content": "<p>Hi</p>"},
        },
    )
    assert html == (
        "<header>Blog &amp; Co</header>"
        "<h1>&lt;b&gt;Hello&lt;/b&gt;</h1>"
        "<p>Hi</p>"
    )


def test_missing_values_render_empty(tmp_path):
    templates = tmp_path / "templates"
    templates.mkdir()
    (templates / "loose.html").write_text(
        "[{{ missing }}][{{ article.title }}][{{ article.meta.author }}]"
        "{% for item in nothing %}x{% endfor %}{% if absent %}y{% endif %}",
        encoding="utf-8",
    )
    assert TemplateRenderer(templates).render("loose", {}) == "[][][]"


def test_sections_iterate_and_branch(tmp_path):
    templates = tmp_path / "templates"
    templates.mkdir()
    (templates / "list.html").write_text(
        "{% if articles %}{% for a in articles %}<li>{{ a.title }}</li>{% endfor %}"
        "{% else %}empty{% endif %}",
        encoding="utf-8",
    )
    renderer = TemplateRenderer(templates)
    assert renderer.render("list", {"articles": [{"title": "A"}, {"title": "B"}]}) == (
        "<li>A</li><li>B</li>"
    )
    assert renderer.render("list", {"articles": []}) == "empty"


def test_missing_template_raises(tmp_path):
    renderer = TemplateRenderer(create_templates(tmp_path))
    with pytest.raises(TemplateNotFoundError) as excinfo:
        renderer.render("nope", {})
    assert str(excinfo.value) == "Template not found: nope.html"
    assert excinfo.value.path == tmp_path / "templates" / "nope.html"


def test_missing_partial_renders_empty(tmp_path):
    templates = tmp_path / "templates"
    templates.mkdir()
    (templates / "page.html").write_text(
        '<a>{% include "sidebar" %}</a><b>{% include "partials/footer.html" %}</b>',
        encoding="utf-8",
    )
    assert TemplateRenderer(templates).render("page", {}) == "<a></a><b></b>"


def test_include_accepts_path_style_names(tmp_path):
    templates = create_templates(tmp_path)
    (templates / "alt.html").write_text(
        '{% include "partials/header.html" %}|{% include "header.html" %}',
        encoding="utf-8",
    )
    html = TemplateRenderer(templates).render("alt", {"name": "N"})
    assert html == "<header>N</header>|<header>N</header>"


def test_render_loads_every_partial(tmp_path):
    templates = create_templates(tmp_path)
    (templates / "partials" / "unused.html").write_text("unused", encoding="utf-8")
    (templates / "partials" / "notes.txt").write_text("ignored", encoding="utf-8")
    renderer = TemplateRenderer(templates)
    renderer.render("page", {})
    assert set(renderer.partials) == {"header", "unused"}
    assert set(renderer.templates) == {"page"}


def test_cache_serves_stale_source_until_cleared(tmp_path):
    templates = create_templates(tmp_path)
    renderer = TemplateRenderer(templates)
    context = {"name": "Site", "article": {"title": "T", "content": ""}}
    first = renderer.render("page", context)

    (templates / "page.html").write_text("changed {{ article.title }}", encoding="utf-8")
    (templates / "partials" / "header.html").write_text("new header", encoding="utf-8")
    assert renderer.render("page", context) == first

    renderer.clear_cache()
    assert renderer.templates == {}
    assert renderer.partials == {}
    assert renderer.render("page", context) == "changed T"


def test_rendering_is_deterministic(tmp_path):
    renderer = TemplateRenderer(create_templates(tmp_path))
    context = {"name": "Site", "article": {"title": "Same", "content": "<p>x</p>"}}
    assert renderer.render("page", context) == renderer.render("page", context)


def test_no_partials_directory(tmp_path):
    templates = tmp_path / "templates"
    templates.mkdir()
    (templates / "plain.html").write_text("plain {{ name }}", encoding="utf-8")
    renderer = TemplateRenderer(templates)
    assert renderer.partial_names() == []
    assert renderer.render("plain", {"name": "x"}) == "plain x"


def test_unreadable_partials_directory_has_no_partials(tmp_path):
    templates = tmp_path / "templates"
    templates.mkdir()
    (templates / "partials").write_text("not a directory", encoding="utf-8")
    (templates / "page.html").write_text('{% include "header" %}body', encoding="utf-8")
    renderer = TemplateRenderer(templates)
    assert renderer.partial_names() == []
    assert renderer.render("page", {}) == "body"
