from pathlib import Path

import pytest

from postpress.build import BuildResult, build_site, site_context
from postpress.config import load_config
from postpress.errors import BuildError, IOFailure, MalformedFrontMatter, UnknownLayout


def create_project(tmp_path: Path) -> Path:
    site = tmp_path / "blog"
    (site / "_layouts").mkdir(parents=True)
    (site / "_includes").mkdir()
    (site / "_posts").mkdir()
    (site / "_drafts").mkdir()
    (site / "css").mkdir()

    (site / "_config.yml").write_text(
        "title: JS Idioms\n"
        "defaults:\n"
        "  - scope:\n"
        "      type: posts\n"
        "    values:\n"
        "      layout: post\n",
        encoding="utf-8",
    )
    (site / "_layouts" / "default.html").write_text(
        "<html><title>{{ page.title }}</title><body>{{ content }}"
        "{% include 'footer.html' %}</body></html>\n",
        encoding="utf-8",
    )
    (site / "_layouts" / "post.html").write_text(
        "---\nlayout: default\n---\n<article>{{ content }}</article>", encoding="utf-8"
    )
    (site / "_includes" / "footer.html").write_text(
        "<footer>{{ site.title }}</footer>", encoding="utf-8"
    )
    (site / "_posts" / "2013-05-12-prototype-chains.md").write_text(
        "---\ntitle: Prototype chains\ntags: [javascript]\n---\n"
        "{% highlight javascript %}\nvar x = Object.create(proto);\n{% endhighlight %}\n",
        encoding="utf-8",
    )
    (site / "_posts" / "2014-02-01-against-inheritance.md").write_text(
        "---\ntitle: Against inheritance\ntags: [oop, javascript]\n---\nPrefer composition.\n",
        encoding="utf-8",
    )
    (site / "_drafts" / "closures.md").write_text(
        "---\ntitle: Closures\ndate: 2015-03-04\n---\nDraft.\n", encoding="utf-8"
    )
    (site / "index.html").write_text(
        "---\nlayout: default\ntitle: Home\n---\n<ul>"
        "{% for post in site.posts %}<li><a href=\"{{ post.url }}\">{{ post.title }}</a></li>{% endfor %}"
        "</ul>\n",
        encoding="utf-8",
    )
    (site / "about.md").write_text("---\nlayout: default\npermalink: /about/\n---\n# About\n", encoding="utf-8")
    (site / "hidden.md").write_text("---\npublished: false\n---\nSecret\n", encoding="utf-8")
    (site / "css" / "style.css").write_text("body { margin: 0 }", encoding="utf-8")
    return site


def test_build_site_writes_pages(tmp_path):
    site = create_project(tmp_path)
    result = build_site(site)

    assert isinstance(result, BuildResult)
    assert result.ok
    assert result.destination == site / "_site"
    out = result.destination

    post = (out / "2013" / "05" / "12" / "prototype-chains.html").read_text(encoding="utf-8")
    assert post.startswith("<html><title>Prototype chains</title>")
    assert "<article>" in post
    assert '<span class="kd">var</span>' in post
    assert "<footer>JS Idioms</footer>" in post

    index = (out / "index.html").read_text(encoding="utf-8")
    first = index.index("/2014/02/01/against-inheritance.html")
    second = index.index("/2013/05/12/prototype-chains.html")
    assert first < second

    assert (out / "about" / "index.html").exists()
    assert (out / "css" / "style.css").read_text(encoding="utf-8") == "body { margin: 0 }"
    assert not (out / "hidden.html").exists()
    assert not any(out.rglob("closures*"))
    assert len(result.pages) == 4
    assert result.static_files == [out / "css" / "style.css"]


def test_build_includes_drafts(tmp_path):
    site = create_project(tmp_path)
    result = build_site(site, include_drafts=True)
    assert (result.destination / "2015" / "03" / "04" / "closures.html").exists()


def test_build_is_idempotent_and_parallel_safe(tmp_path):
    site = create_project(tmp_path)
    first = build_site(site, destination=tmp_path / "one")
    second = build_site(site, destination=tmp_path / "two", jobs=4)
    assert [p.html for p in first.pages] == [p.html for p in second.pages]
    for page in first.pages:
        one = (tmp_path / "one" / page.output_path).read_bytes()
        two = (tmp_path / "two" / page.output_path).read_bytes()
        assert one == two


def test_failures_are_isolated(tmp_path):
    site = create_project(tmp_path)
    (site / "broken.md").write_text("---\ntitle: never closed\n", encoding="utf-8")
    (site / "layoutless.md").write_text("---\nlayout: nowhere\n---\nHi\n", encoding="utf-8")

    result = build_site(site)

    assert not result.ok
    kinds = {f.source_path.as_posix(): type(f) for f in result.failures}
    assert kinds == {"broken.md": MalformedFrontMatter, "layoutless.md": UnknownLayout}
    assert not (result.destination / "layoutless.html").exists()
    assert not (result.destination / "broken.html").exists()
    assert (result.destination / "index.html").exists()
    assert len(result.pages) == 4


def test_output_path_outside_destination_fails(tmp_path):
    site = create_project(tmp_path)
    (site / "escape.md").write_text("---\npermalink: /../../escaped.html\n---\nx\n", encoding="utf-8")
    result = build_site(site)
    assert [type(f) for f in result.failures] == [IOFailure]
    assert not (tmp_path / "escaped.html").exists()


def test_clean_output_removes_stale_files(tmp_path):
    site = create_project(tmp_path)
    out = tmp_path / "out"
    out.mkdir()
    (out / "stale.html").write_text("old", encoding="utf-8")
    build_site(site, destination=out, clean_output=False)
    assert (out / "stale.html").exists()
    build_site(site, destination=out)
    assert not (out / "stale.html").exists()


def test_missing_source_and_unsafe_destination(tmp_path):
    with pytest.raises(BuildError):
        build_site(tmp_path / "nope")

    site = create_project(tmp_path)
    with pytest.raises(BuildError):
        build_site(site, destination=site)
    with pytest.raises(BuildError):
        build_site(site, destination=tmp_path)


def test_destination_inside_source_directories_is_refused(tmp_path):
    site = create_project(tmp_path)
    for name in ("_posts", "_layouts", "css", "public", ".git"):
        with pytest.raises(BuildError):
            build_site(site, destination=site / name)
    assert (site / "_posts" / "2013-05-12-prototype-chains.md").exists()
    assert (site / "_layouts" / "default.html").exists()
    assert (site / "css" / "style.css").exists()

    assert build_site(site, destination=site / "_out").ok
    assert (site / "_out" / "index.html").exists()

    with open(site / "_config.yml", "a", encoding="utf-8") as f:
        f.write("exclude: [public]\n")
    assert build_site(site, destination=site / "public").ok
    assert (site / "public" / "css" / "style.css").exists()


def test_broken_layout_aborts_build(tmp_path):
    site = create_project(tmp_path)
    (site / "_layouts" / "bad.html").write_text("---\nlayout: default\n", encoding="utf-8")
    with pytest.raises(BuildError):
        build_site(site)


def test_site_context_indexes_posts(tmp_path):
    from datetime import datetime

    config = load_config(tmp_path)
    variables = [
        {"is_post": True, "date": datetime(2013, 1, 1), "path": "a", "tags": ["js"], "categories": []},
        {"is_post": True, "date": datetime(2014, 1, 1), "path": "b", "tags": ["js", "oop"], "categories": ["x"]},
        {"is_post": False, "date": None, "path": "about.md", "tags": [], "categories": []},
    ]
    site = site_context(config, variables)
    assert [p["path"] for p in site["posts"]] == ["b", "a"]
    assert [p["path"] for p in site["pages"]] == ["about.md"]
    assert [p["path"] for p in site["tags"]["js"]] == ["b", "a"]
    assert list(site["categories"]) == ["x"]


def test_file_system_writer(tmp_path):
    from pathlib import PurePosixPath

    from postpress.build import FileSystemWriter
    from postpress.protocols import PageWriter
    from postpress.renderer import RenderedPage

    writer = FileSystemWriter(tmp_path / "out")
    assert isinstance(writer, PageWriter)

    page = RenderedPage(PurePosixPath("a.md"), "/a/", PurePosixPath("a/index.html"), "<p>A</p>")
    target = writer.write(page)
    assert target == (tmp_path / "out" / "a" / "index.html").resolve()
    assert target.read_text(encoding="utf-8") == "<p>A</p>"

    escaping = RenderedPage(PurePosixPath("b.md"), "/b", PurePosixPath("../b.html"), "")
    with pytest.raises(IOFailure):
        writer.write(escaping)
