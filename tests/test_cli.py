from pathlib import Path, PurePosixPath

import pytest
from click.testing import CliRunner

from postpress.build import BuildResult
from postpress.cli import cli
from postpress.errors import BuildError
from postpress.renderer import RenderedPage


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    calls = []
    monkeypatch.setattr("postpress.cli.configure_logging", lambda verbose=False: calls.append(verbose))
    return calls


def make_site(tmp_path: Path) -> Path:
    site = tmp_path / "blog"
    (site / "_layouts").mkdir(parents=True)
    (site / "_layouts" / "default.html").write_text("<main>{{ content }}</main>", encoding="utf-8")
    (site / "index.md").write_text("---\nlayout: default\n---\n# Home\n", encoding="utf-8")
    return site


def test_cli_build_renders_site(tmp_path, quiet_logging):
    site = make_site(tmp_path)
    runner = CliRunner()
    result = runner.invoke(cli, ["build", "-s", str(site), "-v"], catch_exceptions=False)
    assert result.exit_code == 0
    assert "Built 1 pages" in result.output
    assert quiet_logging == [True]
    html = (site / "_site" / "index.html").read_text(encoding="utf-8")
    assert html == '<main><h1 id="home">Home</h1>\n</main>'


def test_cli_build_reports_failures(tmp_path):
    site = make_site(tmp_path)
    (site / "about.md").write_text("---\nlayout: missing\n---\nAbout\n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(cli, ["build", "--source", str(site)])
    assert result.exit_code == 1
    assert "1 document(s) failed" in result.output
    assert "about.md" in result.output
    assert "UnknownLayout: Unknown layout: 'missing'" in result.output
    assert (site / "_site" / "index.html").exists()


def test_cli_build_passes_options(monkeypatch, tmp_path):
    called = {}

    def fake_build_site(source, destination=None, include_drafts=False, jobs=1):
        called.update(source=source, destination=destination, drafts=include_drafts, jobs=jobs)
        page = RenderedPage(PurePosixPath("a.md"), "/a.html", PurePosixPath("a.html"), "")
        return BuildResult([page], [], destination)

    monkeypatch.setattr("postpress.build.build_site", fake_build_site)
    runner = CliRunner()
    out = tmp_path / "public"
    result = runner.invoke(
        cli,
        ["build", "-s", str(tmp_path), "-d", str(out), "--drafts", "-j", "3"],
        catch_exceptions=False,
    )
    assert result.exit_code == 0
    assert called == {"source": tmp_path, "destination": out, "drafts": True, "jobs": 3}
    assert f"Built 1 pages into {out}" in result.output


def test_cli_build_fatal_error(monkeypatch, tmp_path):
    def failing_build_site(source, **kwargs):
        raise BuildError(source / "_layouts" / "bad.html", "Front matter block is never closed")

    monkeypatch.setattr("postpress.build.build_site", failing_build_site)
    result = CliRunner().invoke(cli, ["build", "-s", str(tmp_path)])
    assert result.exit_code == 1
    assert "Build failed:" in result.output
    assert "bad.html" in result.output
    assert "never closed" in result.output


def test_cli_rejects_zero_jobs(tmp_path):
    result = CliRunner().invoke(cli, ["build", "-s", str(tmp_path), "-j", "0"])
    assert result.exit_code != 0


def test_cli_serve(monkeypatch, tmp_path):
    called = {}

    class DummyServer:
        def __init__(self, source, destination=None, host="127.0.0.1", port=4000,
                     include_drafts=False, jobs=1):
            called.update(source=source, host=host, port=port, drafts=include_drafts)

        def start(self, watch=True):
            called["watch"] = watch

    monkeypatch.setattr("postpress.server.PreviewServer", DummyServer)
    result = CliRunner().invoke(
        cli,
        ["serve", "-s", str(tmp_path), "--drafts", "--port", "5050", "--no-watch"],
        catch_exceptions=False,
    )
    assert result.exit_code == 0
    assert called == {
        "source": tmp_path,
        "host": "127.0.0.1",
        "port": 5050,
        "drafts": True,
        "watch": False,
    }


def test_cli_serve_build_error(monkeypatch, tmp_path):
    class BrokenServer:
        def __init__(self, source, **kwargs):
            raise BuildError(source, "Invalid YAML in _config.yml")

    monkeypatch.setattr("postpress.server.PreviewServer", BrokenServer)
    result = CliRunner().invoke(cli, ["serve", "-s", str(tmp_path)])
    assert result.exit_code == 1
    assert "Invalid YAML" in result.output
