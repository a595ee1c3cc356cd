from __future__ import annotations

import asyncio
import io
import json

import pytest

from seo_parity import cli
from seo_parity.models import ComparisonRecord, RunOutcome, RunSummary
from seo_parity.orchestrator import ComparisonFailed


def _run(argv):
    out = io.StringIO()
    code = asyncio.run(cli.async_main(argv, stdout=out))
    return code, out.getvalue()


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)


def _record(path, status):
    return ComparisonRecord(
        path=path,
        status=status,
        diff_count=1 if status == "DIFF" else 0,
        notes=("Title",) if status == "DIFF" else ("All good",),
    )


def _fake_compare(outcome, seen):
    async def fake(paths, **kwargs):
        seen.update(kwargs, paths=list(paths))
        return outcome

    return fake


def test_human_bytes():
    assert cli._human_bytes(0) == "0 B"
    assert cli._human_bytes(1536) == "1.5 KB"
    assert cli._human_bytes(1024 * 1024) == "1 MB"


def test_diff_lists(tmp_path):
    (tmp_path / "a.txt").write_text("/x\n/y\n", encoding="utf-8")
    (tmp_path / "b.txt").write_text("/y\n/z\n", encoding="utf-8")
    code, out = _run(["diff-lists", "a.txt", "b.txt"])
    assert code == cli.EXIT_OK
    assert "Common URLs: 1" in out
    assert "Only in a.txt (1):" in out
    assert "Only in b.txt (1):" in out


def test_diff_lists_identical(tmp_path):
    (tmp_path / "a.txt").write_text("/x\n", encoding="utf-8")
    code, out = _run(["diff-lists", "a.txt", "a.txt"])
    assert code == cli.EXIT_OK
    assert "Files are identical!" in out


def test_compare_missing_url_file():
    code, out = _run(["compare", "--urls", "nope.txt"])
    assert code == cli.EXIT_FAILED
    assert "File not found: nope.txt" in out


def test_compare_unknown_check(tmp_path):
    (tmp_path / "urls.txt").write_text("/a\n", encoding="utf-8")
    code, out = _run(["compare", "--urls", "urls.txt", "--checks", "title,keywords"])
    assert code == cli.EXIT_USAGE
    assert "keywords" in out


def test_compare_prints_summary_and_passes_options(tmp_path, monkeypatch):
    (tmp_path / "urls.txt").write_text("# main\n/a\n/b\n", encoding="utf-8")
    outcome = RunOutcome(
        state="completed",
        records=[_record("/a", "OK"), _record("/b", "DIFF")],
        summary=RunSummary(total=2, ok=1, diff=1, error=0),
    )
    seen = {}
    monkeypatch.setattr(cli, "compare_sites", _fake_compare(outcome, seen))

    code, out = _run(
        ["compare", "--urls", "urls.txt", "--prod", "https://p.example", "--no-og-image", "--batch-size", "2", "--no-report"]
    )
    assert code == cli.EXIT_OK
    assert seen["paths"] == ["/a", "/b"]
    assert seen["prod_url"] == "https://p.example"
    assert seen["batch_size"] == 2
    assert seen["output_dir"] is None
    assert seen["checks"].enabled() == ["title", "description", "h1"]
    assert "Differences: 1" in out
    assert "[DIFF ] /b: Title" in out
    assert "Reports:" not in out


def test_compare_fail_on_diff(tmp_path, monkeypatch):
    (tmp_path / "urls.txt").write_text("/a\n", encoding="utf-8")
    outcome = RunOutcome(
        state="completed",
        records=[_record("/a", "DIFF")],
        summary=RunSummary(total=1, diff=1),
    )
    monkeypatch.setattr(cli, "compare_sites", _fake_compare(outcome, {}))
    code, out = _run(["compare", "--urls", "urls.txt", "--fail-on-diff", "--out", "reports"])
    assert code == cli.EXIT_PAGES_DIFFER
    assert "comparison-report.csv" in out


def test_compare_stopped(tmp_path, monkeypatch):
    (tmp_path / "urls.txt").write_text("/a\n/b\n", encoding="utf-8")
    outcome = RunOutcome(state="stopped", records=[_record("/a", "OK")])
    monkeypatch.setattr(cli, "compare_sites", _fake_compare(outcome, {}))
    code, out = _run(["compare", "--urls", "urls.txt"])
    assert code == cli.EXIT_STOPPED
    assert "Stopped after 1 pages" in out


def test_compare_failed(tmp_path, monkeypatch):
    (tmp_path / "urls.txt").write_text("/a\n", encoding="utf-8")

    async def boom(paths, **kwargs):
        raise ComparisonFailed("disk full")

    monkeypatch.setattr(cli, "compare_sites", boom)
    code, out = _run(["compare", "--urls", "urls.txt"])
    assert code == cli.EXIT_FAILED
    assert "Comparison failed: disk full" in out


def test_sitemap_from_local_file(tmp_path):
    (tmp_path / "sitemap.xml").write_text(
        """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9" xmlns:xhtml="http://www.w3.org/1999/xhtml">
  <url>
    <loc>https://www.example.com/pricing</loc>
    <xhtml:link rel="alternate" hreflang="en" href="https://www.example.com/pricing"/>
    <xhtml:link rel="alternate" hreflang="fr" href="https://www.example.com/fr/tarifs"/>
  </url>
</urlset>
""",
        encoding="utf-8",
    )
    code, out = _run(["sitemap", "sitemap.xml", "--out", "mapping.json"])
    assert code == cli.EXIT_OK
    assert "2 paths mapped onto 1 canonical pages" in out
    data = json.loads((tmp_path / "mapping.json").read_text(encoding="utf-8"))
    assert data == {"/pricing": "/pricing", "/fr/tarifs": "/pricing"}


def test_sitemap_missing_file():
    code, out = _run(["sitemap", "missing.xml"])
    assert code == cli.EXIT_FAILED


def test_cache_stats_and_inspect_miss(tmp_path):
    code, out = _run(["cache", "--dir", str(tmp_path / "c"), "stats"])
    assert code == cli.EXIT_OK
    stats = json.loads(out)
    assert stats["items"] == 0
    assert "human_bytes" in stats

    code, out = _run(["cache", "--dir", str(tmp_path / "c"), "inspect", "https://x.example/"])
    assert code == cli.EXIT_USAGE
    assert "Cache miss" in out


def test_compare_without_summary_is_a_failure(tmp_path, monkeypatch):
    (tmp_path / "urls.txt").write_text("/a\n", encoding="utf-8")
    outcome = RunOutcome(state="completed", records=[_record("/a", "OK")])
    monkeypatch.setattr(cli, "compare_sites", _fake_compare(outcome, {}))
    code, out = _run(["compare", "--urls", "urls.txt", "--no-report"])
    assert code == cli.EXIT_FAILED
    assert "without a summary" in out


def test_compare_show_groups_prints_migration_progress(tmp_path, monkeypatch):
    (tmp_path / "urls.txt").write_text("/a\n/fr/a\n/b\n", encoding="utf-8")
    outcome = RunOutcome(
        state="completed",
        records=[_record("/a", "OK"), _record("/fr/a", "ERROR"), _record("/b", "ERROR")],
        summary=RunSummary(total=3, ok=1, error=2),
    )
    monkeypatch.setattr(cli, "compare_sites", _fake_compare(outcome, {}))
    code, out = _run(["compare", "--urls", "urls.txt", "--show-groups", "--out", "reports"])
    assert code == cli.EXIT_OK
    assert "Fully ERROR (need full migration): 1" in out
    assert "Partially ERROR (need translations): 1" in out
    assert "1/2 ERROR, missing: fr" in out
    assert "migration-progress.md" in out


def _urlset(*blocks):
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9" '
        'xmlns:xhtml="http://www.w3.org/1999/xhtml">\n' + "\n".join(blocks) + "\n</urlset>\n"
    )


def _url(loc, *alternates):
    links = "".join(
        f'<xhtml:link rel="alternate" hreflang="{lang}" href="{href}"/>' for lang, href in alternates
    )
    return f"<url><loc>{loc}</loc>{links}</url>"


def test_sitemap_paths_writes_url_list(tmp_path):
    paths = ["/", "/pricing", "/de/preise", "/blog/a", "/blog/b", "/ar"]
    (tmp_path / "sitemap.xml").write_text(
        _urlset(*(_url(f"https://www.example.com{p}") for p in paths)), encoding="utf-8"
    )
    code, out = _run(["sitemap-paths", "sitemap.xml"])
    assert code == cli.EXIT_OK
    assert (tmp_path / "urls-main.txt").read_text(encoding="utf-8").splitlines() == [
        "/",
        "/pricing",
        "/blog/a",
        "/ar",
    ]
    assert "Localized (excluded):           1" in out
    assert "Template duplicates (excluded): 1" in out
    assert "4 paths saved: urls-main.txt" in out


def test_sitemap_paths_missing_file():
    code, out = _run(["sitemap-paths", "missing.xml"])
    assert code == cli.EXIT_FAILED
    assert "File not found: missing.xml" in out


def _write_compare_sitemaps(tmp_path):
    legacy = _urlset(
        _url(
            "https://www.example.com/pricing",
            ("x-default", "https://www.example.com/pricing"),
            ("en", "https://www.example.com/pricing"),
            ("fr", "https://www.example.com/fr/tarifs"),
        ),
        _url("https://www.example.com/blog/a"),
    )
    new = _urlset(
        _url(
            "https://dev.example.com/pricing",
            ("x-default", "https://dev.example.com/pricing"),
            ("en", "https://dev.example.com/pricing"),
        ),
    )
    (tmp_path / "legacy.xml").write_text(legacy, encoding="utf-8")
    (tmp_path / "new.xml").write_text(new, encoding="utf-8")


def test_sitemap_compare_reports_missing_pages_and_languages(tmp_path):
    _write_compare_sitemaps(tmp_path)
    code, out = _run(["sitemap-compare", "legacy.xml", "new.xml", "--out", "cmp.json"])
    assert code == cli.EXIT_OK
    assert "Missing in new site (1):" in out
    assert "   blog/a  (1 langs)" in out
    assert "   pricing  missing: fr" in out
    data = json.loads((tmp_path / "cmp.json").read_text(encoding="utf-8"))
    assert data["comparison"]["matching"] == 1
    assert data["comparison"]["perfect"] == 0


def test_sitemap_compare_fail_on_missing(tmp_path):
    _write_compare_sitemaps(tmp_path)
    code, _ = _run(["sitemap-compare", "legacy.xml", "new.xml", "--fail-on-missing"])
    assert code == cli.EXIT_PAGES_DIFFER

    code, out = _run(["sitemap-compare", "legacy.xml", "legacy.xml", "--fail-on-missing"])
    assert code == cli.EXIT_OK
    assert "All checks passed" in out


def test_sitemap_compare_missing_file(tmp_path):
    _write_compare_sitemaps(tmp_path)
    code, out = _run(["sitemap-compare", "legacy.xml", "nope.xml"])
    assert code == cli.EXIT_FAILED
    assert "File not found: nope.xml" in out
