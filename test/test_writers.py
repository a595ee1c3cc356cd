from __future__ import annotations

import csv
import json

from seo_parity.models import (
    CanonicalGroup,
    CheckSet,
    ComparisonRecord,
    FieldComparison,
    MigrationItem,
    RunSummary,
    SitemapComparison,
    SlugLanguages,
)
from seo_parity.writers import (
    CSV_NAME,
    HTML_NAME,
    MATCH,
    MIGRATION,
    MISMATCH,
    PROGRESS_NAME,
    SUMMARY_NAME,
    csv_header,
    csv_row,
    render_html,
    render_progress_markdown,
    write_path_list,
    write_reports,
    write_sitemap_comparison,
)


def _ok_record(path="/pricing"):
    return ComparisonRecord(
        path=path,
        status="OK",
        diff_count=0,
        notes=("All good",),
        fields=(
            FieldComparison("title", "Pricing", "Pricing", True),
            FieldComparison("og_image", "https://cdn.prod.website-files.com/a.png", "https://cdn.sanity.io/a.png", False),
        ),
        og_image_migration=True,
        prod_status=200,
        dev_status=200,
    )


def _diff_record():
    return ComparisonRecord(
        path="/about",
        status="DIFF",
        diff_count=1,
        notes=("Title",),
        fields=(FieldComparison("title", "About <us>", "About & more", False),),
        prod_status=200,
        dev_status=200,
        dev_redirect="301 → /about-us",
    )


def _error_record():
    return ComparisonRecord(
        path="/gone",
        status="ERROR",
        diff_count=0,
        notes=("Dev: 404",),
        prod_status=200,
        dev_status=404,
    )


def test_csv_header_follows_enabled_checks():
    header = csv_header(CheckSet(description=False, h1=False))
    assert header[:4] == ["URL", "Status", "Differences", "What Differs"]
    assert header[4:10] == ["Prod Title", "Dev Title", "Title Match", "Prod OG Image", "Dev OG Image", "OG Image Match"]
    assert header[-6:] == ["Prod HTTP", "Dev HTTP", "Prod Redirect", "Dev Redirect", "Prod Error", "Dev Error"]


def test_csv_row_marks_migration_and_blank_error_fields():
    checks = CheckSet(description=False, h1=False)
    row = csv_row(_ok_record(), checks)
    assert row[:4] == ["/pricing", "OK", "0", "All good"]
    assert row[6] == MATCH
    assert row[9] == MIGRATION

    row = csv_row(_error_record(), checks)
    assert row[4:10] == [""] * 6
    assert row[-6:-4] == ["200", "404"]


def test_csv_row_mismatch_and_redirect():
    row = csv_row(_diff_record(), CheckSet(description=False, h1=False, og_image=False))
    assert row[6] == MISMATCH
    assert "301 → /about-us" in row


def test_html_escapes_values_and_lists_summary():
    html = render_html(
        [_diff_record()],
        RunSummary(total=1, diff=1),
        CheckSet(),
        "https://prod.example.com",
        "https://dev.example.com",
    )
    assert "About &lt;us&gt;" in html
    assert "About &amp; more" in html
    assert "<us>" not in html
    assert "<strong>Differences found:</strong> 1" in html
    assert "Title, Description, H1, OG Image" in html


def test_html_groups_records_under_canonical_headers():
    group = CanonicalGroup(canonical="/pricing", records=[_ok_record(), _ok_record("/fr/pricing")], locales=[None, "fr"])
    html = render_html([], RunSummary(total=2, ok=2), CheckSet(), "p", "d", groups=[group])
    assert "/pricing (2 variants)" in html
    assert "/fr/pricing" in html


def test_write_reports_creates_all_files(tmp_path):
    records = [_ok_record(), _diff_record(), _error_record()]
    summary = RunSummary(total=3, ok=1, diff=1, error=1)
    out_dir = tmp_path / "result"
    paths = write_reports(records, summary, CheckSet(), "https://p", "https://d", out_dir)

    assert paths == {
        "csv": out_dir / CSV_NAME,
        "html": out_dir / HTML_NAME,
        "summary": out_dir / SUMMARY_NAME,
    }
    with paths["csv"].open(encoding="utf-8", newline="") as f:
        rows = list(csv.reader(f))
    assert len(rows) == 4
    assert [r[0] for r in rows[1:]] == ["/pricing", "/about", "/gone"]

    data = json.loads(paths["summary"].read_text(encoding="utf-8"))
    assert data["summary"] == {"total": 3, "ok": 1, "diff": 1, "error": 1}
    assert "timestamp" in data
    assert paths["html"].read_text(encoding="utf-8").startswith("<!DOCTYPE html>")


def test_html_lists_migration_progress_for_groups():
    groups = [
        CanonicalGroup(canonical="/pricing", records=[_ok_record(), _error_record()], locales=[None, "fr"]),
        CanonicalGroup(canonical="/gone", records=[_error_record()], locales=[None]),
    ]
    html = render_html([], RunSummary(total=3, ok=1, error=2), CheckSet(), "p", "d", groups=groups)
    assert "Fully ERROR, need full migration (1)" in html
    assert "Partially ERROR, need translations (1)" in html
    assert "1/2 ERROR (missing: fr)" in html

    plain = render_html([_ok_record()], RunSummary(total=1, ok=1), CheckSet(), "p", "d")
    assert "Fully ERROR" not in plain


def test_progress_markdown_lists_priorities():
    fully = [MigrationItem("/new", total=2, error=2, error_locales=(None, "ar"), error_paths=("/new", "/ar/new"))]
    partially = [MigrationItem("/pricing", total=3, ok=2, error=1, error_locales=("de",), error_paths=("/de/pricing",))]
    text = render_progress_markdown(fully, partially, total_pages=5)
    assert text.startswith("# Pages Migration Progress")
    assert "**Total Unique Pages:** 5" in text
    assert "## Priority 1: Fully ERROR Pages (1 pages)" in text
    assert "   - Example: /new" in text
    assert "## Priority 2: Partially ERROR Pages (1 pages)" in text
    assert "   - OK: 2, DIFF: 0, ERROR: 1" in text
    assert "   - Missing languages: de" in text


def test_write_reports_with_groups_writes_progress(tmp_path):
    group = CanonicalGroup(canonical="/gone", records=[_error_record()], locales=[None])
    out_dir = tmp_path / "result"
    paths = write_reports([_error_record()], RunSummary(total=1, error=1), CheckSet(), "p", "d", out_dir, [group])
    assert paths["progress"] == out_dir / PROGRESS_NAME
    text = paths["progress"].read_text(encoding="utf-8")
    assert "1. **/gone**" in text


def test_write_path_list_and_sitemap_comparison(tmp_path):
    target = write_path_list(["/", "/pricing"], tmp_path / "lists" / "urls.txt")
    assert target.read_text(encoding="utf-8") == "/\n/pricing\n"

    result = SitemapComparison(legacy_slugs=2, new_slugs=1, matching=1, missing_in_new=[SlugLanguages("blog", ("en",))])
    data = json.loads(write_sitemap_comparison(result, tmp_path / "cmp.json").read_text(encoding="utf-8"))
    assert data["comparison"]["missing_in_new"] == [{"slug": "blog", "languages": ["en"]}]
    assert data["comparison"]["matching"] == 1
    assert "timestamp" in data
