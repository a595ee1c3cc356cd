# seo_parity/writers.py
# Serializes a finished run to CSV, HTML, a JSON summary and a migration
# progress list.

from __future__ import annotations

import csv
import json
import logging
from dataclasses import asdict
from datetime import datetime, timezone
from html import escape
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from seo_parity.models import (
    FIELD_LABELS,
    CanonicalGroup,
    CheckSet,
    ComparisonRecord,
    FieldComparison,
    MigrationItem,
    RunSummary,
    SitemapComparison,
)
from seo_parity.report import migration_progress

log = logging.getLogger(__name__)

CSV_NAME = "comparison-report.csv"
HTML_NAME = "comparison-report.html"
SUMMARY_NAME = "summary.json"
PROGRESS_NAME = "migration-progress.md"

MATCH = "✅"
MISMATCH = "❌"
MIGRATION = "⚠️"

_STATUS_COLORS = {"OK": ("green", "#d4edda"), "DIFF": ("orange", "#fff3cd"), "ERROR": ("red", "#f8d7da")}


def match_mark(record: ComparisonRecord, fc: FieldComparison) -> str:
    if fc.match:
        return MATCH
    if fc.name == "og_image" and record.og_image_migration:
        return MIGRATION
    return MISMATCH


def csv_header(checks: CheckSet) -> List[str]:
    header = ["URL", "Status", "Differences", "What Differs"]
    for name in checks.enabled():
        label = FIELD_LABELS[name]
        header += [f"Prod {label}", f"Dev {label}", f"{label} Match"]
    header += ["Prod HTTP", "Dev HTTP", "Prod Redirect", "Dev Redirect", "Prod Error", "Dev Error"]
    return header


def csv_row(record: ComparisonRecord, checks: CheckSet) -> List[str]:
    row = [record.path, record.status, str(record.diff_count), record.notes_text]
    for name in checks.enabled():
        fc = record.field(name)
        if fc is None:
            row += ["", "", ""]
        else:
            row += [fc.prod, fc.dev, match_mark(record, fc)]
    row += [
        str(record.prod_status),
        str(record.dev_status),
        record.prod_redirect or "",
        record.dev_redirect or "",
        record.prod_error,
        record.dev_error,
    ]
    return row


def write_csv(records: Sequence[ComparisonRecord], checks: CheckSet, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(csv_header(checks))
        for r in records:
            writer.writerow(csv_row(r, checks))
    log.info("CSV report saved: %s", path)
    return path


def write_summary_json(summary: RunSummary, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {"summary": asdict(summary), "timestamp": datetime.now(timezone.utc).isoformat()}
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return path


def write_path_list(paths: Sequence[str], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(paths) + "\n", encoding="utf-8")
    log.info("Path list saved: %s (%d paths)", path, len(paths))
    return path


def write_sitemap_comparison(result: SitemapComparison, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {"comparison": asdict(result), "timestamp": datetime.now(timezone.utc).isoformat()}
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    log.info("Sitemap comparison saved: %s", path)
    return path


def _value_cell(value: str, cls: str) -> str:
    shown = escape(value) if value else "<em>empty</em>"
    return f'<td class="{cls}">{shown}</td>'


def _record_rows(record: ComparisonRecord) -> str:
    color, bg = _STATUS_COLORS[record.status]
    element_rows = []
    for fc in record.fields:
        mark = match_mark(record, fc)
        cls = {MISMATCH: "diff-cell", MIGRATION: "migration-cell"}.get(mark, "")
        element_rows.append(
            f'<td class="label-cell">{escape(fc.label)}</td>'
            + _value_cell(fc.prod, cls)
            + _value_cell(fc.dev, cls)
            + f'<td class="match-cell">{mark}</td>'
        )
    if not element_rows:
        element_rows.append('<td colspan="4"></td>')

    diffs = f'<br><span class="small-text">({record.diff_count} diffs)</span>' if record.diff_count else ""
    lines = []
    for i, content in enumerate(element_rows):
        lead = ""
        if i == 0:
            span = len(element_rows)
            lead = (
                f'<td rowspan="{span}" class="url-cell">{escape(record.path)}</td>'
                f'<td rowspan="{span}" class="status-cell" style="color: {color};">'
                f"{record.status}{diffs}</td>"
            )
        lines.append(f'<tr style="background-color: {bg}">{lead}{content}</tr>')
    lines.append(
        '<tr class="notes-row"><td colspan="6"><strong>Differences:</strong> '
        f"{escape(record.notes_text)}</td></tr>"
    )
    return "\n".join(lines)


def _locale_label(loc: Optional[str]) -> str:
    return loc or "default"


def _progress_html(groups: Sequence[CanonicalGroup]) -> str:
    fully, partially = migration_progress(groups)
    if not fully and not partially:
        return ""
    items = []
    for item in fully:
        items.append(
            f"<li><strong>{escape(item.canonical)}</strong> - all {item.total} variants ERROR</li>"
        )
    fully_html = "".join(items) or "<li><em>none</em></li>"
    items = []
    for item in partially:
        missing = ", ".join(_locale_label(loc) for loc in item.error_locales)
        items.append(
            f"<li><strong>{escape(item.canonical)}</strong> - {item.error}/{item.total} ERROR"
            f" (missing: {escape(missing)})</li>"
        )
    partially_html = "".join(items) or "<li><em>none</em></li>"
    return (
        '<div class="summary">\n'
        f"    <h2>Fully ERROR, need full migration ({len(fully)})</h2><ul>{fully_html}</ul>\n"
        f"    <h2>Partially ERROR, need translations ({len(partially)})</h2><ul>{partially_html}</ul>\n"
        "  </div>"
    )


_CSS = """
body { font-family: Arial, sans-serif; margin: 20px; background: #f5f5f5; font-size: 14px; }
table { border-collapse: collapse; width: 100%; background: white; font-size: 13px; }
th, td { border: 1px solid #ddd; padding: 8px; text-align: left; word-wrap: break-word; max-width: 300px; }
th { background-color: #4CAF50; color: white; position: sticky; top: 0; }
.summary { background: white; padding: 20px; border-radius: 8px; margin-bottom: 20px; }
.url-cell, .status-cell, .label-cell { font-weight: bold; vertical-align: top; }
.match-cell { text-align: center; }
.small-text { font-size: 11px; color: #666; }
.diff-cell { background-color: #ffe6e6; border-left: 3px solid #ff4444; }
.migration-cell { background-color: #fff9e6; border-left: 3px solid #ffa500; }
.notes-row td { background-color: #f8f9fa; border-bottom: 2px solid #333; }
.group-header td { background-color: #e9ecef; font-weight: bold; }
"""


def render_html(
    records: Sequence[ComparisonRecord],
    summary: RunSummary,
    checks: CheckSet,
    prod_host: str,
    dev_host: str,
    groups: Optional[Sequence[CanonicalGroup]] = None,
) -> str:
    if groups:
        body_parts = []
        for g in groups:
            body_parts.append(
                f'<tr class="group-header"><td colspan="6">{escape(g.canonical)} '
                f"({len(g.records)} variants)</td></tr>"
            )
            body_parts.extend(_record_rows(r) for r in g.records)
        body = "\n".join(body_parts)
    else:
        body = "\n".join(_record_rows(r) for r in records)

    progress = _progress_html(groups) if groups else ""
    checked = ", ".join(FIELD_LABELS[n] for n in checks.enabled()) or "status only"
    generated = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <title>Site Comparison Report</title>
  <style>{_CSS}</style>
</head>
<body>
  <h1>Site Comparison Report</h1>
  <div class="summary">
    <p><strong>Perfect match:</strong> {summary.ok}</p>
    <p><strong>Differences found:</strong> {summary.diff}</p>
    <p><strong>Errors:</strong> {summary.error}</p>
    <p><strong>Total URLs:</strong> {summary.total}</p>
    <p><strong>Checked elements:</strong> {escape(checked)}</p>
    <p><strong>Prod URL:</strong> {escape(prod_host)}</p>
    <p><strong>Dev URL:</strong> {escape(dev_host)}</p>
    <p><strong>Generated:</strong> {generated}</p>
  </div>
  {progress}
  <table>
    <thead>
      <tr><th>URL</th><th>Status</th><th>Element</th><th>Prod Value</th><th>Dev Value</th><th>Match</th></tr>
    </thead>
    <tbody>
{body}
    </tbody>
  </table>
</body>
</html>
"""


def write_html(
    records: Sequence[ComparisonRecord],
    summary: RunSummary,
    checks: CheckSet,
    prod_host: str,
    dev_host: str,
    path: Path,
    groups: Optional[Sequence[CanonicalGroup]] = None,
) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_html(records, summary, checks, prod_host, dev_host, groups), encoding="utf-8")
    log.info("HTML report saved: %s", path)
    return path


def render_progress_markdown(
    fully: Sequence[MigrationItem], partially: Sequence[MigrationItem], total_pages: int
) -> str:
    today = datetime.now(timezone.utc).date().isoformat()
    lines = [
        "# Pages Migration Progress\n",
        f"**Created:** {today}",
        f"**Total Unique Pages:** {total_pages}",
        f"**Fully ERROR (need full migration):** {len(fully)}",
        f"**Partially ERROR (need translations):** {len(partially)}\n",
        "---\n",
    ]
    if fully:
        lines.append(f"## Priority 1: Fully ERROR Pages ({len(fully)} pages)\n")
        for i, item in enumerate(fully, start=1):
            lines.append(f"{i}. **{item.canonical}**")
            lines.append(f"   - Variants: {item.total}")
            lines.append(f"   - Example: {item.error_paths[0]}\n")
        lines.append("---\n")
    if partially:
        lines.append(f"## Priority 2: Partially ERROR Pages ({len(partially)} pages)\n")
        for i, item in enumerate(partially, start=1):
            missing = ", ".join(_locale_label(loc) for loc in item.error_locales)
            lines.append(f"{i}. **{item.canonical}**")
            lines.append(f"   - Total variants: {item.total}")
            lines.append(f"   - OK: {item.ok}, DIFF: {item.diff}, ERROR: {item.error}")
            lines.append(f"   - Missing languages: {missing}\n")
        lines.append("---\n")
    return "\n".join(lines)


def write_progress(groups: Sequence[CanonicalGroup], path: Path) -> Path:
    fully, partially = migration_progress(groups)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_progress_markdown(fully, partially, len(groups)), encoding="utf-8")
    log.info("Migration progress saved: %s", path)
    return path


def write_reports(
    records: Sequence[ComparisonRecord],
    summary: RunSummary,
    checks: CheckSet,
    prod_host: str,
    dev_host: str,
    out_dir: Path,
    groups: Optional[Sequence[CanonicalGroup]] = None,
) -> Dict[str, Path]:
    """
    Write the report files into out_dir and return their paths. The migration
    progress list is only written when canonical groups are given.
    """
    paths = {
        "csv": write_csv(records, checks, out_dir / CSV_NAME),
        "html": write_html(records, summary, checks, prod_host, dev_host, out_dir / HTML_NAME, groups),
        "summary": write_summary_json(summary, out_dir / SUMMARY_NAME),
    }
    if groups is not None:
        paths["progress"] = write_progress(groups, out_dir / PROGRESS_NAME)
    return paths
