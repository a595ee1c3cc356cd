from __future__ import annotations

import asyncio
import copy
import json

import httpx
import pytest

from seo_parity.api import compare_sites, warm_up
from seo_parity.config import DEFAULT_CONFIG
from seo_parity.models import CheckSet
from seo_parity.orchestrator import ComparisonFailed, RunHandle
from seo_parity.writers import CSV_NAME, HTML_NAME, PROGRESS_NAME, SUMMARY_NAME

PROD = "https://prod.example.com"
DEV = "https://dev.example.com"


def _page(title: str, og: str = "https://cdn.prod.website-files.com/x.png") -> str:
    return (
        f"<html><head><title>{title}</title>"
        '<meta name="description" content="Same">'
        f'<meta property="og:image" content="{og}">'
        f"</head><body><h1>{title}</h1></body></html>"
    )


def _handler(request: httpx.Request) -> httpx.Response:
    host, path = request.url.host, request.url.path
    if path == "/same":
        return httpx.Response(200, html=_page("Same"))
    if path == "/migrated":
        og = "https://cdn.sanity.io/x.png" if host == "dev.example.com" else "https://cdn.prod.website-files.com/x.png"
        return httpx.Response(200, html=_page("Migrated", og))
    if path == "/retitled":
        return httpx.Response(200, html=_page("New" if host == "dev.example.com" else "Old"))
    if path == "/en/rto-materials/a" and host == "dev.example.com":
        return httpx.Response(200, html=_page("RTO"))
    if path == "/rto-materials/a" and host == "prod.example.com":
        return httpx.Response(200, html=_page("RTO"))
    return httpx.Response(404)


def _config(**overrides):
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    cfg.update(prod_url=PROD, dev_url=DEV, batch_delay=0, request_delay=0)
    cfg.update(overrides)
    return cfg


def _run(paths, **kwargs):
    kwargs.setdefault("config", _config())
    return asyncio.run(compare_sites(paths, transport=httpx.MockTransport(_handler), **kwargs))


def test_compare_sites_end_to_end():
    outcome = _run(["/same", "/migrated", "/retitled", "/missing"])
    assert outcome.state == "completed"
    assert [r.path for r in outcome.records] == ["/same", "/migrated", "/retitled", "/missing"]
    assert [r.status for r in outcome.records] == ["OK", "OK", "DIFF", "ERROR"]
    migrated = outcome.records[1]
    assert migrated.og_image_migration
    assert migrated.diff_count == 0
    assert outcome.summary.total == 4
    assert (outcome.summary.ok, outcome.summary.diff, outcome.summary.error) == (2, 1, 1)


def test_compare_sites_respects_checks():
    outcome = _run(["/retitled"], checks=CheckSet(title=False, h1=False))
    assert outcome.records[0].status == "OK"
    assert [fc.name for fc in outcome.records[0].fields] == ["description", "og_image"]


def test_compare_sites_dev_rewrites_from_config():
    cfg = _config(dev_path_rewrites=[["/rto-materials/", "/en/rto-materials/"]])
    outcome = _run(["/rto-materials/a"], config=cfg)
    assert outcome.records[0].status == "OK"
    assert outcome.records[0].path == "/rto-materials/a"


def test_compare_sites_writes_reports(tmp_path):
    out_dir = tmp_path / "result"
    outcome = _run(
        ["/same", "/fr/same", "/retitled"],
        output_dir=out_dir,
        canonical_mapping={"/fr/same": "/same"},
    )
    assert outcome.state == "completed"
    for name in (CSV_NAME, HTML_NAME, SUMMARY_NAME, PROGRESS_NAME):
        assert (out_dir / name).exists()
    summary = json.loads((out_dir / SUMMARY_NAME).read_text(encoding="utf-8"))["summary"]
    assert summary["total"] == 3
    assert "/same (2 variants)" in (out_dir / HTML_NAME).read_text(encoding="utf-8")


def test_compare_sites_stopped_writes_nothing(tmp_path):
    handle = RunHandle()
    handle.request_stop()
    outcome = _run(["/same"], handle=handle, output_dir=tmp_path / "out")
    assert outcome.state == "stopped"
    assert outcome.records == []
    assert not (tmp_path / "out").exists()


def test_compare_sites_raise_on_failure(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x", encoding="utf-8")
    with pytest.raises(ComparisonFailed):
        _run(["/same"], output_dir=blocker, raise_on_failure=True)


def test_compare_sites_failure_outcome(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x", encoding="utf-8")
    events = []
    outcome = _run(["/same"], output_dir=blocker, observer=events.append)
    assert outcome.state == "failed"
    assert outcome.records == []
    assert outcome.error
    assert events[-1].type == "error"


def test_warm_up_reports_status_per_path():
    statuses = asyncio.run(
        warm_up(
            ["/same", "/missing"],
            DEV,
            concurrency=2,
            config=_config(),
            transport=httpx.MockTransport(_handler),
        )
    )
    assert statuses == {"/same": 200, "/missing": 404}


def test_malformed_path_does_not_fail_the_run():
    outcome = _run(["/same", "/bad\x7fpath", "/migrated"])
    assert outcome.state == "completed"
    assert [r.status for r in outcome.records] == ["OK", "ERROR", "OK"]
    bad = outcome.records[1]
    assert bad.prod_status == 0 and bad.dev_status == 0
    assert bad.prod_error and bad.dev_error
