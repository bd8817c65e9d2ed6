"""
NFR: create and redirect throughput/latency

How to run (opt-in):
    RUN_NFR=1 pytest tests/nfr/test_perf.py -vv

Optional thresholds (env):
    NFR_TARGET_CREATE_QPS=1000
    NFR_TARGET_CREATE_P95_MS=5
    NFR_TARGET_REDIRECT_QPS=800
    NFR_TARGET_REDIRECT_P95_MS=5
    NFR_CONCURRENCY=8
    NFR_REQUESTS=5000
    RUN_NFR_STRICT=1           # only then will thresholds cause test failures

Notes:
    - Create is measured directly on the store; redirect goes through the
      FastAPI TestClient (in-process), so absolute numbers vary by OS/CPU.
"""

import logging
import math
import os
import statistics
import time
from concurrent.futures import ThreadPoolExecutor, as_completed

import pytest
from fastapi.testclient import TestClient

from main import create_app
from shortlink_platform.errors import CreatedLink
from shortlink_platform.manager.shortlink_store import ShortLinkStore

logging.getLogger("shortlink_platform").setLevel(logging.WARNING)

pytestmark = pytest.mark.nfr


def _should_run():
    return os.getenv("RUN_NFR") == "1"


def _p95(latencies_ms):
    return statistics.quantiles(latencies_ms, n=100)[94] if len(latencies_ms) >= 100 else max(latencies_ms)


def _check(label, qps, p95, qps_env, p95_env):
    strict = os.getenv("RUN_NFR_STRICT") == "1"
    qps_target = os.getenv(qps_env)
    p95_target_ms = os.getenv(p95_env)
    if strict:
        if qps_target:
            assert qps >= float(qps_target), f"{label} QPS {qps:.1f} < target {qps_target}"
        if p95_target_ms:
            assert p95 <= float(p95_target_ms), f"{label} p95 {p95:.2f}ms > target {p95_target_ms}ms"
        return
    if qps_target and qps < float(qps_target):
        print(f"WARNING: {label} QPS {qps:.1f} < target {qps_target} (non-strict mode)")
    if p95_target_ms and p95 > float(p95_target_ms):
        print(f"WARNING: {label} p95 {p95:.2f}ms > target {p95_target_ms}ms (non-strict mode)")


@pytest.mark.skipif(not _should_run(), reason="NFR tests are opt-in; set RUN_NFR=1 to enable")
def test_create_throughput_and_latency(capsys):
    store = ShortLinkStore()

    n = 2000
    latencies_ms = []
    t0 = time.perf_counter()
    for i in range(n):
        s = time.perf_counter()
        result = store.create_short_url(f"https://example.com/resource/{i}")
        latencies_ms.append((time.perf_counter() - s) * 1000.0)
        assert isinstance(result, CreatedLink)
    total_s = time.perf_counter() - t0

    qps = n / total_s
    p95 = _p95(latencies_ms)
    with capsys.disabled():
        print(f"\nCreate N={n} -> total {total_s:.3f}s, QPS={qps:.1f}, p95={p95:.2f}ms", flush=True)
    _check("Create", qps, p95, "NFR_TARGET_CREATE_QPS", "NFR_TARGET_CREATE_P95_MS")


@pytest.mark.skipif(not _should_run(), reason="NFR tests are opt-in; set RUN_NFR=1 to enable")
def test_redirect_throughput_and_latency(capsys):
    store = ShortLinkStore(base_url="http://testserver")
    client = TestClient(create_app(store))
    resp = client.post("/shorturls", json={"url": "https://example.com/nfr-redirect", "shortcode": "nfr001"})
    assert resp.status_code == 201

    total_requests = int(os.getenv("NFR_REQUESTS", "5000"))
    concurrency = max(1, int(os.getenv("NFR_CONCURRENCY", "1")))
    per_thread = math.ceil(total_requests / concurrency)

    def worker(n_times: int):
        lat = []
        for _ in range(n_times):
            s = time.perf_counter()
            r = client.get("/nfr001", follow_redirects=False)
            lat.append((time.perf_counter() - s) * 1000.0)
            assert r.status_code == 301
        return lat

    t0 = time.perf_counter()
    latencies_ms = []
    with ThreadPoolExecutor(max_workers=concurrency) as ex:
        futures = [ex.submit(worker, per_thread) for _ in range(concurrency)]
        for fut in as_completed(futures):
            latencies_ms.extend(fut.result())
    total_s = time.perf_counter() - t0

    qps = len(latencies_ms) / total_s
    p95 = _p95(latencies_ms)
    with capsys.disabled():
        print(
            f"\nRedirect N={len(latencies_ms)}, conc={concurrency} -> "
            f"total {total_s:.3f}s, QPS={qps:.1f}, p95={p95:.2f}ms",
            flush=True,
        )
    assert store.get_entry_by_shortcode("nfr001").total_clicks == len(latencies_ms)
    _check("Redirect", qps, p95, "NFR_TARGET_REDIRECT_QPS", "NFR_TARGET_REDIRECT_P95_MS")
