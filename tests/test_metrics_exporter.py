import asyncio

from prometheus_client import REGISTRY

from tokenagg.engine.executor import run_sources
from tokenagg.metrics import exporter


def _value(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_run_sources_records_outcomes() -> None:
    async def ok(budget):
        return 1

    async def boom(budget):
        raise RuntimeError("boom")

    async def slow(budget):
        await asyncio.sleep(1.0)

    labels = dict(service="metrics-test")
    before = {
        result: _value("source_calls_total", source=sid, result=result, **labels)
        for sid, result in (("ok", "success"), ("boom", "call-failed"), ("slow", "timeout"))
    }
    asyncio.run(
        run_sources(
            [("ok", ok), ("boom", boom), ("slow", slow)],
            timeout=0.05,
            service="metrics-test",
        )
    )
    assert _value("source_calls_total", source="ok", result="success", **labels) == before["success"] + 1
    assert _value("source_calls_total", source="boom", result="call-failed", **labels) == before["call-failed"] + 1
    assert _value("source_calls_total", source="slow", result="timeout", **labels) == before["timeout"] + 1
    assert _value("source_call_latency_seconds_count", source="ok", **labels) >= 1


def test_start_metrics_server_casts_port(monkeypatch) -> None:
    ports = []
    monkeypatch.setattr(exporter, "start_http_server", ports.append)
    exporter.start_metrics_server("9200")
    assert ports == [9200]
