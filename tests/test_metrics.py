import json

import pytest

from metriclaunch.clause import Temporality
from metriclaunch.config import PipelineConfig
from metriclaunch.metrics import (
    CPUTIME_STABLE,
    DEFAULT_REPORTING_PERIOD,
    HOST_PRESTABLE,
    HOST_STABLE,
    RUNTIME_PRESTABLE,
    RUNTIME_STABLE,
    DropSummary,
    parse_duration,
    report_partial_failure,
    reporting_period,
    resolve_builtins,
    summarize_trailers,
    temporality_selector,
)
from metriclaunch.periodic import set_error_handler
from metriclaunch.sdkinstrument import Kind


@pytest.fixture
def errors():
    collected = []
    previous = set_error_handler(collected.append)
    yield collected
    set_error_handler(previous)


@pytest.mark.parametrize(
    "text, seconds",
    [
        ("24h", 86400.0),
        ("1h30m", 5400.0),
        ("300ms", 0.3),
        ("1.5s", 1.5),
        ("-1s", -1.0),
        ("0", 0.0),
        ("+2m", 120.0),
        ("10us", 0.00001),
        (".5s", 0.5),
    ],
)
def test_parse_duration(text, seconds):
    assert parse_duration(text) == pytest.approx(seconds)


@pytest.mark.parametrize("text", ["", "5", "1x", ".s", "s", "-"])
def test_parse_duration_invalid(text):
    with pytest.raises(ValueError):
        parse_duration(text)


def test_reporting_period_default():
    assert reporting_period(PipelineConfig()) == DEFAULT_REPORTING_PERIOD


def test_reporting_period_parsed():
    assert reporting_period(PipelineConfig(reporting_period="24h")) == 86400.0


@pytest.mark.parametrize("text", ["bogus", "0s", "-5s"])
def test_reporting_period_invalid(text):
    with pytest.raises(ValueError, match="invalid metric reporting period"):
        reporting_period(PipelineConfig(reporting_period=text))


@pytest.mark.parametrize("preference", ["", "cumulative", "CUMULATIVE"])
def test_cumulative_temporality(preference):
    select = temporality_selector(preference)
    assert [select(kind) for kind in Kind] == [Temporality.CUMULATIVE] * len(Kind)


def test_delta_temporality():
    select = temporality_selector("Delta")
    assert select(Kind.SYNC_COUNTER) == Temporality.DELTA
    assert select(Kind.SYNC_HISTOGRAM) == Temporality.DELTA
    assert select(Kind.ASYNC_COUNTER) == Temporality.DELTA
    assert select(Kind.ASYNC_GAUGE) == Temporality.DELTA
    assert select(Kind.SYNC_UP_DOWN_COUNTER) == Temporality.CUMULATIVE
    assert select(Kind.ASYNC_UP_DOWN_COUNTER) == Temporality.CUMULATIVE


def test_stateless_temporality():
    select = temporality_selector("stateless")
    assert select(Kind.SYNC_COUNTER) == Temporality.DELTA
    assert select(Kind.SYNC_HISTOGRAM) == Temporality.DELTA
    assert select(Kind.ASYNC_COUNTER) == Temporality.CUMULATIVE
    assert select(Kind.ASYNC_GAUGE) == Temporality.CUMULATIVE
    assert select(Kind.SYNC_UP_DOWN_COUNTER) == Temporality.CUMULATIVE


def test_invalid_temporality():
    with pytest.raises(ValueError, match="invalid temporality preference: sideways"):
        temporality_selector("sideways")


def test_drop_summary_empty():
    summary = DropSummary()
    assert summary.is_empty()
    assert summary.to_json() == '{"dropped":{}}'


def test_drop_summary_json():
    summary = DropSummary(points=3, metrics=1, examples=[("bad name", ["a", "b"])])
    assert not summary.is_empty()
    assert json.loads(summary.to_json()) == {
        "dropped": {"points": 3, "metrics": 1},
        "examples": [{"reason": "bad name", "names": ["a", "b"]}],
    }


def test_summarize_trailers():
    summary = summarize_trailers(
        {
            "OTLP-Points-Dropped": ["7"],
            "otlp-metrics-dropped": ["2"],
            "otlp-invalid-metric-name": ["x.y", "z"],
            "content-type": ["application/grpc"],
        }
    )
    assert summary.points == 7
    assert summary.metrics == 2
    assert summary.examples == [("metric name", ["x.y", "z"])]


def test_summarize_trailers_ignores_bad_counts():
    summary = summarize_trailers(
        {"otlp-points-dropped": ["1", "2"], "otlp-metrics-dropped": ["many"]}
    )
    assert summary.is_empty()


def test_report_partial_failure(errors):
    summary = report_partial_failure({"otlp-points-dropped": ["4"]})
    assert summary.points == 4
    assert len(errors) == 1
    assert str(errors[0]) == 'metrics partial failure: {"dropped":{"points":4}}'


def test_report_no_failure(errors):
    summary = report_partial_failure({"grpc-status": ["0"]})
    assert summary.is_empty()
    assert errors == []


@pytest.mark.parametrize(
    "builtins, expected",
    [
        (["invalid", "cputime"], [CPUTIME_STABLE]),
        (["cputime", "invalid"], [CPUTIME_STABLE]),
        (["cputime:stable"], [CPUTIME_STABLE]),
        (["cputime:v2"], []),
        (["cputime:"], [CPUTIME_STABLE]),
        (["runtime:prestable"], [RUNTIME_PRESTABLE]),
        (["runtime:stable"], [RUNTIME_STABLE]),
        (["host:prestable"], [HOST_PRESTABLE]),
        (["host:stable"], [HOST_STABLE]),
        (["all:stable"], [HOST_STABLE, RUNTIME_STABLE, CPUTIME_STABLE]),
        (["all:prestable"], [HOST_PRESTABLE, RUNTIME_PRESTABLE]),
    ],
)
def test_resolve_builtins(errors, builtins, expected):
    assert resolve_builtins(builtins) == expected


def test_resolve_builtins_reports_unknown(errors):
    assert resolve_builtins(["invalid", "cputime:v2", "host"]) == [HOST_STABLE]
    assert len(errors) == 2
    assert "unrecognized builtin: 'invalid'" in str(errors[0])
    assert "unrecognized builtin version: cputime: 'v2'" in str(errors[1])