"""Metrics pipeline settings: reporting period, temporality, builtins and drop reports."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Dict, List, Mapping, Sequence, Tuple

from .clause import Temporality
from .config import PipelineConfig
from .periodic import handle_error
from .sdkinstrument import Kind

DEFAULT_REPORTING_PERIOD = 30.0

PRESTABLE_VERSION = "prestable"
DEFAULT_VERSION = "stable"

HOST_STABLE = "lightstep/host"
RUNTIME_STABLE = "lightstep/runtime"
CPUTIME_STABLE = "lightstep/cputime"
HOST_PRESTABLE = "contrib/host"
RUNTIME_PRESTABLE = "contrib/runtime"

BUILTIN_METRICS_VERSIONS: Dict[str, Dict[str, Tuple[str, ...]]] = {
    "all": {
        DEFAULT_VERSION: (HOST_STABLE, RUNTIME_STABLE, CPUTIME_STABLE),
        PRESTABLE_VERSION: (HOST_PRESTABLE, RUNTIME_PRESTABLE),
    },
    "cputime": {
        DEFAULT_VERSION: (CPUTIME_STABLE,),
        PRESTABLE_VERSION: (),
    },
    "host": {
        DEFAULT_VERSION: (HOST_STABLE,),
        PRESTABLE_VERSION: (HOST_PRESTABLE,),
    },
    "runtime": {
        DEFAULT_VERSION: (RUNTIME_STABLE,),
        PRESTABLE_VERSION: (RUNTIME_PRESTABLE,),
    },
}

_UNIT_NANOS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}

_TERM = re.compile(r"([0-9]*(?:\.[0-9]*)?)([^0-9.]*)")
_COUNT = re.compile(r"[+-]?[0-9]+")

_POINTS_DROPPED = "otlp-points-dropped"
_METRICS_DROPPED = "otlp-metrics-dropped"
_INVALID_PREFIX = "otlp-invalid-"


def parse_duration(text: str) -> float:
    """Parse a duration such as ``"1h30m"`` or ``"250ms"`` into seconds.

    Raises ValueError for malformed input.
    """
    original = text
    invalid = ValueError(f"time: invalid duration {original!r}")
    sign = 1
    if text[:1] in ("+", "-"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if text == "0":
        return 0.0
    if not text:
        raise invalid
    nanos = Decimal(0)
    position = 0
    while position < len(text):
        match = _TERM.match(text, position)
        number, unit = match.group(1), match.group(2)
        if not any(ch.isdigit() for ch in number):
            raise invalid
        if not unit:
            raise ValueError(f"time: missing unit in duration {original!r}")
        if unit not in _UNIT_NANOS:
            raise ValueError(f"time: unknown unit {unit!r} in duration {original!r}")
        nanos += Decimal(number if not number.endswith(".") else number + "0") * _UNIT_NANOS[unit]
        position = match.end()
    return sign * float(int(nanos)) / 1_000_000_000


def reporting_period(config: PipelineConfig) -> float:
    """The metric reporting period in seconds; raises ValueError if invalid."""
    if not config.reporting_period:
        return DEFAULT_REPORTING_PERIOD
    try:
        period = parse_duration(config.reporting_period)
    except ValueError as error:
        raise ValueError(f"invalid metric reporting period: {error}") from error
    if period <= 0:
        raise ValueError(f"invalid metric reporting period: {config.reporting_period}")
    return period


def temporality_selector(preference: str) -> Callable[[Kind], Temporality]:
    """Return the temporality for each instrument kind under a preference.

    The preference is ``"cumulative"`` (or empty), ``"delta"`` or
    ``"stateless"``, in any letter case.  Up-down counters always stay
    cumulative.  Raises ValueError for any other preference.
    """
    lower = (preference or "").lower()
    if lower == "delta":
        sync_pref = async_pref = Temporality.DELTA
    elif lower == "stateless":
        sync_pref, async_pref = Temporality.DELTA, Temporality.CUMULATIVE
    elif lower in ("", "cumulative"):
        sync_pref = async_pref = Temporality.CUMULATIVE
    else:
        raise ValueError(f"invalid temporality preference: {preference}")

    def select(kind: Kind) -> Temporality:
        if kind in (Kind.SYNC_UP_DOWN_COUNTER, Kind.ASYNC_UP_DOWN_COUNTER):
            return Temporality.CUMULATIVE
        if kind in (Kind.SYNC_COUNTER, Kind.SYNC_HISTOGRAM):
            return sync_pref
        return async_pref

    return select


@dataclass
class DropSummary:
    """Points and metrics an export endpoint reported as dropped.

    ``examples`` holds ``(reason, names)`` pairs.
    """

    points: int = 0
    metrics: int = 0
    examples: List[Tuple[str, List[str]]] = field(default_factory=list)

    def is_empty(self) -> bool:
        """Whether nothing was reported dropped."""
        return not self.examples and self.points == 0 and self.metrics == 0

    def to_json(self) -> str:
        """Compact JSON form of the summary."""
        dropped: Dict[str, int] = {}
        if self.points:
            dropped["points"] = self.points
        if self.metrics:
            dropped["metrics"] = self.metrics
        document: Dict[str, object] = {"dropped": dropped}
        if self.examples:
            document["examples"] = [
                {"reason": reason, "names": list(names)} for reason, names in self.examples
            ]
        return json.dumps(document, separators=(",", ":"), ensure_ascii=False)


def _single_count(values: Sequence[str]):
    if len(values) != 1 or not _COUNT.fullmatch(values[0]):
        return None
    return int(values[0])


def summarize_trailers(metadata: Mapping[str, Sequence[str]]) -> DropSummary:
    """Summarize the ``otlp-`` response trailers of an export call."""
    summary = DropSummary()
    for key, values in metadata.items():
        key = key.lower()
        if not key.startswith("otlp-"):
            continue
        if key == _POINTS_DROPPED:
            count = _single_count(values)
            if count is not None:
                summary.points = count
        elif key == _METRICS_DROPPED:
            count = _single_count(values)
            if count is not None:
                summary.metrics = count
        elif key.startswith(_INVALID_PREFIX):
            reason = key[len(_INVALID_PREFIX):].replace("-", " ")
            summary.examples.append((reason, list(values)))
    return summary


def report_partial_failure(metadata: Mapping[str, Sequence[str]]) -> DropSummary:
    """Summarize the trailers and pass any drops to the error handler."""
    summary = summarize_trailers(metadata)
    if not summary.is_empty():
        handle_error(RuntimeError(f"metrics partial failure: {summary.to_json()}"))
    return summary


def resolve_builtins(libraries: Sequence[str]) -> List[str]:
    """Map ``name[:version]`` entries to the builtin libraries to start.

    Unrecognized names and versions are passed to the error handler and
    skipped; the remaining entries still resolve.
    """
    resolved: List[str] = []
    for entry in libraries:
        name, _, version = entry.partition(":")
        if not version:
            version = DEFAULT_VERSION
        versions = BUILTIN_METRICS_VERSIONS.get(name)
        if versions is None:
            handle_error(ValueError(f"unrecognized builtin: {name!r}"))
            continue
        found = versions.get(version)
        if found is None:
            handle_error(ValueError(f"unrecognized builtin version: {name}: {version!r}"))
            continue
        resolved.extend(found)
    return resolved