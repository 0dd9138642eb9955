# metriclaunch

Building blocks for configuring metric and trace export pipelines. The
package has no dependencies beyond the standard library.

- `metriclaunch.sdkinstrument` — instrument kinds (`Kind`, with
  `synchronous()` and `has_temporality()`), number kinds (`NumberKind`) and
  the frozen `Descriptor` that names an instrument.
- `metriclaunch.clause` — view clauses. `ClauseConfig` matches instruments by
  exact name, regular expression, `Kind`, `NumberKind` or instrumentation
  `Library`, and carries the name, description, attribute keys, aggregation
  (`AggregationKind`) and `AggregatorConfig` to apply. Clause options such as
  `match_instrument_name`, `match_instrument_name_regexp`,
  `match_instrument_kind`, `match_number_kind`,
  `match_instrumentation_library`, `with_keys`, `with_name`,
  `with_description`, `with_aggregation` and `with_aggregator_config` each
  return a function that builds a new clause. `Hint.from_json` decodes an
  aggregation hint from a JSON description.
- `metriclaunch.views` — `Views`, a named `ViewConfig` of clauses plus
  per-kind defaults (`DefaultConfig`) for aggregation, temporality and
  aggregator config. `new_views` / `new_config` start from the standard
  defaults (`standard_aggregation_kind`, `standard_temporality`,
  `standard_config`); `delta_preferred_temporality` is also provided.
  `validate` returns the nearest consistent configuration together with a
  tuple of problem messages.
- `metriclaunch.periodic` — `PeriodicReader`, which collects from a `Producer`
  on a background thread at a fixed interval and hands the data to a
  `PushExporter`, with `force_flush()` and `shutdown()`. Errors from
  background exports go to the handler installed with `set_error_handler`
  (the default logs them); `handle_error` passes an error to it.
- `metriclaunch.config` — `PipelineConfig`, `TransportSecurity` (plain text,
  given TLS context, or TLS with system roots) and `select_propagators`.
- `metriclaunch.metrics` — `parse_duration`, `reporting_period`,
  `temporality_selector`, `resolve_builtins`, and `DropSummary` with
  `summarize_trailers` / `report_partial_failure` for the `otlp-` trailers an
  export endpoint may return.

## Install

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Example: views

```python
import re

from metriclaunch.clause import AggregationKind, match_instrument_name_regexp, with_aggregation
from metriclaunch.views import new_views, validate, with_clause

views = new_views(
    "app",
    with_clause(
        match_instrument_name_regexp(re.compile("debug.+")),
        with_aggregation(AggregationKind.DROP),
    ),
)
views, problems = validate(views)
for problem in problems:
    print(problem)
```

`validate` does not raise: an invalid default aggregation or temporality is
replaced by the standard one, an out-of-range histogram size is clamped, and
a clause with both an instrument name and a regular expression keeps only the
name. Each correction, and each clause that renames several instruments or
lists an empty attribute key, adds a message to `problems`.

## Example: periodic export

```python
from metriclaunch.periodic import PeriodicReader, set_error_handler

set_error_handler(lambda error: print("export failed:", error))

reader = PeriodicReader(exporter, interval=30.0, timeout=None)
reader.register(producer)
...
reader.force_flush()
reader.shutdown()
```

`exporter` implements `__str__`, `export_metrics`, `force_flush_metrics` and
`shutdown_metrics`, each export method taking a context and the collected
data; `producer` implements `produce(previous)`. Interval and timeout are in
seconds (or `timedelta`); values that are not positive fall back to 30
seconds, and the timeout defaults to the interval. Registering a reader a
second time reports a `MultipleReaderRegistrationError` to the error handler.

## Example: pipeline settings

```python
from metriclaunch.config import PipelineConfig, select_propagators
from metriclaunch.metrics import reporting_period, resolve_builtins, temporality_selector
from metriclaunch.sdkinstrument import Kind

config = PipelineConfig(endpoint="localhost:4317", insecure=True, reporting_period="10s")
period = reporting_period(config)                       # 10.0
security = config.transport_security()                   # plain text
select = temporality_selector("delta")
select(Kind.SYNC_UP_DOWN_COUNTER)                        # Temporality.CUMULATIVE
select_propagators(["tracecontext", "baggage"])          # ("tracecontext", "baggage")
resolve_builtins(["host", "runtime:prestable"])          # library names to start
```

## What this package does not do

It configures and validates; it does not record or send telemetry. There are
no meters or instruments, no aggregators, and no network exporter: nothing
here dials an endpoint, sends requests or receives trailers. A
`PeriodicReader` needs a producer and an exporter supplied by the caller.
`resolve_builtins` only returns the names of the builtin host, runtime and
CPU-time libraries to start; it does not collect those metrics.
`select_propagators` returns propagator names rather than propagator objects.
There is no command-line program.