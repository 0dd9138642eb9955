"""View clauses: instrument matchers, view properties and description hints."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Callable, Iterable, Optional, Pattern, Tuple, Union

from .sdkinstrument import Descriptor, Kind, NumberKind

DEFAULT_HISTOGRAM_MAX_SIZE = 160
MIN_HISTOGRAM_SIZE = 2
MAX_HISTOGRAM_SIZE = 16384


def _camel(name: str) -> str:
    return "".join(part.capitalize() for part in name.split("_"))


class AggregationKind(IntEnum):
    """The kind of aggregation applied to an instrument."""

    UNDEFINED = 0
    DROP = 1
    MONOTONIC_SUM = 2
    NON_MONOTONIC_SUM = 3
    GAUGE = 4
    HISTOGRAM = 5

    def __str__(self) -> str:
        return _camel(self.name)


class Temporality(IntEnum):
    """The aggregation temporality of exported points."""

    UNDEFINED = 0
    DELTA = 1
    CUMULATIVE = 2

    def __str__(self) -> str:
        return _camel(self.name)


@dataclass(frozen=True)
class Library:
    """Identifies an instrumentation library (scope)."""

    name: str = ""
    version: str = ""
    schema_url: str = ""


@dataclass(frozen=True)
class AggregatorConfig:
    """Aggregator settings; a histogram size of 0 means the default."""

    histogram_max_size: int = 0

    def validate(self) -> Tuple["AggregatorConfig", Optional[str]]:
        """Return the nearest valid configuration and a problem message, if any."""
        size = self.histogram_max_size
        if MIN_HISTOGRAM_SIZE <= size <= MAX_HISTOGRAM_SIZE:
            return self, None
        if size == 0:
            return replace(self, histogram_max_size=DEFAULT_HISTOGRAM_MAX_SIZE), None
        problem = f"invalid histogram size: {size}"
        if size < 0:
            fixed = DEFAULT_HISTOGRAM_MAX_SIZE
        elif size < MIN_HISTOGRAM_SIZE:
            fixed = MIN_HISTOGRAM_SIZE
        else:
            fixed = MAX_HISTOGRAM_SIZE
        return replace(self, histogram_max_size=fixed), problem


@dataclass(frozen=True)
class ClauseConfig:
    """One view clause: matchers for instruments and the properties to apply.

    ``instrument_kind`` and ``number_kind`` of ``None`` match anything.
    ``keys`` of ``None`` keeps all attribute keys; an empty tuple keeps none.
    """

    instrument_name: str = ""
    instrument_name_regexp: Optional[Pattern[str]] = None
    instrument_kind: Optional[Kind] = None
    number_kind: Optional[NumberKind] = None
    library: Library = Library()

    keys: Optional[Tuple[str, ...]] = None
    name: str = ""
    description: str = ""
    aggregation: AggregationKind = AggregationKind.UNDEFINED
    aggregator_config: AggregatorConfig = AggregatorConfig()

    def is_single_instrument(self) -> bool:
        """Whether the clause matches a single instrument by exact name."""
        return self.instrument_name != ""

    def has_name(self) -> bool:
        """Whether the clause renames the instrument."""
        return self.name != ""

    def _library_mismatch(self, library: Library) -> bool:
        return (
            _string_mismatch(self.library.name, library.name)
            or _string_mismatch(self.library.version, library.version)
            or _string_mismatch(self.library.schema_url, library.schema_url)
        )

    def matches(self, library: Library, descriptor: Descriptor) -> bool:
        """Whether this clause applies to the instrument in the given library."""
        if self._library_mismatch(library):
            return False
        if _string_mismatch(self.instrument_name, descriptor.name):
            return False
        if self.instrument_kind is not None and self.instrument_kind != descriptor.kind:
            return False
        if self.number_kind is not None and self.number_kind != descriptor.number_kind:
            return False
        if (
            self.instrument_name_regexp is not None
            and self.instrument_name_regexp.search(descriptor.name) is None
        ):
            return False
        return True


def _string_mismatch(test: str, value: str) -> bool:
    return test != "" and test != value


ClauseOption = Callable[[ClauseConfig], ClauseConfig]


def match_instrument_name(name: str) -> ClauseOption:
    """Match instruments with exactly this name."""
    return lambda clause: replace(clause, instrument_name=name)


def match_instrument_name_regexp(pattern: Union[str, Pattern[str]]) -> ClauseOption:
    """Match instruments whose name contains a match of the pattern."""
    compiled = re.compile(pattern) if isinstance(pattern, str) else pattern
    return lambda clause: replace(clause, instrument_name_regexp=compiled)


def match_instrument_kind(kind: Kind) -> ClauseOption:
    """Match instruments of this kind."""
    return lambda clause: replace(clause, instrument_kind=kind)


def match_number_kind(kind: NumberKind) -> ClauseOption:
    """Match instruments of this number kind."""
    return lambda clause: replace(clause, number_kind=kind)


def match_instrumentation_library(library: Library) -> ClauseOption:
    """Match instruments from this library; empty fields match anything."""
    return lambda clause: replace(clause, library=library)


def with_keys(keys: Optional[Iterable[str]]) -> ClauseOption:
    """Keep only these attribute keys; ``None`` keeps all of them."""
    frozen = None if keys is None else tuple(keys)
    return lambda clause: replace(clause, keys=frozen)


def with_name(name: str) -> ClauseOption:
    """Rename the matched instrument."""
    return lambda clause: replace(clause, name=name)


def with_description(description: str) -> ClauseOption:
    """Replace the matched instrument's description."""
    return lambda clause: replace(clause, description=description)


def with_aggregation(kind: AggregationKind) -> ClauseOption:
    """Use this aggregation for the matched instrument."""
    return lambda clause: replace(clause, aggregation=kind)


def with_aggregator_config(config: AggregatorConfig) -> ClauseOption:
    """Use this aggregator configuration for the matched instrument."""
    return lambda clause: replace(clause, aggregator_config=config)


def _field(mapping: dict, key: str, kind: type, default):
    value = mapping.get(key, default)
    if value is None:
        return default
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ValueError(f"hint field {key!r} must be of type {kind.__name__}")
    return value


@dataclass(frozen=True)
class Hint:
    """Aggregation settings encoded as JSON in an instrument description."""

    description: str = ""
    aggregation: str = ""
    config: AggregatorConfig = AggregatorConfig()

    @classmethod
    def from_json(cls, text: Union[str, bytes]) -> "Hint":
        """Decode a hint; raises ValueError on malformed input."""
        document = json.loads(text)
        if not isinstance(document, dict):
            raise ValueError("hint must be a JSON object")
        config = _field(document, "config", dict, {})
        histogram = _field(config, "histogram", dict, {})
        return cls(
            description=_field(document, "description", str, ""),
            aggregation=_field(document, "aggregation", str, ""),
            config=AggregatorConfig(
                histogram_max_size=_field(histogram, "max_size", int, 0)
            ),
        )