"""View configuration: per-kind defaults, clauses and their validation."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Callable, List, Tuple, Union

from .clause import (
    AggregationKind,
    AggregatorConfig,
    ClauseConfig,
    ClauseOption,
    Temporality,
)
from .sdkinstrument import Kind, NumberKind

KindSelector = Callable[[Kind], AggregationKind]
TemporalitySelector = Callable[[Kind], Temporality]
ConfigSelector = Callable[[Kind], Tuple[AggregatorConfig, AggregatorConfig]]


@dataclass(frozen=True)
class KindDefaults:
    """Default settings for one kind of instrument.

    ``aggregation`` and ``temporality`` may hold a raw integer when a
    selector produced a value outside the enumeration; ``validate``
    reports and corrects it.
    """

    aggregation: Union[AggregationKind, int] = AggregationKind.UNDEFINED
    temporality: Union[Temporality, int] = Temporality.UNDEFINED
    int64: AggregatorConfig = AggregatorConfig()
    float64: AggregatorConfig = AggregatorConfig()


def _blank_defaults() -> Tuple[KindDefaults, ...]:
    return tuple(KindDefaults() for _ in Kind)


@dataclass(frozen=True)
class DefaultConfig:
    """Settings that apply to every instrument of a given kind."""

    by_instrument_kind: Tuple[KindDefaults, ...] = field(default_factory=_blank_defaults)

    def aggregation(self, kind: Kind) -> Union[AggregationKind, int]:
        """The default aggregation for this instrument kind."""
        return self.by_instrument_kind[kind].aggregation

    def temporality(self, kind: Kind) -> Union[Temporality, int]:
        """The default temporality for this instrument kind."""
        return self.by_instrument_kind[kind].temporality

    def aggregation_config(self, kind: Kind, number_kind: NumberKind) -> AggregatorConfig:
        """The default aggregator configuration for this instrument and number kind."""
        defaults = self.by_instrument_kind[kind]
        return defaults.int64 if number_kind == NumberKind.INT64 else defaults.float64

    def _update(self, change: Callable[[Kind, KindDefaults], KindDefaults]) -> "DefaultConfig":
        return DefaultConfig(
            tuple(change(kind, current) for kind, current in zip(Kind, self.by_instrument_kind))
        )


@dataclass(frozen=True)
class ViewConfig:
    """The clauses in effect and the per-kind defaults."""

    clauses: Tuple[ClauseConfig, ...] = ()
    defaults: DefaultConfig = field(default_factory=DefaultConfig)


ViewOption = Callable[[ViewConfig], ViewConfig]


@dataclass(frozen=True)
class Views:
    """A named view configuration; the name is used in error reporting."""

    name: str
    config: ViewConfig = field(default_factory=ViewConfig)

    @property
    def clauses(self) -> Tuple[ClauseConfig, ...]:
        return self.config.clauses

    @property
    def defaults(self) -> DefaultConfig:
        return self.config.defaults


def standard_aggregation_kind(kind: Kind) -> AggregationKind:
    """The standard default aggregation for each instrument kind."""
    if kind == Kind.SYNC_HISTOGRAM:
        return AggregationKind.HISTOGRAM
    if kind == Kind.ASYNC_GAUGE:
        return AggregationKind.GAUGE
    if kind in (Kind.SYNC_UP_DOWN_COUNTER, Kind.ASYNC_UP_DOWN_COUNTER):
        return AggregationKind.NON_MONOTONIC_SUM
    return AggregationKind.MONOTONIC_SUM


def standard_temporality(kind: Kind) -> Temporality:
    """Cumulative temporality for every instrument kind."""
    return Temporality.CUMULATIVE


def delta_preferred_temporality(kind: Kind) -> Temporality:
    """Delta temporality, except cumulative for up-down counters."""
    if kind in (Kind.SYNC_UP_DOWN_COUNTER, Kind.ASYNC_UP_DOWN_COUNTER):
        return Temporality.CUMULATIVE
    return Temporality.DELTA


def standard_config(kind: Kind) -> Tuple[AggregatorConfig, AggregatorConfig]:
    """Default aggregator configurations for integer and float instruments."""
    return AggregatorConfig(), AggregatorConfig()


def with_clause(*options: ClauseOption) -> ViewOption:
    """Add a clause built from the given clause options."""
    clause = ClauseConfig()
    for option in options:
        clause = option(clause)

    def apply(config: ViewConfig) -> ViewConfig:
        return replace(config, clauses=config.clauses + (clause,))

    return apply


def with_default_aggregation_kind_selector(selector: KindSelector) -> ViewOption:
    """Set the default aggregation for each instrument kind."""

    def apply(config: ViewConfig) -> ViewConfig:
        return replace(
            config,
            defaults=config.defaults._update(
                lambda kind, current: replace(current, aggregation=selector(kind))
            ),
        )

    return apply


def with_default_aggregation_temporality_selector(selector: TemporalitySelector) -> ViewOption:
    """Set the default temporality for each instrument kind."""

    def apply(config: ViewConfig) -> ViewConfig:
        return replace(
            config,
            defaults=config.defaults._update(
                lambda kind, current: replace(current, temporality=selector(kind))
            ),
        )

    return apply


def with_default_aggregation_config_selector(selector: ConfigSelector) -> ViewOption:
    """Set the default integer and float aggregator configs for each kind."""

    def change(kind: Kind, current: KindDefaults) -> KindDefaults:
        ints, floats = selector(kind)
        return replace(current, int64=ints, float64=floats)

    def apply(config: ViewConfig) -> ViewConfig:
        return replace(config, defaults=config.defaults._update(change))

    return apply


def new_config(*options: ViewOption) -> ViewConfig:
    """Build a view configuration from the standard defaults and the options."""
    standard = (
        with_default_aggregation_kind_selector(standard_aggregation_kind),
        with_default_aggregation_temporality_selector(standard_temporality),
        with_default_aggregation_config_selector(standard_config),
    )
    config = ViewConfig()
    for option in (*standard, *options):
        config = option(config)
    return config


def new_views(name: str, *options: ViewOption) -> Views:
    """Build named views from the given options."""
    return Views(name=name, config=new_config(*options))


def _check_aggregation(value, default: AggregationKind, problems: List[str]) -> AggregationKind:
    try:
        return AggregationKind(value)
    except ValueError:
        problems.append(f"invalid aggregation: {value}")
        return default


def _check_temporality(value, default: Temporality, problems: List[str]) -> Temporality:
    try:
        return Temporality(value)
    except ValueError:
        problems.append(f"invalid temporality: {value}")
        return default


def _check_config(config: AggregatorConfig, problems: List[str]) -> AggregatorConfig:
    fixed, problem = config.validate()
    if problem is not None:
        problems.append(problem)
    return fixed


def _validate_clause(clause: ClauseConfig, problems: List[str]) -> ClauseConfig:
    if not clause.is_single_instrument() and clause.has_name():
        problems.append("multi-instrument view specifies a single name")

    aggregation = _check_aggregation(clause.aggregation, AggregationKind.UNDEFINED, problems)
    aggregator_config = _check_config(clause.aggregator_config, problems)

    regexp = clause.instrument_name_regexp
    if clause.instrument_name and regexp is not None:
        problems.append("view has instrument name and regexp matches")
        regexp = None

    for key in clause.keys or ():
        if key == "":
            problems.append("view has empty string in keys")

    return replace(
        clause,
        aggregation=aggregation,
        aggregator_config=aggregator_config,
        instrument_name_regexp=regexp,
    )


def validate(views: Views) -> Tuple[Views, Tuple[str, ...]]:
    """Check views for inconsistent settings.

    Returns the nearest consistent configuration together with a tuple of
    problem messages, which is empty when the views were already valid.
    """
    problems: List[str] = []

    def fix_defaults(kind: Kind, current: KindDefaults) -> KindDefaults:
        return KindDefaults(
            aggregation=_check_aggregation(
                current.aggregation, standard_aggregation_kind(kind), problems
            ),
            temporality=_check_temporality(
                current.temporality, standard_temporality(kind), problems
            ),
            int64=_check_config(current.int64, problems),
            float64=_check_config(current.float64, problems),
        )

    defaults = views.defaults._update(fix_defaults)
    clauses = tuple(_validate_clause(clause, problems) for clause in views.clauses)
    valid = Views(name=views.name, config=ViewConfig(clauses=clauses, defaults=defaults))
    return valid, tuple(problems)