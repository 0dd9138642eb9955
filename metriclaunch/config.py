"""Pipeline configuration shared by the trace and metrics pipelines."""

from __future__ import annotations

import ssl
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

SUPPORTED_PROPAGATORS: Tuple[str, ...] = ("b3", "baggage", "tracecontext", "ottrace")


@dataclass(frozen=True)
class TransportSecurity:
    """How an exporter connection is secured.

    ``insecure`` means plain text.  Otherwise ``credentials`` holds an
    explicit TLS context, or ``None`` for TLS verified against the
    system's trusted roots.
    """

    insecure: bool = False
    credentials: Optional[ssl.SSLContext] = None

    @property
    def uses_system_roots(self) -> bool:
        """Whether TLS is verified with the system's default roots."""
        return not self.insecure and self.credentials is None

    def ssl_context(self) -> Optional[ssl.SSLContext]:
        """The TLS context to connect with, or ``None`` for plain text."""
        if self.insecure:
            return None
        if self.credentials is not None:
            return self.credentials
        return ssl.create_default_context()


@dataclass
class PipelineConfig:
    """Settings for the telemetry export pipelines.

    ``metrics_builtin_libraries`` entries name a builtin metrics library,
    optionally followed by ``:`` and a version (``"host:stable"``).
    ``temporality_preference`` is one of ``"cumulative"``, ``"delta"`` or
    ``"stateless"``; empty means cumulative.
    """

    endpoint: str = ""
    insecure: bool = False
    headers: Dict[str, str] = field(default_factory=dict)
    resource: Mapping[str, object] = field(default_factory=dict)
    reporting_period: str = ""
    propagators: List[str] = field(default_factory=list)
    metrics_builtins_enabled: bool = False
    metrics_builtin_libraries: List[str] = field(default_factory=list)
    temporality_preference: str = ""
    credentials: Optional[ssl.SSLContext] = None
    use_lightstep_metrics_sdk: bool = False

    def transport_security(self) -> TransportSecurity:
        """Choose plain text, the given credentials, or system-rooted TLS."""
        if self.insecure:
            return TransportSecurity(insecure=True)
        if self.credentials is not None:
            return TransportSecurity(credentials=self.credentials)
        return TransportSecurity()


def select_propagators(names: Optional[Iterable[str]]) -> Tuple[str, ...]:
    """Keep the supported propagator names, in the order given.

    Unknown names are skipped.  Raises ValueError when none is supported.
    """
    selected: Sequence[str] = tuple(
        name for name in (names or ()) if name in SUPPORTED_PROPAGATORS
    )
    if not selected:
        raise ValueError(
            "invalid configuration: unsupported propagators. "
            "Supported options: " + ",".join(SUPPORTED_PROPAGATORS)
        )
    return tuple(selected)