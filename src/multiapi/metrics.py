"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Metrics adapters for dispatcher observability.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol


class DispatchMetrics(Protocol):
    """Counter sink used by the protocol handler."""

    def incr(self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None) -> None: ...


class NullDispatchMetrics:
    """Metrics sink that drops everything."""

    def incr(self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None) -> None:
        _ = (name, value, tags)


class PrometheusDispatchMetrics:
    """
    Prometheus-backed dispatcher metrics adapter.

    Requires `prometheus_client` package. Pass a dedicated ``registry`` to
    keep counters out of the process-global default registry (useful in tests).
    """

    def __init__(self, *, namespace: str = "multiapi", registry: Any | None = None) -> None:
        try:
            from prometheus_client import REGISTRY, Counter
        except ModuleNotFoundError as exc:  # pragma: no cover
            raise RuntimeError(
                "PrometheusDispatchMetrics requires `prometheus_client` to be installed."
            ) from exc

        self._Counter = Counter
        self._namespace = namespace
        self._registry = registry if registry is not None else REGISTRY
        self._counters: dict[str, object] = {}

    @property
    def registry(self) -> Any:
        return self._registry

    def incr(self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None) -> None:
        label_names = tuple(sorted((tags or {}).keys()))
        key = f"{name}|{','.join(label_names)}"
        counter = self._counters.get(key)
        if counter is None:
            counter = self._Counter(
                name=name,
                documentation=f"multiapi dispatcher metric {name}",
                namespace=self._namespace,
                labelnames=label_names,
                registry=self._registry,
            )
            self._counters[key] = counter

        if label_names:
            label_values = [str((tags or {})[label]) for label in label_names]
            counter.labels(*label_values).inc(value)
        else:
            counter.inc(value)

    def render(self) -> bytes:
        """Serialize counters in the Prometheus text exposition format."""
        from prometheus_client import generate_latest

        return generate_latest(self._registry)
