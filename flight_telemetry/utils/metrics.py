from typing import Any, Dict, Optional, Sequence

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest

METRIC_PREFIX = "flight_telemetry"


class MetricsManager:
    """Registry for job metrics, backed by a private Prometheus registry."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(MetricsManager, cls).__new__(cls)
            cls._instance.metrics: Dict[str, Any] = {}
            cls._instance.prom_registry = CollectorRegistry()
        return cls._instance

    def counter(self, name: str, documentation: str = "", labelnames: Sequence[str] = ()) -> Counter:
        if name not in self.metrics:
            self.metrics[name] = Counter(
                f"{METRIC_PREFIX}_{name}",
                documentation or f"Counter for {name}",
                labelnames=tuple(labelnames),
                registry=self.prom_registry,
            )
        return self.metrics[name]

    def gauge(self, name: str, documentation: str = "", labelnames: Sequence[str] = ()) -> Gauge:
        if name not in self.metrics:
            self.metrics[name] = Gauge(
                f"{METRIC_PREFIX}_{name}",
                documentation or f"Gauge for {name}",
                labelnames=tuple(labelnames),
                registry=self.prom_registry,
            )
        return self.metrics[name]

    def value(self, name: str, labels: Optional[Dict[str, str]] = None) -> float:
        """Current value of a counter or gauge; 0.0 if it has never been touched."""
        metric = self.metrics.get(name)
        sample = f"{METRIC_PREFIX}_{name}"
        if isinstance(metric, Counter):
            sample = f"{sample}_total"
        found = self.prom_registry.get_sample_value(sample, labels or {})
        return found if found is not None else 0.0

    def exposition(self) -> bytes:
        """Prometheus text exposition of every registered metric."""
        return generate_latest(self.prom_registry)

    def get_all(self) -> Dict[str, float]:
        res = {}
        for family in self.prom_registry.collect():
            for sample in family.samples:
                if sample.name.endswith("_created"):
                    continue
                labels = ",".join(f"{k}={v}" for k, v in sorted(sample.labels.items()))
                key = f"{sample.name}{{{labels}}}" if labels else sample.name
                res[key] = sample.value
        return res
