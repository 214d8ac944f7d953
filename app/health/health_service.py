import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from app.logging.logger import Log


@dataclass(frozen=True)
class ProbeResult:
    status: str  # "up" | "down"
    latency_ms: int | None = None


@dataclass(frozen=True)
class HealthReport:
    status: str  # "healthy" | "degraded" | "unhealthy"
    timestamp: str
    uptime_seconds: int
    checks: dict[str, ProbeResult] = field(default_factory=dict)


class HealthService:
    """Liveness and readiness reporting.

    Liveness only says the process is up. Readiness probes every
    dependency; any probe down degrades readiness, all down makes it
    unhealthy.
    """

    def __init__(self, probes: dict[str, Callable[[], bool]]) -> None:
        self._probes = probes
        self._started = time.monotonic()

    def liveness(self) -> HealthReport:
        return HealthReport(
            status="healthy", timestamp=_now(), uptime_seconds=self._uptime()
        )

    def readiness(self) -> HealthReport:
        checks = {name: self._run_probe(name, probe) for name, probe in self._probes.items()}
        up = [check.status == "up" for check in checks.values()]
        if all(up):
            status = "healthy"
        elif any(up):
            status = "degraded"
        else:
            status = "unhealthy"
        return HealthReport(
            status=status, timestamp=_now(), uptime_seconds=self._uptime(), checks=checks
        )

    def _run_probe(self, name: str, probe: Callable[[], bool]) -> ProbeResult:
        start = time.monotonic()
        try:
            healthy = probe()
        except Exception as exc:
            Log.error(f"{name} health check failed: {exc}")
            return ProbeResult(status="down")
        if not healthy:
            return ProbeResult(status="down")
        return ProbeResult(status="up", latency_ms=int((time.monotonic() - start) * 1000))

    def _uptime(self) -> int:
        return int(time.monotonic() - self._started)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
