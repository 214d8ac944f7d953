from app.health.health_service import HealthService


def _boom() -> bool:
    raise ConnectionError("refused")


class TestLiveness:
    def test_always_healthy_without_probing(self) -> None:
        calls = []
        service = HealthService({"database": lambda: calls.append(1) or False})

        report = service.liveness()

        assert report.status == "healthy"
        assert report.checks == {}
        assert calls == []


class TestReadiness:
    def test_all_up(self) -> None:
        service = HealthService({"database": lambda: True, "storage": lambda: True})

        report = service.readiness()

        assert report.status == "healthy"
        assert report.checks["database"].status == "up"
        assert report.checks["database"].latency_ms is not None

    def test_one_down_is_degraded(self) -> None:
        service = HealthService({"database": lambda: True, "storage": lambda: False})

        report = service.readiness()

        assert report.status == "degraded"
        assert report.checks["storage"].status == "down"
        assert report.checks["storage"].latency_ms is None

    def test_all_down_is_unhealthy(self) -> None:
        service = HealthService({"database": _boom, "queue": lambda: False})

        report = service.readiness()

        assert report.status == "unhealthy"
        assert report.checks["database"].status == "down"
