import pytest

from traefiktop.model import FailoverConfig, Router, Service
from traefiktop.service_status import (
    ServiceStatus,
    find_service_by_name,
    get_failover_services,
    get_router_services,
    get_router_status_info,
    get_service_status,
    matches_service_ref,
)


def test_matches_service_ref():
    assert matches_service_ref("whoami", "whoami@docker")
    assert matches_service_ref("whoami", "whoami")
    assert matches_service_ref("whoami@docker", "whoami@docker")
    assert not matches_service_ref("whoami", "whoami2@docker")
    assert not matches_service_ref("whoami@docker", "whoami@file")


def test_find_service_prefers_exact_match():
    services = [Service(name="api@docker"), Service(name="api@file")]
    assert find_service_by_name("api@file", services).name == "api@file"
    assert find_service_by_name("api", services).name == "api@docker"
    assert find_service_by_name("missing", services) is None


def test_get_router_services_matches_all_providers():
    services = [Service(name="api@docker"), Service(name="api@file"), Service(name="web@file")]
    router = Router(name="r", rule="", service="api")
    assert [s.name for s in get_router_services(router, services)] == ["api@docker", "api@file"]


@pytest.mark.parametrize("status,expected", [
    ("enabled", ServiceStatus.UP),
    ("disabled", ServiceStatus.DOWN),
    ("warning", ServiceStatus.UNKNOWN),
])
def test_status_field_without_server_reports(status, expected):
    service = Service(name="s@file", status=status)
    assert get_service_status(service, [service]) == expected


def test_server_reports_take_priority():
    one_up = Service(name="a@file", status="disabled", server_status={"http://a": "DOWN", "http://b": "UP"})
    all_down = Service(name="b@file", status="enabled", server_status={"http://a": "DOWN"})
    assert get_service_status(one_up, [one_up]) == ServiceStatus.UP
    assert get_service_status(all_down, [all_down]) == ServiceStatus.DOWN


class TestFailover:
    def _services(self, primary_status, fallback_status):
        return [
            Service(name="fo@file", type="failover", failover=FailoverConfig(service="main", fallback="backup")),
            Service(name="main@file", status=primary_status),
            Service(name="backup@file", status=fallback_status),
        ]

    def test_get_failover_services(self):
        services = self._services("enabled", "enabled")
        primary, fallback = get_failover_services("fo@file", services)
        assert primary.name == "main@file"
        assert fallback.name == "backup@file"
        assert get_failover_services("main@file", services) == (None, None)

    @pytest.mark.parametrize("primary,fallback,expected", [
        ("enabled", "disabled", ServiceStatus.UP),
        ("disabled", "enabled", ServiceStatus.UP),
        ("disabled", "disabled", ServiceStatus.DOWN),
        ("warning", "warning", ServiceStatus.UNKNOWN),
    ])
    def test_failover_status(self, primary, fallback, expected):
        services = self._services(primary, fallback)
        assert get_service_status(services[0], services) == expected

    def test_router_reports_active_fallback(self):
        services = self._services("disabled", "enabled")
        router = Router(name="r", rule="", service="fo")
        status, active, alive = get_router_status_info(router, services)
        assert status == ServiceStatus.UP
        assert active.name == "backup@file"
        assert alive == 1

    def test_circular_failover_is_unknown(self):
        services = [
            Service(name="a@file", failover=FailoverConfig(service="b", fallback="b")),
            Service(name="b@file", failover=FailoverConfig(service="a", fallback="a")),
        ]
        assert get_service_status(services[0], services) == ServiceStatus.UNKNOWN


def test_router_status_unknown_without_services():
    router = Router(name="r", rule="", service="ghost")
    assert get_router_status_info(router, []) == (ServiceStatus.UNKNOWN, None, 0)


def test_router_status_down_when_nothing_alive():
    services = [Service(name="api@file", status="disabled")]
    router = Router(name="r", rule="", service="api@file")
    status, active, alive = get_router_status_info(router, services)
    assert status == ServiceStatus.DOWN
    assert active is None
    assert alive == 0


class TestQualifiedReferences:
    def test_other_provider_is_not_matched(self):
        services = [Service(name="api@docker", status="enabled")]
        router = Router(name="api", rule="", service="api@internal")

        assert find_service_by_name("api@internal", services) is None
        assert get_router_services(router, services) == []
        assert get_router_status_info(router, services)[0] == ServiceStatus.UNKNOWN

    def test_status_uses_only_the_referenced_provider(self):
        services = [
            Service(name="whoami@docker", status="disabled"),
            Service(name="whoami@file", status="enabled"),
        ]
        router = Router(name="whoami", rule="", service="whoami@docker")

        assert [s.name for s in get_router_services(router, services)] == ["whoami@docker"]
        assert get_router_status_info(router, services)[0] == ServiceStatus.DOWN

    def test_prefix_of_another_name_is_not_matched(self):
        services = [Service(name="whoami2@docker")]
        assert find_service_by_name("whoami", services) is None
