"""
Router -> service status resolution.

Routers reference services by bare name ("whoami") while the API lists them
with a provider suffix ("whoami@docker"). A bare reference matches any
"name@provider"; a qualified reference ("whoami@file") matches only itself.

Status rules:
  - Failover services resolve through their primary, then their fallback
  - Regular services are Up if any server reports UP, Down otherwise
  - Without server reports, "enabled" -> Up, "disabled" -> Down,
    anything else -> Unknown
"""

from enum import Enum
from typing import List, Optional, Set, Tuple

from .model import Router, Service


class ServiceStatus(Enum):
    UP = "up"
    DOWN = "down"
    UNKNOWN = "unknown"


def matches_service_ref(reference: str, service_name: str) -> bool:
    """True if service_name is `reference` itself or `reference@<provider>`."""
    if not service_name.startswith(reference):
        return False
    rest = service_name[len(reference):]
    return rest == "" or rest.startswith("@")


def find_service_by_name(target_name: str, services: List[Service]) -> Optional[Service]:
    """Find service by name, supporting provider suffixes (e.g. service@provider)."""
    for service in services:
        if service.name == target_name:
            return service

    for service in services:
        if matches_service_ref(target_name, service.name):
            return service
    return None


def get_router_services(router: Router, services: List[Service]) -> List[Service]:
    return [s for s in services if matches_service_ref(router.service, s.name)]


def get_failover_services(
    service_name: str, services: List[Service]
) -> Tuple[Optional[Service], Optional[Service]]:
    """Return (primary, fallback) for a failover service, (None, None) otherwise."""
    service = next((s for s in services if s.name == service_name), None)
    if service is None or service.failover is None:
        return None, None
    return (
        find_service_by_name(service.failover.service, services),
        find_service_by_name(service.failover.fallback, services),
    )


def get_service_status(
    service: Service, services: List[Service], visited: Optional[Set[str]] = None
) -> ServiceStatus:
    if visited is None:
        visited = set()
    if service.name in visited:
        # Circular failover chain
        return ServiceStatus.UNKNOWN

    visited.add(service.name)
    try:
        if service.is_failover:
            primary, fallback = get_failover_services(service.name, services)
            primary_status = (
                get_service_status(primary, services, visited) if primary else ServiceStatus.UNKNOWN
            )
            if primary_status == ServiceStatus.UP:
                return ServiceStatus.UP

            fallback_status = (
                get_service_status(fallback, services, visited) if fallback else ServiceStatus.UNKNOWN
            )
            if fallback_status == ServiceStatus.UP:
                return ServiceStatus.UP
            if ServiceStatus.DOWN in (primary_status, fallback_status):
                return ServiceStatus.DOWN
            return ServiceStatus.UNKNOWN

        if service.server_status:
            if any(v == "UP" for v in service.server_status.values()):
                return ServiceStatus.UP
            return ServiceStatus.DOWN

        if service.status == "enabled":
            return ServiceStatus.UP
        if service.status == "disabled":
            return ServiceStatus.DOWN
        return ServiceStatus.UNKNOWN
    finally:
        visited.discard(service.name)


def get_router_status_info(
    router: Router, services: List[Service]
) -> Tuple[ServiceStatus, Optional[Service], int]:
    """Determine router-level status, the active service and how many services are alive."""
    router_services = get_router_services(router, services)
    alive_count = 0
    active: Optional[Service] = None

    for svc in router_services:
        if svc.is_failover:
            primary, fallback = get_failover_services(svc.name, services)
            if primary and get_service_status(primary, services) == ServiceStatus.UP:
                alive_count += 1
                active = active or primary
            elif fallback and get_service_status(fallback, services) == ServiceStatus.UP:
                alive_count += 1
                active = active or fallback
        elif get_service_status(svc, services) == ServiceStatus.UP:
            alive_count += 1
            active = active or svc

    if alive_count:
        status = ServiceStatus.UP
    elif not router_services:
        status = ServiceStatus.UNKNOWN
    else:
        status = ServiceStatus.DOWN
    return status, active, alive_count
