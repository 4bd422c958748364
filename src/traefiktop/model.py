"""
Data models for traefiktop.

This module defines the dataclasses that represent what the Traefik admin API
returns, plus the Snapshot owned by the data coordinator. Used throughout the
app for:
  - Type safety and IDE autocomplete
  - Clear separation of data (models) from logic (api/coordinator/view)
  - Tolerant parsing of the API's camelCase JSON

Data Classes:
  - Router: rule -> service binding (name, rule, entry points, status...)
  - Service: backend target (type, usedBy, load balancer, failover...)
  - Snapshot: routers + services + loading/error/last_updated

Key Fields:
  - Names may carry a "@provider" suffix (e.g. "whoami@docker")
  - Router and Service are frozen: a refresh replaces them wholesale
  - Snapshot is frozen too; the coordinator swaps in a new one per change
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Server:
    url: str


@dataclass(frozen=True)
class LoadBalancer:
    servers: List[Server] = field(default_factory=list)


@dataclass(frozen=True)
class FailoverConfig:
    service: str
    fallback: str


@dataclass(frozen=True)
class Router:
    name: str
    rule: str
    service: str
    entry_points: List[str] = field(default_factory=list)
    status: str = "enabled"  # enabled, disabled, warning
    provider: str = ""
    middlewares: List[str] = field(default_factory=list)
    priority: int = 0
    using: List[str] = field(default_factory=list)
    tls_options: Optional[str] = None
    rule_syntax: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Router":
        tls = data.get("tls") or {}
        return cls(
            name=data["name"],
            rule=data.get("rule", ""),
            service=data.get("service", ""),
            entry_points=list(data.get("entryPoints") or []),
            status=data.get("status", "enabled"),
            provider=data.get("provider", ""),
            middlewares=list(data.get("middlewares") or []),
            priority=int(data.get("priority") or 0),
            using=list(data.get("using") or []),
            tls_options=tls.get("options") if isinstance(tls, dict) else None,
            rule_syntax=data.get("ruleSyntax"),
        )


@dataclass(frozen=True)
class Service:
    name: str
    status: str = "enabled"
    provider: str = ""
    type: Optional[str] = None  # loadbalancer, weighted, mirroring, failover
    used_by: List[str] = field(default_factory=list)
    load_balancer: Optional[LoadBalancer] = None
    failover: Optional[FailoverConfig] = None
    server_status: Dict[str, str] = field(default_factory=dict)

    @property
    def is_failover(self) -> bool:
        return self.type == "failover" or self.failover is not None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Service":
        lb = data.get("loadBalancer")
        load_balancer = None
        if isinstance(lb, dict):
            load_balancer = LoadBalancer(
                servers=[Server(url=s["url"]) for s in lb.get("servers") or [] if "url" in s]
            )

        fo = data.get("failover")
        failover = None
        if isinstance(fo, dict):
            failover = FailoverConfig(service=fo.get("service", ""), fallback=fo.get("fallback", ""))

        return cls(
            name=data["name"],
            status=data.get("status", "enabled"),
            provider=data.get("provider", ""),
            type=data.get("type"),
            used_by=list(data.get("usedBy") or []),
            load_balancer=load_balancer,
            failover=failover,
            server_status=dict(data.get("serverStatus") or {}),
        )


@dataclass(frozen=True)
class Snapshot:
    routers: List[Router] = field(default_factory=list)
    services: List[Service] = field(default_factory=list)
    loading: bool = True
    error: Optional[Exception] = None
    last_updated: Optional[float] = None  # time.time() of the last successful cycle

    @property
    def has_data(self) -> bool:
        """True once at least one cycle has succeeded."""
        return self.last_updated is not None
