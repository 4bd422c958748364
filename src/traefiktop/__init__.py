"""
traefiktop - A terminal dashboard for Traefik routers and services.

This package polls the Traefik admin API and renders a searchable,
auto-refreshing list of routers with the health of the services behind them.

Features:
  - Concurrent fetch of routers and services on a fixed 10s cadence
  - Manual refresh with in-flight coalescing
  - Instant search over router name, rule and service
  - Failover and load-balancer health resolution
  - Dead-first or name sorting, ignore patterns

Main Components:
  - coordinator.py: Snapshot owner, fetch cycles and refresh timer
  - view.py: Browse/search state machine and text rendering
  - app.py: Textual host application
  - api.py: httpx gateway to the Traefik API
  - service_status.py: Router -> service status resolution
  - model.py: Data structures (Router, Service, Snapshot)

Usage:
  traefiktop --host http://localhost:8080
  python -m traefiktop --host http://localhost:8080 --headless
"""

import os
from pathlib import Path

__version__ = "0.1.0"


def get_log_path() -> str:
    """
    Get the log file path following XDG Base Directory spec.

    Returns XDG_DATA_HOME/traefiktop/logs/traefiktop.log with fallback to /tmp.
    Creates directory if it doesn't exist.

    Returns:
        str: Absolute path to log file (/tmp/traefiktop.log as fallback)
    """
    xdg_data_home = os.environ.get('XDG_DATA_HOME')
    if not xdg_data_home:
        xdg_data_home = Path.home() / '.local' / 'share'
    else:
        xdg_data_home = Path(xdg_data_home)

    log_dir = xdg_data_home / 'traefiktop' / 'logs'

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        return str(log_dir / 'traefiktop.log')
    except (PermissionError, OSError):
        return '/tmp/traefiktop.log'
