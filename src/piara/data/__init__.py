"""Data modules - herd registry, incidents, boars, dashboard."""

from piara.data import dashboard, herd
from piara.data.boars import find_boar, list_boars
from piara.data.dashboard import Agenda, HerdStats, get_agenda, get_dashboard_stats, herd_stats
from piara.data.herd import (
    deactivate_sow,
    find_sow,
    list_sows,
    register_sow,
    sow_history,
    update_sow,
)
from piara.data.incidents import list_incidents, report_incident, resolve_incident

__all__ = [
    "herd",
    "dashboard",
    "find_sow",
    "list_sows",
    "register_sow",
    "update_sow",
    "deactivate_sow",
    "sow_history",
    "list_incidents",
    "report_incident",
    "resolve_incident",
    "list_boars",
    "find_boar",
    "HerdStats",
    "Agenda",
    "herd_stats",
    "get_dashboard_stats",
    "get_agenda",
]
