"""Event routing: ordered rules, payload transforms and idempotent dispatch."""

from mcphub.services.routing.dto import PRIORITY_DELAYS_MS, DispatchIn, DispatchOut
from mcphub.services.routing.router import EventRouter
from mcphub.services.routing.rules import DEFAULT_RULES, RoutingRule, TargetKind, match_rule

__all__ = [
    "DEFAULT_RULES",
    "DispatchIn",
    "DispatchOut",
    "EventRouter",
    "PRIORITY_DELAYS_MS",
    "RoutingRule",
    "TargetKind",
    "match_rule",
]
