"""Reactive host primitives: scopes, signals, batching, resources.

Only what route data needs from a reactive runtime, nothing more.
"""

from perch.reactive.resource import UNCHANGED, RefetchInfo, Resource, ResourceState
from perch.reactive.scheduler import Scheduler, batch, notify
from perch.reactive.scope import Scope
from perch.reactive.signal import Signal

__all__ = [
    "UNCHANGED",
    "RefetchInfo",
    "Resource",
    "ResourceState",
    "Scheduler",
    "Scope",
    "Signal",
    "batch",
    "notify",
]
