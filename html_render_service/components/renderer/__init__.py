"""
Renderer component for the HTML Render Service.

Resolves a launchable browser executable, runs one browser session per
request and decides when a loaded document is ready to capture.
"""
from .executable_resolver import ExecutableResolver, ResolvedEngine, probe_in_order
from .engine_session import EngineSession
from .readiness_probe import ProbeState, ReadinessProbe

__all__ = [
    "ExecutableResolver",
    "ResolvedEngine",
    "probe_in_order",
    "EngineSession",
    "ProbeState",
    "ReadinessProbe",
]
