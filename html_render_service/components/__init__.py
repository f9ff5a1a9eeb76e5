"""
Components sub-package for the HTML Render Service.

Re-exports the renderer components so they can be imported from
`html_render_service.components` directly.
"""

from .renderer import (
    EngineSession,
    ExecutableResolver,
    ProbeState,
    ReadinessProbe,
    ResolvedEngine,
    probe_in_order,
)

__all__ = [
    "EngineSession",
    "ExecutableResolver",
    "ProbeState",
    "ReadinessProbe",
    "ResolvedEngine",
    "probe_in_order",
]
