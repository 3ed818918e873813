"""dwatcher: restart a command whenever source files change."""

__version__ = "0.1.0"

# Public API
from dwatcher_core.orchestrator import WatchOrchestrator, run
from dwatcher_core.watchers import WatchConfig

__all__ = [
    "__version__",
    "WatchConfig",
    "WatchOrchestrator",
    "run",
]
