"""dwatcher-core: the watch, debounce and restart engine behind dwatcher."""

__version__ = "0.1.0"

# Config
from dwatcher_core.config import FileConfig, load_config_file

# Engine
from dwatcher_core.debounce import DebounceController
from dwatcher_core.enumerator import enumerate_directories
from dwatcher_core.file_watcher import WatchSet

# Models
from dwatcher_core.models import ChangeEvent, ChildExit, SupervisorState
from dwatcher_core.notifier import ConsoleNotifier, LoggingNotifier, NoOpNotifier, Notifier
from dwatcher_core.orchestrator import WatchOrchestrator, run
from dwatcher_core.path_filter import should_ignore, should_watch
from dwatcher_core.supervisor import SUPERVISION_ENV_VAR, ProcessSupervisor
from dwatcher_core.watchers import WatchConfig

__all__ = [
    "__version__",
    # Models
    "WatchConfig",
    "ChangeEvent",
    "ChildExit",
    "SupervisorState",
    # Notifiers
    "Notifier",
    "NoOpNotifier",
    "LoggingNotifier",
    "ConsoleNotifier",
    # Engine
    "should_ignore",
    "should_watch",
    "enumerate_directories",
    "WatchSet",
    "DebounceController",
    "ProcessSupervisor",
    "SUPERVISION_ENV_VAR",
    "WatchOrchestrator",
    "run",
    # Config
    "FileConfig",
    "load_config_file",
]
