"""hostutil: host-editor utilities with span profiling and callback throttling.

Provides:
- ProfileStack: Tree of nested, timed spans built through enter()/exit()
- make_throttle / Throttle: Leading-edge throttle with one trailing call per window
- Helpers: open_uri, scandir, head, git_info, dump, markdown/info/error notifications

Usage:
    from hostutil import ProfileStack, make_throttle

    stack = ProfileStack()
    with stack.span("startup"):
        with stack.span("plugins"):
            load_plugins()
    stack.notify()

    redraw = make_throttle(0.1, view.redraw)
    redraw()  # runs now; later calls within 100ms collapse into one trailing redraw
"""

from hostutil._config import Settings, get_settings
from hostutil._helpers import (
    dump,
    error,
    file_exists,
    git_info,
    head,
    info,
    markdown,
    open_uri,
    scandir,
)
from hostutil._profile import (
    ProfileEntry,
    ProfileReport,
    ProfileStack,
    StackUnderflow,
    format_ms,
)
from hostutil._throttle import Throttle, make_throttle

__all__ = [
    "ProfileEntry",
    "ProfileReport",
    "ProfileStack",
    "Settings",
    "StackUnderflow",
    "Throttle",
    "dump",
    "error",
    "file_exists",
    "format_ms",
    "get_settings",
    "git_info",
    "head",
    "info",
    "make_throttle",
    "markdown",
    "open_uri",
    "scandir",
]

__version__ = "0.1.0"
