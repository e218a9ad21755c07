"""Hierarchical span profiling.

Design by Contract:
- Closed span elapsed MUST be non-negative (crash if negative)
- Span names MUST be non-empty
- exit() on a stack holding only the root raises StackUnderflow
- A popped entry's children are never mutated again

The stack is an explicit object rather than module state, so independent
stacks can coexist (one per measuring component, one per test).
"""

import json
import time
from collections.abc import Callable, Generator, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import psutil
from beartype import beartype
from loguru import logger

from hostutil._config import get_settings
from hostutil._helpers import markdown


class StackUnderflow(RuntimeError):
    """Raised when exit() is called with no open span to close."""


def _rss_gb() -> float:
    return psutil.Process().memory_info().rss / 1024**3


@dataclass
class ProfileEntry:
    """A named span and its nested sub-spans.

    Attributes:
        name: Span label
        start_time: Clock reading (ns) taken when the span was opened
        elapsed: Duration in ns once closed, None while still open
        children: Sub-spans in the order they were opened
        memory_delta: Process RSS change in GB (0.0 unless memory is tracked)
    """

    name: str
    start_time: int
    elapsed: int | None = None
    children: list["ProfileEntry"] = field(default_factory=list)
    memory_delta: float = 0.0
    _start_memory: float = field(default=0.0, repr=False, compare=False)

    @property
    def closed(self) -> bool:
        return self.elapsed is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "elapsed_ns": self.elapsed,
            "memory_delta": self.memory_delta,
            "children": [child.to_dict() for child in self.children],
        }


def format_ms(elapsed: int | None) -> str:
    """Format a ns duration as milliseconds truncated to two decimals.

    Equivalent to ``floor(elapsed / 1e6 * 100) / 100`` but computed on integers
    so values like 1.15ms do not lose a hundredth to float rounding. Open spans
    (elapsed None) format as 0.00.
    """
    hundredths = (elapsed or 0) // 10_000
    return f"{hundredths // 100}.{hundredths % 100:02d}"


class ProfileReport:
    """Rendered view over a span tree.

    Iterating yields one markdown list line per span, depth-first pre-order.
    The report is lazy and restartable: each iteration walks the live tree
    again, and nothing in the tree is modified.
    """

    def __init__(self, root: ProfileEntry) -> None:
        self._root = root

    def __iter__(self) -> Iterator[str]:
        for entry in self._root.children:
            yield from self._walk(entry, 1)

    def _walk(self, entry: ProfileEntry, depth: int) -> Iterator[str]:
        # Sub-microsecond spans are rendered like any other.
        yield f"{'  ' * depth}- {entry.name}: **{format_ms(entry.elapsed)}ms**"
        for child in entry.children:
            yield from self._walk(child, depth + 1)

    @beartype
    def to_markdown(self, title: str = "Profile") -> str:
        return "\n".join([f"# {title}", *self])


class ProfileStack:
    """Tree of named, timed spans built through enter()/exit().

    Args:
        root_name: Name of the synthetic root span (default from settings)
        clock: Monotonic nanosecond clock (default: time.perf_counter_ns)
        track_memory: If True, record per-span RSS change via psutil

    Example:
        stack = ProfileStack()
        stack.enter("load")
        stack.enter("parse")
        stack.exit()
        stack.exit()
        for line in stack.render():
            print(line)

    Design by Contract:
        - open_stack[0] is always the root
        - open_stack[i + 1] is the last child of open_stack[i]
        - exit() always closes the most recently entered open span
    """

    @beartype
    def __init__(
        self,
        root_name: str | None = None,
        clock: Callable[[], int] = time.perf_counter_ns,
        track_memory: bool = False,
    ) -> None:
        self.root_name = root_name if root_name is not None else get_settings().profile_root
        assert self.root_name, "Root span name must be non-empty"
        self.track_memory = track_memory
        self._clock = clock
        self.root = ProfileEntry(name=self.root_name, start_time=self._clock())
        self.open_stack: list[ProfileEntry] = [self.root]

    @property
    def depth(self) -> int:
        """Number of open spans, excluding the root."""
        return len(self.open_stack) - 1

    @beartype
    def enter(self, name: str) -> ProfileEntry:
        """Open a span as a child of the innermost open span and push it."""
        assert name, "Span name must be non-empty"
        entry = ProfileEntry(name=name, start_time=self._clock())
        if self.track_memory:
            entry._start_memory = _rss_gb()
        self.open_stack[-1].children.append(entry)
        self.open_stack.append(entry)
        return entry

    @beartype
    def exit(self) -> ProfileEntry:
        """Close and pop the innermost open span.

        Raises:
            StackUnderflow: if only the root is open
        """
        if len(self.open_stack) <= 1:
            raise StackUnderflow(
                f"exit() called on profile stack '{self.root_name}' with no open span"
            )

        entry = self.open_stack.pop()
        elapsed = self._clock() - entry.start_time
        assert elapsed >= 0, (
            f"Elapsed time cannot be negative: {elapsed}ns for span '{entry.name}'. "
            f"Clock went backwards or timing bug."
        )
        entry.elapsed = elapsed

        if self.track_memory:
            entry.memory_delta = _rss_gb() - entry._start_memory

        return entry

    @beartype
    def record(self, name: str, elapsed: int) -> ProfileEntry:
        """Attach an already-measured span to the innermost open span.

        The entry is closed on arrival and is not pushed, so it can never
        receive children.

        Args:
            name: Span label (MUST be non-empty)
            elapsed: Duration in ns (MUST be >= 0)
        """
        assert name, "Span name must be non-empty"
        assert elapsed >= 0, f"Elapsed time must be non-negative: {elapsed}"
        entry = ProfileEntry(name=name, start_time=self._clock() - elapsed, elapsed=elapsed)
        self.open_stack[-1].children.append(entry)
        return entry

    @contextmanager
    def span(self, name: str) -> Generator[ProfileEntry, None, None]:
        """Context manager pairing enter() and exit(), even if the body raises."""
        entry = self.enter(name)
        try:
            yield entry
        finally:
            self.exit()

    def render(self) -> ProfileReport:
        return ProfileReport(self.root)

    @beartype
    def notify(self, title: str | None = None) -> None:
        """Send the rendered report to the markdown notification sink."""
        if self.depth:
            logger.debug(f"Rendering profile with {self.depth} span(s) still open")
        markdown(self.render().to_markdown(), title=title)

    @beartype
    def flush_to_file(self, path: Path) -> None:
        """Write the span tree as JSON.

        Args:
            path: Output file path (will be created/overwritten)
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.root.to_dict(), f, indent=2)

    @beartype
    def clear(self) -> None:
        """Drop all spans and start over with a fresh root."""
        self.root = ProfileEntry(name=self.root_name, start_time=self._clock())
        self.open_stack = [self.root]
