"""Shared plumbing for fact source adapters.

An adapter is a plain function taking an :class:`AdapterContext` and
returning a :class:`Fact` (or a list of them for kinds such as disks that
report several rows). Adapters raise :class:`SourceError` subclasses when a
source is missing or malformed; :func:`guard` turns those, and anything
else that escapes, into an UNAVAILABLE fact.
"""

import logging
import shutil
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from sysfetch.config.models import FetchConfig
from sysfetch.facts.errors import SourceError, SourceParseError, SourceTimeout, SourceUnavailable
from sysfetch.facts.models import Fact, FactKind
from sysfetch.hardware.profile import PlatformProfile

logger = logging.getLogger(__name__)

AdapterResult = Union[Fact, List[Fact]]

# Floor for a single external command so a nearly spent budget still gets a chance.
MIN_COMMAND_TIMEOUT_S = 0.05


@dataclass
class AdapterContext:
    """Everything an adapter may read. ``deadline`` is a ``time.monotonic()`` value."""

    profile: PlatformProfile
    config: FetchConfig = field(default_factory=FetchConfig)
    deadline: Optional[float] = None
    cache_hint: Dict[str, Any] = field(default_factory=dict)

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    def check_deadline(self) -> None:
        """Raise SourceTimeout once the adapter's budget is spent."""
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise SourceTimeout()


Adapter = Callable[[AdapterContext], AdapterResult]


def which(name: str) -> Optional[str]:
    return shutil.which(name)


def run_command(
    args: List[str],
    ctx: Optional[AdapterContext] = None,
    timeout: float = 5.0,
    check: bool = True,
) -> str:
    """Run an external command and return its stdout.

    The effective timeout is the smaller of ``timeout`` and the time left
    before the context deadline. On expiry the child is killed; if it does
    not die we stop waiting for it and move on.

    Raises:
        SourceUnavailable: The executable is not installed.
        SourceTimeout: The command outlived its budget.
        SourceParseError: Non-zero exit status (when ``check`` is set).
    """
    if ctx is not None:
        ctx.check_deadline()
        remaining = ctx.remaining()
        if remaining is not None:
            timeout = max(MIN_COMMAND_TIMEOUT_S, min(timeout, remaining))

    try:
        proc = subprocess.Popen(
            args,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            stdin=subprocess.DEVNULL,
            text=True,
        )
    except FileNotFoundError:
        raise SourceUnavailable(f"{args[0]} not found") from None
    except OSError as e:
        raise SourceUnavailable(f"{args[0]}: {e}") from e

    try:
        stdout, stderr = proc.communicate(timeout=timeout)
    except subprocess.TimeoutExpired:
        proc.kill()
        try:
            proc.communicate(timeout=0.2)
        except subprocess.TimeoutExpired:
            logger.debug(f"Abandoning {args[0]} (pid {proc.pid}) after kill")
        raise SourceTimeout() from None

    if check and proc.returncode != 0:
        message = (stderr or "").strip().splitlines()
        detail = message[0] if message else f"exit code {proc.returncode}"
        raise SourceParseError(f"{args[0]}: {detail}")
    return stdout


def read_text(path: Union[str, Path]) -> str:
    """Read a small text file, mapping absence to SourceUnavailable."""
    try:
        return Path(path).read_text(errors="replace")
    except FileNotFoundError:
        raise SourceUnavailable(f"{path} not found") from None
    except PermissionError:
        raise SourceUnavailable(f"permission denied: {path}") from None
    except OSError as e:
        raise SourceUnavailable(f"{path}: {e}") from e


def sysctl(name: str, ctx: Optional[AdapterContext] = None) -> str:
    return run_command(["sysctl", "-n", name], ctx, timeout=2.0).strip()


def format_bytes_gib(used: float, total: float) -> str:
    gib = 1024**3
    return f"{used / gib:.1f}/{total / gib:.1f} GiB"


def format_duration(seconds: float) -> str:
    """Render a duration as ``1d 2h 3m``, ``2h 3m`` or ``3m``."""
    seconds = max(0, int(seconds))
    days = seconds // 86400
    hours = (seconds % 86400) // 3600
    minutes = (seconds % 3600) // 60
    if days > 0:
        return f"{days}d {hours}h {minutes}m"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def guard(kind: FactKind, adapter: Adapter, ctx: AdapterContext) -> List[Fact]:
    """Run an adapter and always come back with at least one fact."""
    try:
        result = adapter(ctx)
    except SourceError as e:
        logger.debug(f"{kind.value}: {e}")
        return [Fact.unavailable(kind, str(e) or type(e).__name__)]
    except Exception as e:
        logger.debug(f"{kind.value}: unexpected {type(e).__name__}: {e}")
        return [Fact.unavailable(kind, f"error: {e}")]

    facts = result if isinstance(result, list) else [result]
    if not facts:
        return [Fact.unavailable(kind, "no data")]
    return facts
