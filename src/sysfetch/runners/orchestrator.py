"""Concurrent fact collection under a global deadline."""

import logging
import os
import queue
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from sysfetch.collectors.base import Adapter, AdapterContext, guard
from sysfetch.collectors.registry import LIVE_KINDS, PARTIAL_DETAILS
from sysfetch.config.models import FetchConfig
from sysfetch.facts.models import Fact, FactKind, Snapshot
from sysfetch.hardware.profile import PlatformProfile
from sysfetch.storage.cache_store import CacheEntry, CacheStore

logger = logging.getLogger(__name__)

# The task set is small and fixed; more threads than this only add overhead.
MAX_WORKERS = 8

# Adapters are I/O bound; threads allowed beyond the CPU count.
EXTRA_IO_WORKERS = 4

# Upper bound on a single wait so per-adapter timeouts are noticed promptly.
POLL_INTERVAL_S = 0.05


@dataclass
class _Task:
    kind: FactKind
    started_at: Optional[float] = None


class Orchestrator:
    """Run adapters on a bounded set of worker threads and merge their facts.

    Every adapter gets its own timeout, measured from the moment a worker
    picks it up. The run as a whole stops at the global deadline. Facts
    still outstanding at that point are reported as unavailable. Workers
    are daemon threads, so an adapter stuck in a system call is abandoned
    and does not keep the process alive; its eventual result is discarded.
    """

    def __init__(
        self,
        config: Optional[FetchConfig] = None,
        cache: Optional[CacheStore] = None,
        fingerprint: Optional[str] = None,
        on_fact: Optional[Callable[[Fact], None]] = None,
    ) -> None:
        self.config = config or FetchConfig()
        self.cache = cache
        self.fingerprint = fingerprint
        self.on_fact = on_fact

    def _pool_size(self, tasks: int) -> int:
        cpus = (os.cpu_count() or 1) + EXTRA_IO_WORKERS
        return max(1, min(cpus, MAX_WORKERS, self.config.max_workers, tasks))

    def _load_cache(self) -> Optional[CacheEntry]:
        if self.cache is None or self.fingerprint is None:
            return None
        try:
            return self.cache.load(self.fingerprint)
        except Exception as e:
            logger.debug(f"Cache load failed: {e}")
            return None

    def _save_cache(self, facts: List[Fact], hints: Dict[FactKind, Dict[str, Any]]) -> None:
        if self.cache is None or self.fingerprint is None:
            return
        partials: Dict[str, Any] = {}
        for fact in facts:
            key = PARTIAL_DETAILS.get(fact.kind)
            if fact.cached or key is None:
                continue
            hint = hints.get(fact.kind, {})
            for name, value in (fact.details.get(key) or {}).items():
                if name not in hint:
                    partials[f"{fact.kind.value}/{name}"] = value
        try:
            whole = [f for f in facts if f.kind not in LIVE_KINDS]
            self.cache.save(self.fingerprint, whole, partials)
        except Exception as e:
            logger.warning(f"Cache save failed: {e}")

    def _emit(self, facts: List[Fact]) -> None:
        if self.on_fact is None:
            return
        for fact in facts:
            try:
                self.on_fact(fact)
            except Exception as e:
                logger.debug(f"on_fact callback failed: {e}")

    def run(
        self,
        profile: PlatformProfile,
        adapters: Dict[FactKind, Adapter],
        deadline: Optional[float] = None,
    ) -> Snapshot:
        """Collect every fact in ``adapters`` and return them in table order.

        Args:
            profile: Platform profile handed to each adapter.
            adapters: Kind -> adapter, in display order.
            deadline: Absolute ``time.monotonic()`` value. Defaults to now
                plus ``config.deadline_s``.
        """
        start = time.monotonic()
        if deadline is None:
            deadline = start + self.config.deadline_s
        adapter_timeout = self.config.adapter_timeout_s

        results: Dict[FactKind, List[Fact]] = {}
        entry = self._load_cache()
        hints: Dict[FactKind, Dict[str, Any]] = {}

        pending: List[FactKind] = []
        for kind in adapters:
            cached = entry.fact(kind) if entry and kind not in LIVE_KINDS else None
            if cached is not None:
                logger.debug(f"{kind.value}: using cached fact")
                results[kind] = [cached.as_cached()]
                self._emit(results[kind])
                continue
            if entry:
                hints[kind] = entry.partials_for(kind)
            pending.append(kind)

        deadline_hit = False
        if pending:
            deadline_hit = self._run_pending(
                profile, adapters, pending, hints, results, deadline, adapter_timeout
            )

        facts: List[Fact] = []
        for kind in adapters:
            facts.extend(results.get(kind) or [Fact.unavailable(kind, "deadline")])

        self._save_cache(facts, hints)
        elapsed = time.monotonic() - start
        logger.debug(f"Collected {len(facts)} facts in {elapsed:.3f}s (deadline hit: {deadline_hit})")
        return Snapshot(facts=tuple(facts), elapsed_s=elapsed, deadline_hit=deadline_hit)

    def _run_pending(
        self,
        profile: PlatformProfile,
        adapters: Dict[FactKind, Adapter],
        pending: List[FactKind],
        hints: Dict[FactKind, Dict[str, Any]],
        results: Dict[FactKind, List[Fact]],
        deadline: float,
        adapter_timeout: float,
    ) -> bool:
        """Fill ``results`` from worker threads. Returns True if the deadline cut the run short."""
        work: "queue.Queue[_Task]" = queue.Queue()
        finished: "queue.Queue[Tuple[_Task, List[Fact]]]" = queue.Queue()
        stop = threading.Event()

        def worker() -> None:
            while not stop.is_set():
                try:
                    task = work.get_nowait()
                except queue.Empty:
                    return
                task.started_at = time.monotonic()
                ctx = AdapterContext(
                    profile=profile,
                    config=self.config,
                    deadline=min(deadline, task.started_at + adapter_timeout),
                    cache_hint=hints.get(task.kind, {}),
                )
                finished.put((task, guard(task.kind, adapters[task.kind], ctx)))

        outstanding: Dict[FactKind, _Task] = {}
        for kind in pending:
            outstanding[kind] = _Task(kind=kind)
            work.put(outstanding[kind])

        for i in range(self._pool_size(len(pending))):
            threading.Thread(target=worker, daemon=True, name=f"sysfetch-collect-{i}").start()

        deadline_hit = False
        try:
            while outstanding:
                now = time.monotonic()
                if now >= deadline:
                    deadline_hit = True
                    break

                done: List[Tuple[_Task, List[Fact]]] = []
                try:
                    done.append(finished.get(timeout=min(POLL_INTERVAL_S, deadline - now)))
                    while True:
                        done.append(finished.get_nowait())
                except queue.Empty:
                    pass
                for task, facts in done:
                    # A task already reported as timed out stays that way.
                    if outstanding.pop(task.kind, None) is None:
                        continue
                    results[task.kind] = facts
                    self._emit(facts)

                now = time.monotonic()
                for task in list(outstanding.values()):
                    if task.started_at is not None and now - task.started_at >= adapter_timeout:
                        logger.debug(f"{task.kind.value}: timed out after {adapter_timeout}s")
                        del outstanding[task.kind]
                        results[task.kind] = [Fact.unavailable(task.kind, "timeout")]
                        self._emit(results[task.kind])

            for task in outstanding.values():
                logger.debug(f"{task.kind.value}: unresolved at deadline")
                results[task.kind] = [Fact.unavailable(task.kind, "deadline")]
                self._emit(results[task.kind])
        finally:
            stop.set()
        return deadline_hit
