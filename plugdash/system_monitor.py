"""Host statistics and process listing, with optional periodic publishing."""

from __future__ import annotations

import dataclasses
import logging
import sys
import threading
import time
from dataclasses import dataclass
from typing import Any, Optional

import psutil

logger = logging.getLogger(__name__)

# Disk and network figures are placeholders until real collection is wired in.
_DISK_TOTAL = 1_000_000_000_000
_DISK_USED = 500_000_000_000
_DISK_USAGE = 50.0
_MAX_PROCESSES = 20


@dataclass(frozen=True)
class SystemStats:
    cpu_usage: float
    memory_usage: float
    memory_total: int
    memory_used: int
    disk_usage: float
    disk_total: int
    disk_used: int
    process_count: int
    network_rx: int
    network_tx: int
    timestamp: int


@dataclass(frozen=True)
class ProcessInfo:
    pid: int
    name: str
    cpu_usage: float
    memory_usage: int


class SystemMonitor:
    """Reads system statistics and can publish them to an app handle."""

    def __init__(self, app_handle: Any = None) -> None:
        self._app_handle = app_handle
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []

    def get_system_stats(self) -> SystemStats:
        with self._lock:
            per_cpu = psutil.cpu_percent(percpu=True)
            cpu_usage = sum(per_cpu) / len(per_cpu) if per_cpu else 0.0

            memory = psutil.virtual_memory()
            memory_total = int(memory.total)
            memory_used = int(memory.used)
            memory_usage = (
                memory_used / memory_total * 100.0 if memory_total > 0 else 0.0
            )

            return SystemStats(
                cpu_usage=cpu_usage,
                memory_usage=memory_usage,
                memory_total=memory_total,
                memory_used=memory_used,
                disk_usage=_DISK_USAGE,
                disk_total=_DISK_TOTAL,
                disk_used=_DISK_USED,
                process_count=len(psutil.pids()),
                network_rx=0,
                network_tx=0,
                timestamp=int(time.time() * 1000),
            )

    def get_processes(self) -> list[ProcessInfo]:
        """Return the processes using the most memory, largest first, at most 20."""
        with self._lock:
            processes = []
            for proc in psutil.process_iter(["pid", "name", "cpu_percent", "memory_info"]):
                info = proc.info
                mem = info.get("memory_info")
                processes.append(
                    ProcessInfo(
                        pid=int(info["pid"]),
                        name=info.get("name") or "",
                        cpu_usage=float(info.get("cpu_percent") or 0.0),
                        memory_usage=int(mem.rss) if mem is not None else 0,
                    )
                )
        processes.sort(key=lambda p: p.memory_usage, reverse=True)
        return processes[:_MAX_PROCESSES]

    def start_monitoring(self, interval_ms: int) -> None:
        """Publish "system-stats" events every ``interval_ms`` milliseconds."""
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        thread = threading.Thread(
            target=self._run, args=(interval_ms / 1000.0,), daemon=True
        )
        self._threads.append(thread)
        thread.start()

    def stop_monitoring(self) -> None:
        """Stop every publishing loop started by start_monitoring."""
        self._stop.set()
        for thread in self._threads:
            thread.join()
        self._threads.clear()
        self._stop.clear()

    def _run(self, interval: float) -> None:
        while not self._stop.is_set():
            try:
                stats = self.get_system_stats()
            except Exception as exc:  # keep the loop alive on transient failures
                print(f"Failed to get system stats: {exc}", file=sys.stderr)
            else:
                if self._app_handle is not None:
                    try:
                        self._app_handle.emit("system-stats", dataclasses.asdict(stats))
                    except Exception:
                        logger.exception("Failed to emit system stats")
            self._stop.wait(interval)