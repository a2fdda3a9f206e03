"""I/O helpers for writing exported texture files."""
from __future__ import annotations

import os
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator



_LOCK_REGISTRY: dict[Path, threading.Lock] = {}
_LOCK_REGISTRY_GUARD = threading.Lock()


def ensure_dir(path: Path) -> Path:
    """Ensure that *path* exists and return it."""

    path.mkdir(parents=True, exist_ok=True)
    return path


def _acquire_file_lock(target: Path) -> threading.Lock:
    with _LOCK_REGISTRY_GUARD:
        lock = _LOCK_REGISTRY.get(target)
        if lock is None:
            lock = threading.Lock()
            _LOCK_REGISTRY[target] = lock
    lock.acquire()
    return lock


@contextmanager
def file_lock(path: Path) -> Iterator[None]:
    """Serialize writers of *path* across threads and processes."""

    lock_path = path.with_suffix(path.suffix + ".lock")
    lock = _acquire_file_lock(lock_path)
    try:
        while True:
            try:
                fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
                os.close(fd)
                break
            except FileExistsError:
                time.sleep(0.05)
        yield
    finally:
        try:
            os.remove(lock_path)
        except FileNotFoundError:
            pass
        lock.release()


class SafeFileManager:
    """Write files atomically below a base directory."""

    def __init__(self, base_dir: Path) -> None:
        self.base_dir = Path(base_dir)
        ensure_dir(self.base_dir)

    def resolve(self, path: Path | str) -> Path:
        """Resolve *path* relative to :attr:`base_dir`."""

        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.base_dir / candidate
        ensure_dir(candidate.parent)
        return candidate

    def atomic_write(self, payload: bytes, path: Path | str) -> Path:
        """Write *payload* through a temporary file so readers never see partial data."""

        destination = self.resolve(path)
        temp_path = destination.with_name(f".{destination.name}.tmp")
        with file_lock(destination):
            temp_path.write_bytes(payload)
            os.replace(temp_path, destination)
        return destination
