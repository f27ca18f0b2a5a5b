"""Lock-file based mutual exclusion for document writes."""

import asyncio
import os
import time
from pathlib import Path


class FileLockError(Exception):
    """File locking error."""

    pass


class FileLocker:
    """Async context manager guarding a single document file.

    The lock is a sibling ``.lock`` file created with ``O_EXCL`` so that
    only one writer can hold it. Locks older than twice the timeout are
    treated as abandoned and removed.
    """

    def __init__(self, file_path: Path, timeout: float = 5.0, poll_interval: float = 0.05):
        self.file_path = file_path
        self.lock_path = Path(str(file_path) + ".lock")
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.acquired = False

    async def __aenter__(self) -> "FileLocker":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False

    def _try_create(self) -> bool:
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            fd = os.open(str(self.lock_path), os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            return False
        os.close(fd)
        return True

    def _is_stale(self) -> bool:
        try:
            age = time.time() - self.lock_path.stat().st_mtime
        except FileNotFoundError:
            return False
        return age > self.timeout * 2

    async def acquire(self) -> None:
        """Wait for the lock, raising FileLockError after ``timeout`` seconds."""
        deadline = time.monotonic() + self.timeout

        while True:
            try:
                if await asyncio.to_thread(self._try_create):
                    self.acquired = True
                    return
                if await asyncio.to_thread(self._is_stale):
                    await asyncio.to_thread(self.lock_path.unlink, missing_ok=True)
                    continue
            except OSError as e:
                raise FileLockError(f"Could not acquire lock on {self.file_path}: {e}") from e

            if time.monotonic() > deadline:
                raise FileLockError(
                    f"Could not acquire lock on {self.file_path} after {self.timeout}s"
                )
            await asyncio.sleep(self.poll_interval)

    def release(self) -> None:
        if not self.acquired:
            return
        self.lock_path.unlink(missing_ok=True)
        self.acquired = False
