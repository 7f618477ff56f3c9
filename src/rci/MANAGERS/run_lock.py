"""
Single-instance guard for full setup runs in one project directory.
"""
import os
import time
from typing import Optional

import psutil

from ..errors import ConfigError, SetupInProgress

LOCK_FILE = ".rci.lock"

# A lock without a readable PID is only taken over once it is this old (seconds)
UNREADABLE_GRACE = 10.0


class RunLock:
    """
    Lock file holding the PID of the run that owns the project directory.
    The PID is written to a private file first and hard-linked into place,
    so the lock never exists without its owner. A lock left behind by a dead
    process is treated as stale and replaced.
    """
    def __init__(self, base_dir: str = ".", name: str = LOCK_FILE):
        """
        :param base_dir: Project directory.
        :param name: Lock file name inside the project directory.
        """
        self.path = os.path.join(base_dir, name)
        self.held = False

    def acquire(self):
        """
        Takes the lock.

        :raises SetupInProgress: If a live process already holds it.
        :raises ConfigError: If the lock file cannot be written.
        """
        staging = f"{self.path}.{os.getpid()}"
        try:
            with open(staging, 'w') as f:
                f.write(str(os.getpid()))
            for _ in range(2):
                try:
                    os.link(staging, self.path)
                except FileExistsError:
                    if self._held_by_other():
                        raise SetupInProgress(self.path, self.holder())
                    # Stale
                    try:
                        os.remove(self.path)
                    except FileNotFoundError:
                        pass
                    continue
                self.held = True
                return
        except OSError as e:
            raise ConfigError(f"Cannot create lock file {self.path}: {e}") from e
        finally:
            try:
                os.remove(staging)
            except OSError:
                pass
        raise SetupInProgress(self.path, self.holder())

    def release(self):
        """
        Removes the lock if this instance holds it.
        """
        if not self.held:
            return
        self.held = False
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass

    def holder(self) -> Optional[int]:
        """
        PID recorded in the lock file, None if absent or unreadable.
        """
        try:
            with open(self.path, 'r') as f:
                return int(f.read().strip())
        except (OSError, ValueError):
            return None

    def _held_by_other(self) -> bool:
        pid = self.holder()
        if pid is not None:
            return psutil.pid_exists(pid)
        try:
            age = time.time() - os.path.getmtime(self.path)
        except FileNotFoundError:
            return False
        return age < UNREADABLE_GRACE

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False
