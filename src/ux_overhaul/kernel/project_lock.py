"""Project file lock guarding manifest writes."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from filelock import FileLock

from ux_overhaul.kernel.paths import get_lock_path

# A write holds the lock for milliseconds; waiting longer means another
# process is running against the same project.
LOCK_TIMEOUT_S = 30.0


@contextmanager
def project_lock(project_root: Path, timeout: float = LOCK_TIMEOUT_S) -> Iterator[None]:
    """Hold <project>/.lock for the body of the context.

    Only manifest writes take this lock, and nothing else is acquired while
    it is held.

    Args:
        project_root: Project directory.
        timeout: Seconds to wait before filelock.Timeout is raised.

    Yields:
        None while the lock is held.
    """
    lock_path = get_lock_path(project_root)
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    with FileLock(str(lock_path), timeout=timeout):
        yield
