"""Task runner singleton accessor."""

from __future__ import annotations

from slackbridge.tasks.runner import TaskRunner

_task_runner: TaskRunner | None = None


def get_task_runner() -> TaskRunner:
    """Return the process-wide runner; once shut down it keeps refusing work."""
    global _task_runner
    if _task_runner is None:
        _task_runner = TaskRunner()
    return _task_runner


__all__ = ["TaskRunner", "get_task_runner"]
