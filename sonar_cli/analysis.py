"""Waiting for SonarQube background analysis tasks.

Usage:
    task = wait_for_analysis(client, "AYx...", timeout=300, poll_interval=5)

The compute engine reports a task as PENDING or IN_PROGRESS until it ends in
SUCCESS, FAILED or CANCELED. Only a terminal status or the deadline stops
the wait: connection errors, error responses and unreadable bodies are
logged and polled again.
"""

import logging
import time
from typing import Callable

from sonar_cli.client import (
    ApiError,
    DeserializationError,
    NetworkError,
    SonarClient,
    SonarClientError,
)
from sonar_cli.models import AnalysisTask, TaskStatus

TASK_ENDPOINT = "/api/ce/task"
CANCELED_MESSAGE = "Analysis was canceled"

logger = logging.getLogger(__name__)


class AnalysisTimeoutError(SonarClientError):
    """Raised when a task is still running after the wait deadline."""

    def __init__(self, task_id: str, timeout: float) -> None:
        super().__init__(f"Timeout waiting for analysis task '{task_id}' after {timeout:g}s")
        self.task_id = task_id
        self.timeout = timeout


class AnalysisFailedError(SonarClientError):
    """Raised when the server reports a task as FAILED or CANCELED."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Analysis failed: {message}" if message else "Analysis failed")
        self.message = message


def fetch_task(client: SonarClient, task_id: str) -> AnalysisTask:
    return client.get(TASK_ENDPOINT, {"id": task_id}, model=AnalysisTask.from_response)


def wait_for_analysis(
    client: SonarClient,
    task_id: str,
    timeout: float = 300,
    poll_interval: float = 5,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> AnalysisTask:
    """Poll *task_id* until it reaches a terminal status.

    Returns the task on SUCCESS.

    Raises:
        AnalysisFailedError:  FAILED (with the server's error message, or an
                              empty message) or CANCELED
        AnalysisTimeoutError: *timeout* seconds elapsed without a terminal
                              status
    """
    deadline = clock() + timeout

    while True:
        if clock() > deadline:
            raise AnalysisTimeoutError(task_id, timeout)

        try:
            task = fetch_task(client, task_id)
        except (NetworkError, ApiError, DeserializationError) as exc:
            logger.warning("Polling task %s failed, retrying: %s", task_id, exc)
        else:
            state = task.state
            if state.is_terminal:
                if state is TaskStatus.SUCCESS:
                    return task
                if state is TaskStatus.FAILED:
                    raise AnalysisFailedError(task.error_message or "")
                raise AnalysisFailedError(CANCELED_MESSAGE)
            logger.debug("Task %s is %s, waiting %ss", task_id, task.status, poll_interval)

        sleep(poll_interval)
