"""
Resolving a queued build and waiting for it to finish.

`poll_once` performs one remote lookup and classifies the build into a
`BuildOutcome`. `wait_for_build` drives it with a fixed-delay, bounded
tenacity loop: running builds and failed lookups are retried, a successful
build ends the loop, and any other terminal state stops it immediately.
"""
import enum
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import jenkins
import requests
from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

from jenkins_trigger.config import BuildRequest, WaitPolicy
from jenkins_trigger.errors import (
    BuildFailed,
    QueueItemCancelled,
    ResolutionFailed,
    WaitAttemptsExhausted,
)
from jenkins_trigger.job_path import full_job_name

logger = logging.getLogger(__name__)


class RemoteBuildState(enum.Enum):
    SUCCESS = "success"
    RUNNING = "running"
    UNSUCCESSFUL = "unsuccessful"  # FAILURE, ABORTED, UNSTABLE, NOT_BUILT
    UNKNOWN = "unknown"

    @classmethod
    def from_build_info(cls, info: Dict[str, Any]) -> "RemoteBuildState":
        if info.get('building'):
            return cls.RUNNING
        result = info.get('result')
        if result == 'SUCCESS':
            return cls.SUCCESS
        if result:
            return cls.UNSUCCESSFUL
        return cls.UNKNOWN


class BuildStatus(enum.Enum):
    STILL_RUNNING = "still_running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class BuildOutcome:
    status: BuildStatus
    build_number: int
    result: Optional[str] = None
    url: Optional[str] = None

    @property
    def retryable(self) -> bool:
        return self.status is BuildStatus.STILL_RUNNING

    @property
    def succeeded(self) -> bool:
        return self.status is BuildStatus.SUCCEEDED


_STATUS_BY_STATE = {
    RemoteBuildState.SUCCESS: BuildStatus.SUCCEEDED,
    RemoteBuildState.RUNNING: BuildStatus.STILL_RUNNING,
    RemoteBuildState.UNSUCCESSFUL: BuildStatus.FAILED,
    RemoteBuildState.UNKNOWN: BuildStatus.FAILED,
}


def classify_build(info: Dict[str, Any]) -> BuildOutcome:
    """Maps a python-jenkins build info dict onto a BuildOutcome. Anything not positively good or running is FAILED."""
    state = RemoteBuildState.from_build_info(info)
    return BuildOutcome(
        status=_STATUS_BY_STATE[state],
        build_number=info.get('number'),
        result=info.get('result'),
        url=info.get('url'),
    )


def poll_once(server: jenkins.Jenkins, request: BuildRequest, queue_id: int) -> BuildOutcome:
    """
    Looks up the queue item and the build it started, then classifies the build.

    Raises ResolutionFailed when the lookup fails or the item is still waiting
    in the queue, and QueueItemCancelled when the item will never start.
    Every call queries the server again; nothing is remembered between calls.
    """
    logger.info(f"Polling build result for job {request.job_name} (queue item {queue_id})")

    try:
        queue_item = server.get_queue_item(queue_id)
    except (jenkins.JenkinsException, requests.exceptions.RequestException) as e:
        logger.warning(f"Could not fetch queue item {queue_id}: {e}")
        raise ResolutionFailed(queue_id, e) from e

    if queue_item.get('cancelled'):
        raise QueueItemCancelled(request.job_name, queue_id)

    executable = queue_item.get('executable') or {}
    build_number = executable.get('number')
    if build_number is None:
        why = queue_item.get('why') or 'no build assigned yet'
        logger.info(f"Job {request.job_name} is still waiting in the queue: {why}")
        raise ResolutionFailed(queue_id, f"waiting in queue: {why}")

    name = full_job_name(request.folder_path, request.job_name)
    try:
        info = server.get_build_info(name, build_number)
    except (jenkins.JenkinsException, requests.exceptions.RequestException) as e:
        logger.warning(f"Could not fetch build #{build_number} of job '{name}': {e}")
        raise ResolutionFailed(queue_id, e) from e

    outcome = classify_build(info)
    if outcome.status is BuildStatus.SUCCEEDED:
        logger.info(f"Job {request.job_name}, build number {outcome.build_number} successfully")
    elif outcome.status is BuildStatus.STILL_RUNNING:
        logger.info(f"Job {request.job_name}, build number {outcome.build_number} is still running")
    else:
        logger.info(f"Job {request.job_name}, build number {outcome.build_number} finished with result {outcome.result}")
    return outcome


def _log_attempt(max_attempts):
    def before(retry_state):
        logger.info(f"Poll attempt {retry_state.attempt_number}/{max_attempts}")
    return before


def _log_retry(retry_state):
    logger.info(f"Retrying after {retry_state.next_action.sleep}s")


def wait_for_build(poll: Callable[[], BuildOutcome], policy: WaitPolicy, job_name: str,
                   sleep: Callable[[float], None] = time.sleep) -> BuildOutcome:
    """
    Calls `poll` until the build succeeds, at most policy.max_attempts times,
    sleeping policy.poll_interval between attempts.

    Raises BuildFailed as soon as a poll reports a terminal failure and
    WaitAttemptsExhausted once every attempt was spent on a pending build.
    Exceptions other than ResolutionFailed are not retried.
    """
    retryer = Retrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_fixed(policy.poll_interval),
        retry=(retry_if_exception_type(ResolutionFailed)
               | retry_if_result(lambda outcome: outcome.retryable)),
        before=_log_attempt(policy.max_attempts),
        before_sleep=_log_retry,
        sleep=sleep,
    )

    try:
        outcome = retryer(poll)
    except RetryError as e:
        last_attempt = e.last_attempt
        last = last_attempt.exception() if last_attempt.failed else last_attempt.result()
        raise WaitAttemptsExhausted(job_name, policy.max_attempts, last) from e

    if outcome.status is BuildStatus.FAILED:
        raise BuildFailed(job_name, outcome.build_number, outcome.result)
    return outcome
