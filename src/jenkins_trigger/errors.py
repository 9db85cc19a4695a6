"""Exceptions raised while triggering and waiting for a Jenkins build."""


class JenkinsTriggerError(Exception):
    """Base class for every failure that ends an invocation."""


class MalformedParameters(JenkinsTriggerError):
    """The JSON build parameters are not an object of strings."""


class TriggerFailed(JenkinsTriggerError):
    def __init__(self, job_name, cause):
        self.job_name = job_name
        self.cause = cause
        super().__init__(f"Failed to trigger job {job_name}: {cause}")


class ResolutionFailed(JenkinsTriggerError):
    """The queue item could not be resolved to a build (yet). Retried while polling."""

    def __init__(self, queue_id, reason):
        self.queue_id = queue_id
        self.reason = reason
        super().__init__(f"Could not resolve queue item {queue_id}: {reason}")


class QueueItemCancelled(JenkinsTriggerError):
    def __init__(self, job_name, queue_id):
        self.job_name = job_name
        self.queue_id = queue_id
        super().__init__(f"Job {job_name}, queue item {queue_id} was cancelled before it started")


class BuildFailed(JenkinsTriggerError):
    def __init__(self, job_name, build_number, result=None):
        self.job_name = job_name
        self.build_number = build_number
        self.result = result
        super().__init__(
            f"Job {job_name} build number {build_number} did not complete successfully (result: {result})"
        )


class WaitAttemptsExhausted(JenkinsTriggerError):
    """Every polling attempt was used up while the build was still pending."""

    def __init__(self, job_name, attempts, last=None):
        self.job_name = job_name
        self.attempts = attempts
        self.last = last
        super().__init__(f"Job {job_name} did not finish after {attempts} polling attempts (last: {last})")
