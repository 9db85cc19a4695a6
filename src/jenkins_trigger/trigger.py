import logging

import jenkins
import requests

from jenkins_trigger.client import build_job_at_path
from jenkins_trigger.config import BuildRequest
from jenkins_trigger.errors import TriggerFailed
from jenkins_trigger.job_path import nested_job_path

logger = logging.getLogger(__name__)


def trigger_build(server: jenkins.Jenkins, request: BuildRequest) -> int:
    """
    Submits one build for the request and returns its queue item number.

    Top-level jobs are built by name; jobs inside folders are built through
    their nested '/job/.../job/<name>' path since name lookup does not
    descend into folders. Submission is attempted exactly once.
    """
    path = nested_job_path(request.folder_path, request.job_name)
    parameters = dict(request.parameters)

    try:
        if path is None:
            logger.info(f"Submitting build for job '{request.job_name}' by name")
            queue_id = server.build_job(request.job_name, parameters=parameters or None)
        else:
            logger.info(f"Submitting build for job '{request.job_name}' at path {path}")
            queue_id = build_job_at_path(server, path, parameters)
    except (jenkins.JenkinsException, requests.exceptions.RequestException, ValueError) as e:
        logger.error(f"Jenkins API error triggering build for job '{request.job_name}': {e}")
        raise TriggerFailed(request.job_name, e) from e

    return int(queue_id)
