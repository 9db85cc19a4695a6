import logging
from typing import Dict, Optional
from urllib.parse import quote, urlencode

import jenkins
import requests
import urllib3
from tenacity import retry, stop_after_attempt, wait_exponential

from jenkins_trigger.config import JenkinsSettings

logger = logging.getLogger(__name__)


def create_jenkins(settings: JenkinsSettings) -> jenkins.Jenkins:
    server = jenkins.Jenkins(settings.url, username=settings.user, password=settings.token, timeout=settings.timeout)
    if settings.insecure:
        # python-jenkins sends every request through this requests session
        server._session.verify = False
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
        logger.warning(f"TLS certificate verification is disabled for {settings.url}")
    return server


# --- Jenkins Server Connection ---
# Only the handshake is retried; nothing has been submitted yet.
@retry(wait=wait_exponential(multiplier=1, min=1, max=4), stop=stop_after_attempt(3), reraise=True)
def connect_to_jenkins(settings: JenkinsSettings) -> jenkins.Jenkins:
    logger.info(f"Attempting to connect to Jenkins server at {settings.url}...")
    server = create_jenkins(settings)
    server.get_whoami()  # Test connection and credentials
    return server


def build_job_at_path(server: jenkins.Jenkins, path: str, parameters: Optional[Dict[str, str]] = None) -> int:
    """
    Triggers the job addressed by an explicit nested path such as
    '/job/team/job/sub/job/deploy' and returns the queue item number.

    Mirrors jenkins.Jenkins.build_job, which only accepts a job name.
    """
    url = server.server.rstrip('/') + quote(path.rstrip('/'))
    if parameters:
        url += '/buildWithParameters?' + urlencode(parameters)
    else:
        url += '/build'

    response = server.jenkins_request(requests.Request('POST', url))
    location = response.headers.get('Location')
    if not location:
        raise jenkins.EmptyResponseException(
            f"Header 'Location' not found in response from server [{server.server}]")
    return int(location.rstrip('/').split('/')[-1])
