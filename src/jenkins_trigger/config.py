import os
from typing import Dict, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

# --- Defaults ---
DEFAULT_JENKINS_URL = "http://127.0.0.1:8080"
DEFAULT_WAIT = False
DEFAULT_POLL_SECONDS = 10.0
DEFAULT_MAX_ATTEMPTS = 60
DEFAULT_TIMEOUT = 20

_TRUTHY = ("1", "true", "yes", "on")


class JenkinsSettings(BaseModel):
    """Connection details for the Jenkins server, fixed for the whole invocation."""
    model_config = ConfigDict(frozen=True)

    url: str = DEFAULT_JENKINS_URL
    user: Optional[str] = None
    token: Optional[str] = None
    insecure: bool = False
    timeout: int = Field(default=DEFAULT_TIMEOUT, gt=0)


class BuildRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    job_name: str = Field(min_length=1)
    folder_path: Tuple[str, ...] = ()
    parameters: Dict[str, str] = Field(default_factory=dict)


class WaitPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = DEFAULT_WAIT
    poll_interval: float = Field(default=DEFAULT_POLL_SECONDS, gt=0)  # seconds
    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, gt=0)


class TriggerConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    jenkins: JenkinsSettings = Field(default_factory=JenkinsSettings)
    request: BuildRequest
    wait: WaitPolicy = Field(default_factory=WaitPolicy)


def settings_from_env(environ: Mapping[str, str] = os.environ) -> JenkinsSettings:
    """
    Builds JenkinsSettings from JENKINS_URL, JENKINS_USER, JENKINS_API_TOKEN
    and JENKINS_INSECURE. Unset variables fall back to the defaults.
    """
    return JenkinsSettings(
        url=environ.get('JENKINS_URL') or DEFAULT_JENKINS_URL,
        user=environ.get('JENKINS_USER') or None,
        token=environ.get('JENKINS_API_TOKEN') or None,
        insecure=environ.get('JENKINS_INSECURE', 'false').lower() in _TRUTHY,
    )
