import argparse
import logging
import os
import re
import sys
import time
from typing import Callable, List, Optional

import jenkins
import requests
from pydantic import ValidationError

from jenkins_trigger.client import connect_to_jenkins
from jenkins_trigger.config import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_POLL_SECONDS,
    BuildRequest,
    TriggerConfig,
    WaitPolicy,
    settings_from_env,
)
from jenkins_trigger.errors import JenkinsTriggerError, TriggerFailed
from jenkins_trigger.params import resolve_parameters, split_param_values
from jenkins_trigger.poller import BuildOutcome, poll_once, wait_for_build
from jenkins_trigger.trigger import trigger_build

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger(__name__)

DESCRIPTION = """This command triggers a Jenkins job.

Use '--job'/'-j' to name the Jenkins job to run, and '--folder'/'-f' when the job
lives inside folders (repeat the flag or separate folders with '/').
Pass job parameters with '--params'/'-p' in key=value format, repeating the flag or
separating parameters with commas: foo=bar,baz=qux.
'--params-json'/'-P' passes parameters as a JSON object.

  $ jenkins-trigger -j myjob
  $ jenkins-trigger -j myjob -f team/sub
  $ jenkins-trigger -j myjob -p foo=bar -p baz=qux
  $ jenkins-trigger -j myjob -p foo=bar,baz=qux
  $ jenkins-trigger -j myjob -P '{"foo":"bar","baz":"qux"}'

'--jenkins-url' sets the url of the Jenkins server, '--jenkins-user'/'--jenkins-pat'
the user and personal access token (PAT) if the server requires auth. They default
to JENKINS_URL, JENKINS_USER and JENKINS_API_TOKEN.

  $ jenkins-trigger -j myjob --jenkins-url http://myjenkins.com:8080 --jenkins-user me --jenkins-pat mytoken

'--wait' waits for the build to complete and returns its result. '--poll-time'
(duration, e.g. 10s or 1m30s) sets how often the server is polled and
'--max-attempts' the maximum number of polls.

  $ jenkins-trigger -j myjob --wait
  $ jenkins-trigger -j myjob --wait --poll-time 10s --max-attempts 60
"""

_DURATION_PART = re.compile(r'(\d+(?:\.\d+)?)(ms|s|m|h)')
_UNIT_SECONDS = {'ms': 0.001, 's': 1, 'm': 60, 'h': 3600}


def parse_duration(value: str) -> float:
    """Parses '10s', '1m30s', '500ms' or a bare number of seconds into seconds."""
    text = value.strip()
    try:
        seconds = float(text)
    except ValueError:
        parts = _DURATION_PART.findall(text)
        if not parts or ''.join(number + unit for number, unit in parts) != text:
            raise argparse.ArgumentTypeError(f"invalid duration: {value!r}")
        seconds = sum(float(number) * _UNIT_SECONDS[unit] for number, unit in parts)
    if seconds <= 0:
        raise argparse.ArgumentTypeError(f"duration must be positive: {value!r}")
    return seconds


def build_parser(environ=os.environ) -> argparse.ArgumentParser:
    defaults = settings_from_env(environ)
    parser = argparse.ArgumentParser(
        prog='jenkins-trigger',
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('--jenkins-url', default=defaults.url, help="URL of the Jenkins server")
    parser.add_argument('--jenkins-user', default=defaults.user, help="User for accessing Jenkins")
    parser.add_argument('--jenkins-pat', '--jenkins-token', dest='jenkins_pat', default=defaults.token,
                        help="Personal access token (PAT) for accessing Jenkins")
    parser.add_argument('-k', '--insecure', action='store_true', default=defaults.insecure,
                        help="Allow insecure Jenkins server connections when using SSL")
    parser.add_argument('-j', '--job', required=True, help="The name of the Jenkins job to run")
    parser.add_argument('-f', '--folder', action='append', default=[],
                        help="Folder containing the job, e.g. team/sub; may be repeated")
    parser.add_argument('-p', '--params', action='append', default=[],
                        help="The parameters of the job in key=value format, may be repeated or "
                             "comma separated, e.g. foo=bar,baz=qux")
    parser.add_argument('-P', '--params-json', default='',
                        help='The parameters of the job in JSON format, e.g. {"foo":"bar","baz":"qux"}')
    parser.add_argument('--wait', action='store_true', help="Wait for the job to complete, and return the results")
    parser.add_argument('--poll-time', type=parse_duration, default=DEFAULT_POLL_SECONDS,
                        help="How often (duration) to poll the Jenkins server for results")
    parser.add_argument('--max-attempts', type=int, default=DEFAULT_MAX_ATTEMPTS,
                        help="Max count of polling for results")
    parser.add_argument('--log-level', default=environ.get('LOG_LEVEL', 'INFO').upper(),
                        help="Logging level (default: LOG_LEVEL or INFO)")
    return parser


def config_from_args(args: argparse.Namespace) -> TriggerConfig:
    parameters = resolve_parameters(split_param_values(args.params), args.params_json)
    return TriggerConfig(
        jenkins={
            'url': args.jenkins_url,
            'user': args.jenkins_user,
            'token': args.jenkins_pat,
            'insecure': args.insecure,
        },
        request=BuildRequest(job_name=args.job, folder_path=tuple(args.folder), parameters=parameters),
        wait=WaitPolicy(enabled=args.wait, poll_interval=args.poll_time, max_attempts=args.max_attempts),
    )


def trigger_and_wait(config: TriggerConfig, server: Optional[jenkins.Jenkins] = None,
                     sleep: Callable[[float], None] = time.sleep) -> Optional[BuildOutcome]:
    """
    Triggers the configured build and, when waiting is enabled, polls it to completion.

    Returns the succeeded BuildOutcome, or None when waiting is disabled.
    Every failure is raised as a JenkinsTriggerError.
    """
    request = config.request
    logger.info(f"Triggering Jenkins build for job: {request.job_name}, folders: {list(request.folder_path)}, "
                f"parameters: {sorted(request.parameters)}, wait: {config.wait}")

    if server is None:
        try:
            server = connect_to_jenkins(config.jenkins)
        except (jenkins.JenkinsException, requests.exceptions.RequestException) as e:
            logger.error(f"Failed to connect to Jenkins at {config.jenkins.url}: {e}")
            raise TriggerFailed(request.job_name, e) from e

    queue_id = trigger_build(server, request)
    logger.info(f"Job {request.job_name} triggered successfully. Queue item: {queue_id}")

    if not config.wait.enabled:
        return None

    outcome = wait_for_build(
        lambda: poll_once(server, request, queue_id),
        config.wait,
        request.job_name,
        sleep=sleep,
    )
    logger.info(f"Job {request.job_name}, build number {outcome.build_number} completed with result {outcome.result}")
    return outcome


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    # --- Logging Setup ---
    logging.basicConfig(level=args.log_level.upper(), format=LOG_FORMAT)

    try:
        config = config_from_args(args)
        trigger_and_wait(config)
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1
    except JenkinsTriggerError as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
