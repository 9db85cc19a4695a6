import argparse
from unittest.mock import MagicMock, patch

import jenkins
import pytest
from pydantic import ValidationError

from conftest import build_info, queue_item
from jenkins_trigger import main as cli
from jenkins_trigger.config import BuildRequest, TriggerConfig, WaitPolicy, settings_from_env
from jenkins_trigger.errors import BuildFailed, MalformedParameters, TriggerFailed
from jenkins_trigger.poller import BuildStatus


def _config(wait=False, folders=(), parameters=None, max_attempts=3):
    return TriggerConfig(
        request=BuildRequest(job_name="deploy", folder_path=folders, parameters=parameters or {}),
        wait=WaitPolicy(enabled=wait, poll_interval=1, max_attempts=max_attempts),
    )


# --- parse_duration ---

@pytest.mark.parametrize("text, seconds", [
    ("10s", 10.0),
    ("1m30s", 90.0),
    ("500ms", 0.5),
    ("1h", 3600.0),
    ("1.5s", 1.5),
    ("15", 15.0),
])
def test_parse_duration(text, seconds):
    assert cli.parse_duration(text) == seconds


@pytest.mark.parametrize("text", ["", "ten seconds", "10x", "0s", "-5", "10s junk"])
def test_parse_duration_rejects(text):
    with pytest.raises(argparse.ArgumentTypeError):
        cli.parse_duration(text)


# --- argument parsing ---

def test_parser_defaults_come_from_environment():
    env = {"JENKINS_URL": "https://ci.example.com", "JENKINS_USER": "bot", "JENKINS_API_TOKEN": "s3cret"}
    args = cli.build_parser(env).parse_args(["-j", "deploy"])
    assert args.jenkins_url == "https://ci.example.com"
    assert args.jenkins_user == "bot"
    assert args.jenkins_pat == "s3cret"
    assert args.wait is False
    assert args.poll_time == 10.0
    assert args.max_attempts == 60


def test_parser_without_environment_uses_builtin_defaults():
    args = cli.build_parser({}).parse_args(["-j", "deploy"])
    assert args.jenkins_url == "http://127.0.0.1:8080"
    assert args.jenkins_user is None
    assert args.insecure is False


def test_job_is_required():
    with pytest.raises(SystemExit) as excinfo:
        cli.build_parser({}).parse_args([])
    assert excinfo.value.code == 2


def test_config_from_args():
    argv = [
        "-j", "deploy", "-f", "team/sub", "-f", "extra",
        "-p", "env=prod,region=eu", "-p", "flag",
        "-P", '{"env": "dev", "team": "ops"}',
        "--wait", "--poll-time", "1m", "--max-attempts", "5",
        "--jenkins-token", "tok", "-k",
    ]
    config = cli.config_from_args(cli.build_parser({}).parse_args(argv))

    assert config.request.job_name == "deploy"
    assert config.request.folder_path == ("team/sub", "extra")
    assert config.request.parameters == {"env": "prod", "region": "eu", "flag": "", "team": "ops"}
    assert config.wait == WaitPolicy(enabled=True, poll_interval=60.0, max_attempts=5)
    assert config.jenkins.token == "tok"
    assert config.jenkins.insecure is True


def test_config_rejects_zero_attempts():
    args = cli.build_parser({}).parse_args(["-j", "deploy", "--max-attempts", "0"])
    with pytest.raises(ValidationError):
        cli.config_from_args(args)


def test_config_rejects_bad_json():
    args = cli.build_parser({}).parse_args(["-j", "deploy", "-P", "{oops"])
    with pytest.raises(MalformedParameters):
        cli.config_from_args(args)


def test_settings_from_env_insecure_flag():
    assert settings_from_env({"JENKINS_INSECURE": "true"}).insecure is True
    assert settings_from_env({"JENKINS_INSECURE": "0"}).insecure is False


# --- trigger_and_wait ---

def test_no_wait_triggers_once_and_never_polls(mock_server):
    """Scenario: job 'deploy', no folders, wait disabled."""
    mock_server.build_job.return_value = 11

    assert cli.trigger_and_wait(_config(), server=mock_server) is None

    mock_server.build_job.assert_called_once_with("deploy", parameters=None)
    mock_server.get_queue_item.assert_not_called()
    mock_server.get_build_info.assert_not_called()


def test_nested_job_with_parameters_uses_folder_path(mock_server):
    response = MagicMock()
    response.headers = {"Location": "http://jenkins.example.com/queue/item/12/"}
    mock_server.jenkins_request.return_value = response

    cli.trigger_and_wait(_config(folders=("team/sub",), parameters={"env": "prod"}), server=mock_server)

    mock_server.build_job.assert_not_called()
    sent = mock_server.jenkins_request.call_args[0][0]
    assert sent.url.startswith("http://jenkins.example.com/job/team/job/sub/job/deploy/buildWithParameters")


def test_wait_until_success(mock_server):
    sleeps = []
    mock_server.build_job.return_value = 11
    mock_server.get_queue_item.side_effect = [queue_item(), queue_item(4), queue_item(4)]
    mock_server.get_build_info.side_effect = [build_info(4, building=True), build_info(4, result="SUCCESS")]

    outcome = cli.trigger_and_wait(_config(wait=True), server=mock_server, sleep=sleeps.append)

    assert outcome.status is BuildStatus.SUCCEEDED
    assert outcome.build_number == 4
    assert mock_server.get_queue_item.call_count == 3
    assert sleeps == [1.0, 1.0]
    mock_server.build_job.assert_called_once()


def test_failed_build_does_not_retrigger(mock_server):
    mock_server.build_job.return_value = 11
    mock_server.get_queue_item.return_value = queue_item(6)
    mock_server.get_build_info.return_value = build_info(6, result="FAILURE")

    with pytest.raises(BuildFailed):
        cli.trigger_and_wait(_config(wait=True, max_attempts=60), server=mock_server, sleep=lambda s: None)

    mock_server.build_job.assert_called_once()
    assert mock_server.get_build_info.call_count == 1


def test_connection_failure_is_trigger_failed():
    with patch.object(cli, "connect_to_jenkins", side_effect=jenkins.JenkinsException("401 Unauthorized")):
        with pytest.raises(TriggerFailed):
            cli.trigger_and_wait(_config())


# --- main ---

def test_main_success(mock_server):
    mock_server.build_job.return_value = 1
    with patch.object(cli, "connect_to_jenkins", return_value=mock_server):
        assert cli.main(["-j", "deploy"]) == 0


def test_main_reports_build_failure(mock_server):
    mock_server.build_job.return_value = 1
    mock_server.get_queue_item.return_value = queue_item(2)
    mock_server.get_build_info.return_value = build_info(2, result="UNSTABLE")
    with patch.object(cli, "connect_to_jenkins", return_value=mock_server):
        assert cli.main(["-j", "deploy", "--wait", "--poll-time", "1ms"]) == 1


def test_main_reports_malformed_parameters():
    with patch.object(cli, "connect_to_jenkins") as connect:
        assert cli.main(["-j", "deploy", "-P", "[1, 2]"]) == 1
        connect.assert_not_called()


def test_main_reports_invalid_configuration():
    assert cli.main(["-j", "", "--max-attempts", "3"]) == 1
