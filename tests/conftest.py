from unittest.mock import MagicMock

import jenkins
import pytest

JENKINS_BASE = "http://jenkins.example.com/"


@pytest.fixture
def mock_server():
    """A MagicMock standing in for jenkins.Jenkins."""
    server = MagicMock(spec=jenkins.Jenkins)
    server.server = JENKINS_BASE
    return server


@pytest.fixture
def no_sleep():
    """Records requested sleeps instead of sleeping."""
    calls = []
    return calls, calls.append


def build_info(number, building=False, result=None):
    return {
        "number": number,
        "building": building,
        "result": result,
        "url": f"{JENKINS_BASE}job/deploy/{number}/",
    }


def queue_item(number=None, cancelled=False, why=None):
    item = {"cancelled": cancelled, "why": why, "executable": None}
    if number is not None:
        item["executable"] = {"number": number, "url": f"{JENKINS_BASE}job/deploy/{number}/"}
    return item
