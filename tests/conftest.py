"""
Shared fixtures: a fully populated Settings object, a sleep recorder and a
few canned GitHub responses.
"""

import os

import pytest

# main.py builds its Settings at import time; keep tests from writing log files.
os.environ["LOG_FILE_PATH"] = ""

from pages_deployer.models import GenerationRequest, RepositoryHandle  # noqa: E402
from pages_deployer.settings import Settings  # noqa: E402

GITHUB = "https://api.github.com"
GENERATION_URL = "https://llm.example.com/v1/chat/completions"
EVALUATION_URL = "https://eval.example.com/notify"
SECRET = "s3cret"


class SleepRecorder:
    """Drop-in for asyncio.sleep that records delays instead of waiting."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        GITHUB_TOKEN="gh-token",
        GROQ_API_KEY="groq-key",
        SECRET_KEY=SECRET,
        EVALUATION_URL=EVALUATION_URL,
        GITHUB_API_BASE=GITHUB,
        GENERATION_API_URL=GENERATION_URL,
        GENERATION_MODEL="test-model",
        LOG_FILE_PATH="",
    )


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def handle():
    return RepositoryHandle(
        owner="octo",
        name="demo-1700000000000",
        head_sha="base-commit",
        html_url="https://github.com/octo/demo-1700000000000",
        default_branch="main",
    )


@pytest.fixture
def generation_request():
    return GenerationRequest(
        email="student@example.com",
        task="Demo Task",
        round=1,
        nonce="nonce-1",
        secret=SECRET,
        brief="A counter app with a reset button",
        attachments=[],
    )


def completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}
