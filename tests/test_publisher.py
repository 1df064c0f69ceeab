import asyncio
import base64
import hashlib
import json

import httpx
import pytest

from pages_deployer.errors import PublishError
from pages_deployer.github import GitHubClient
from pages_deployer.publisher import ContentPublisher

from .conftest import GITHUB

REPO = f"{GITHUB}/repos/octo/demo-1700000000000"

FILES = {
    "index.html": "<html><body>hi</body></html>",
    "README.md": "# demo\n",
    "assets/data.json": '{"k": "välue"}',
}


def fake_blob_sha(content: bytes) -> str:
    return hashlib.sha1(content).hexdigest()


def create_blob(request):
    sent = json.loads(request.content)
    assert sent["encoding"] == "base64"
    return httpx.Response(201, json={"sha": fake_blob_sha(base64.b64decode(sent["content"]))})


def mock_read_side(respx_mock):
    ref = respx_mock.get(f"{REPO}/git/ref/heads/main").mock(
        return_value=httpx.Response(200, json={"object": {"sha": "base-commit", "type": "commit"}})
    )
    commit = respx_mock.get(f"{REPO}/git/commits/base-commit").mock(
        return_value=httpx.Response(200, json={"sha": "base-commit", "tree": {"sha": "base-tree"}})
    )
    return ref, commit


@pytest.mark.asyncio
async def test_publish_creates_one_commit_from_blobs(settings, handle, respx_mock):
    mock_read_side(respx_mock)
    blobs = respx_mock.post(f"{REPO}/git/blobs").mock(side_effect=create_blob)
    trees = respx_mock.post(f"{REPO}/git/trees").mock(return_value=httpx.Response(201, json={"sha": "new-tree"}))
    commits = respx_mock.post(f"{REPO}/git/commits").mock(return_value=httpx.Response(201, json={"sha": "new-commit"}))
    update = respx_mock.patch(f"{REPO}/git/refs/heads/main").mock(
        return_value=httpx.Response(200, json={"object": {"sha": "new-commit"}})
    )

    async with GitHubClient(settings) as github:
        updated = await ContentPublisher(github).publish(handle, FILES)

    assert updated.head_sha == "new-commit"
    assert updated.name == handle.name
    assert handle.head_sha == "base-commit"

    assert blobs.call_count == len(FILES)
    uploaded = sorted(base64.b64decode(json.loads(c.request.content)["content"]).decode("utf-8") for c in blobs.calls)
    assert uploaded == sorted(FILES.values())

    assert trees.call_count == 1
    tree = json.loads(trees.calls.last.request.content)
    assert tree["base_tree"] == "base-tree"
    assert {item["path"] for item in tree["tree"]} == set(FILES)
    for item in tree["tree"]:
        assert item["mode"] == "100644"
        assert item["type"] == "blob"
        assert item["sha"] == fake_blob_sha(FILES[item["path"]].encode("utf-8"))

    assert commits.call_count == 1
    commit = json.loads(commits.calls.last.request.content)
    assert commit == {"message": "Deploy application", "tree": "new-tree", "parents": ["base-commit"]}

    assert update.call_count == 1
    assert json.loads(update.calls.last.request.content)["sha"] == "new-commit"


@pytest.mark.asyncio
async def test_failure_after_blobs_stops_without_rollback(settings, handle, respx_mock):
    mock_read_side(respx_mock)
    blobs = respx_mock.post(f"{REPO}/git/blobs").mock(side_effect=create_blob)
    respx_mock.post(f"{REPO}/git/trees").mock(
        return_value=httpx.Response(422, json={"message": "tree.sha is not a valid blob"})
    )

    async with GitHubClient(settings) as github:
        with pytest.raises(PublishError) as exc:
            await ContentPublisher(github).publish(handle, FILES)

    assert "create tree" in exc.value.message
    assert exc.value.details == {"message": "tree.sha is not a valid blob"}
    assert blobs.call_count == len(FILES)


@pytest.mark.asyncio
async def test_unreadable_head_is_a_publish_error(settings, handle, respx_mock):
    respx_mock.get(f"{REPO}/git/ref/heads/main").mock(return_value=httpx.Response(404, json={"message": "Not Found"}))
    async with GitHubClient(settings) as github:
        with pytest.raises(PublishError) as exc:
            await ContentPublisher(github).publish(handle, FILES)
    assert "read head ref" in exc.value.message


@pytest.mark.asyncio
async def test_single_blob_failure_fails_publish(settings, handle, respx_mock):
    mock_read_side(respx_mock)
    respx_mock.post(f"{REPO}/git/blobs").mock(side_effect=httpx.ConnectError("connection reset"))
    async with GitHubClient(settings) as github:
        with pytest.raises(PublishError):
            await ContentPublisher(github).publish(handle, {"index.html": "<html></html>"})


class StallingGitHub:
    """Blob uploads hang until cancelled, except for the one named ``failing``."""

    def __init__(self, failing):
        self.failing = failing
        self.started = 0
        self.cancelled = 0

    async def get_ref(self, owner, repo, branch):
        return {"object": {"sha": "base-commit"}}

    async def get_commit(self, owner, repo, sha):
        return {"tree": {"sha": "base-tree"}}

    async def create_blob(self, owner, repo, content):
        self.started += 1
        if content == self.failing:
            await asyncio.sleep(0)
            raise httpx.ConnectError("connection reset")
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled += 1
            raise


@pytest.mark.asyncio
async def test_failed_blob_cancels_pending_uploads(handle):
    github = StallingGitHub(failing=FILES["README.md"])
    with pytest.raises(PublishError) as exc:
        await ContentPublisher(github).publish(handle, FILES)
    assert "create blobs" in exc.value.message
    assert github.started == len(FILES)
    assert github.cancelled == len(FILES) - 1
