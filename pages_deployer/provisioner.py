# provisioner.py
import asyncio
import logging
import random
import re
import string
import time
from typing import Awaitable, Callable, Optional

import httpx

from .errors import RepositoryCreationError, upstream_details
from .github import GitHubClient
from .models import RepositoryHandle
from .settings import Settings

logger = logging.getLogger("pages_deployer.provisioner")

MAX_REPO_NAME_LENGTH = 100
SUFFIX_LENGTH = 6
NAME_TAKEN_STATUS = 422
NAME_TAKEN_MARKER = "already exists"
BRANCH_NOT_READY_STATUSES = (404, 409)


def sanitize_repo_name(task: str, timestamp_ms: Optional[int] = None) -> str:
    """Derive a repository name from the task and a millisecond timestamp.

    Lower-cased, anything outside [a-z0-9-] becomes a hyphen, hyphen runs are
    collapsed and the result is cut to 100 characters.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    name = f"{task}-{timestamp_ms}".lower()
    name = re.sub(r"[^a-z0-9-]", "-", name)
    name = re.sub(r"-+", "-", name)
    return name[:MAX_REPO_NAME_LENGTH]


def random_suffix(length: int = SUFFIX_LENGTH) -> str:
    return "".join(random.choices(string.ascii_lowercase + string.digits, k=length))


def with_suffix(base_name: str, suffix: str) -> str:
    head = base_name[:MAX_REPO_NAME_LENGTH - len(suffix) - 1].rstrip("-")
    return f"{head}-{suffix}"


def is_name_taken(response: httpx.Response) -> bool:
    """A 422 from repo creation means a collision only when GitHub says the name already exists."""
    if response.status_code != NAME_TAKEN_STATUS:
        return False
    try:
        body = response.json()
    except ValueError:
        return False
    if not isinstance(body, dict):
        return False
    messages = [body.get("message")]
    for error in body.get("errors") or []:
        messages.append(error.get("message") if isinstance(error, dict) else error)
    return any(isinstance(m, str) and NAME_TAKEN_MARKER in m.lower() for m in messages)


class RepositoryProvisioner:
    def __init__(
        self,
        github: GitHubClient,
        settings: Settings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        suffix_factory: Callable[[], str] = random_suffix,
    ):
        self.github = github
        self.max_attempts = settings.MAX_NAME_ATTEMPTS
        self.ready_attempts = settings.REPO_READY_ATTEMPTS
        self.ready_delay = settings.REPO_READY_DELAY_SECONDS
        self.default_branch = settings.DEFAULT_BRANCH
        self.sleep = sleep
        self.suffix_factory = suffix_factory

    async def resolve_owner(self) -> str:
        try:
            user = await self.github.get_authenticated_user()
        except httpx.HTTPError as e:
            raise RepositoryCreationError(f"Could not resolve GitHub identity: {e}", details=upstream_details(e)) from e
        return user["login"]

    async def create(self, base_name: str, description: str) -> dict:
        """Create the repository, mutating the name on collision.

        Returns the GitHub repository JSON of the repo that was created.
        """
        candidate = base_name
        for attempt in range(1, self.max_attempts + 1):
            logger.info(f"[REPO] Creating '{candidate}' (attempt {attempt}/{self.max_attempts})")
            try:
                repo = await self.github.create_repo(candidate, description or "Auto-generated application")
                repo.setdefault("name", candidate)
                return repo
            except httpx.HTTPStatusError as e:
                if not is_name_taken(e.response):
                    logger.error(f"[REPO] Creation failed with {e.response.status_code}: {e.response.text[:500]}")
                    raise RepositoryCreationError(f"Failed to create repository: {e}", details=upstream_details(e)) from e
                candidate = with_suffix(base_name, self.suffix_factory())
                logger.warning(f"[REPO] Name taken, retrying as '{candidate}'")
            except httpx.RequestError as e:
                raise RepositoryCreationError(f"Failed to create repository: {e!r}", details=upstream_details(e)) from e
        raise RepositoryCreationError(
            f"Could not find a free repository name after {self.max_attempts} attempts",
            details={"base_name": base_name},
        )

    async def wait_for_branch(self, owner: str, name: str, branch: str) -> str:
        """Poll until the auto-initialised default branch is readable; return its head sha."""
        for attempt in range(1, self.ready_attempts + 1):
            await self.sleep(self.ready_delay)
            try:
                ref = await self.github.get_ref(owner, name, branch)
                return ref["object"]["sha"]
            except httpx.HTTPStatusError as e:
                if e.response.status_code not in BRANCH_NOT_READY_STATUSES:
                    raise RepositoryCreationError(f"Failed to read default branch: {e}", details=upstream_details(e)) from e
                logger.info(f"[REPO] Branch '{branch}' not ready yet ({attempt}/{self.ready_attempts})")
            except httpx.RequestError as e:
                raise RepositoryCreationError(f"Failed to read default branch: {e!r}", details=upstream_details(e)) from e
        raise RepositoryCreationError(f"Default branch '{branch}' of {owner}/{name} never became available")

    async def provision(self, task: str, description: str, owner: Optional[str] = None) -> RepositoryHandle:
        owner = owner or await self.resolve_owner()
        repo = await self.create(sanitize_repo_name(task), description)
        name = repo["name"]
        branch = repo.get("default_branch") or self.default_branch
        head_sha = await self.wait_for_branch(owner, name, branch)
        logger.info(f"[REPO] Ready: {owner}/{name}@{branch} ({head_sha[:8]})")
        return RepositoryHandle(
            owner=owner,
            name=name,
            head_sha=head_sha,
            html_url=repo.get("html_url") or "",
            default_branch=branch,
        )
