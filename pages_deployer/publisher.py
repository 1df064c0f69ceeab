# publisher.py
import asyncio
import logging
from typing import Dict, List

import httpx

from .errors import PublishError, upstream_details
from .github import GitHubClient
from .models import FileSet, RepositoryHandle

logger = logging.getLogger("pages_deployer.publisher")

COMMIT_MESSAGE = "Deploy application"
FILE_MODE = "100644"


class ContentPublisher:
    """
    Writes a FileSet as a single commit through the git-data API:
    head ref -> head commit -> blobs -> tree -> commit -> ref update.

    Nothing is rolled back on failure. Blobs or trees created before the
    failing step stay unreferenced on the remote.
    """

    def __init__(self, github: GitHubClient, commit_message: str = COMMIT_MESSAGE):
        self.github = github
        self.commit_message = commit_message

    async def _create_blob(self, handle: RepositoryHandle, path: str, content: str) -> Dict[str, str]:
        blob = await self.github.create_blob(handle.owner, handle.name, content)
        logger.info(f"[PUBLISH]    -> blob {path} ({len(content)} chars): {blob['sha'][:8]}")
        return {"path": path, "mode": FILE_MODE, "type": "blob", "sha": blob["sha"]}

    async def _create_blobs(self, handle: RepositoryHandle, files: FileSet) -> List[Dict[str, str]]:
        """Upload every file concurrently. If one upload fails the rest are cancelled."""
        tasks = [
            asyncio.ensure_future(self._create_blob(handle, path, content)) for path, content in files.items()
        ]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def publish(self, handle: RepositoryHandle, files: FileSet) -> RepositoryHandle:
        """Commit ``files`` on the default branch; return the handle with the new head."""
        owner, repo, branch = handle.owner, handle.name, handle.default_branch
        step = "read head ref"
        try:
            ref = await self.github.get_ref(owner, repo, branch)
            parent_sha = ref["object"]["sha"]

            step = "read head commit"
            head_commit = await self.github.get_commit(owner, repo, parent_sha)
            base_tree_sha = head_commit["tree"]["sha"]

            step = "create blobs"
            logger.info(f"[PUBLISH] Creating {len(files)} blobs in {handle.full_name}")
            tree_items = await self._create_blobs(handle, files)

            step = "create tree"
            tree = await self.github.create_tree(owner, repo, tree_items, base_tree_sha)

            step = "create commit"
            commit = await self.github.create_commit(owner, repo, self.commit_message, tree["sha"], [parent_sha])
            commit_sha = commit["sha"]

            step = "update ref"
            await self.github.update_ref(owner, repo, branch, commit_sha)
        except httpx.HTTPStatusError as e:
            logger.error(f"[PUBLISH] Failed to {step}: {e.response.status_code} {e.response.text[:500]}")
            raise PublishError(f"Failed to {step}: {e}", details=upstream_details(e)) from e
        except httpx.RequestError as e:
            logger.error(f"[PUBLISH] Failed to {step}: {e!r}")
            raise PublishError(f"Failed to {step}: {e!r}", details=upstream_details(e)) from e
        except (KeyError, TypeError) as e:
            raise PublishError(f"Unexpected GitHub response during '{step}': missing {e}") from e

        logger.info(f"[PUBLISH] {branch} -> {commit_sha}")
        return handle.model_copy(update={"head_sha": commit_sha})
