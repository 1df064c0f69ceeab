# pages.py
import asyncio
import logging
from typing import Awaitable, Callable

import httpx

from .errors import StaticSiteError, upstream_details
from .github import GitHubClient
from .models import RepositoryHandle
from .settings import Settings

logger = logging.getLogger("pages_deployer.pages")

ALREADY_ENABLED_STATUS = 409


def pages_url_for(owner: str, repo: str) -> str:
    return f"https://{owner.lower()}.github.io/{repo}/"


class StaticSiteEnabler:
    """Turns on GitHub Pages for the default branch. Failures never abort the run."""

    def __init__(
        self,
        github: GitHubClient,
        settings: Settings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.github = github
        self.build_wait = settings.PAGES_BUILD_DELAY_SECONDS
        self.poll_interval = settings.PAGES_POLL_INTERVAL_SECONDS
        self.sleep = sleep

    async def enable(self, handle: RepositoryHandle) -> bool:
        try:
            await self.github.create_pages_site(handle.owner, handle.name, handle.default_branch, "/")
            logger.info(f"[PAGES] Enabled for {handle.full_name}")
            return True
        except httpx.HTTPStatusError as e:
            if e.response.status_code == ALREADY_ENABLED_STATUS:
                logger.info("[PAGES] Already enabled")
                return True
            err = StaticSiteError(f"Pages setup failed: {e}", details=upstream_details(e))
        except httpx.RequestError as e:
            err = StaticSiteError(f"Pages setup failed: {e!r}", details=upstream_details(e))
        except ValueError as e:
            err = StaticSiteError(f"Pages setup returned an unreadable body: {e}")
        logger.warning(f"[PAGES] {err.message} (continuing) details={err.details}")
        return False

    async def wait_for_build(self, handle: RepositoryHandle) -> bool:
        """Poll the Pages status until 'built' or the build wait elapses."""
        waited = 0.0
        while waited < self.build_wait:
            delay = min(self.poll_interval or self.build_wait, self.build_wait - waited)
            await self.sleep(delay)
            waited += delay
            try:
                site = await self.github.get_pages_site(handle.owner, handle.name)
            except (httpx.HTTPError, ValueError) as e:
                logger.info(f"[PAGES] Status check failed: {e!r}")
                continue
            status = site.get("status") if isinstance(site, dict) else None
            logger.info(f"[PAGES] Build status: {status}")
            if status == "built":
                return True
            if status == "errored":
                logger.warning("[PAGES] Build errored; continuing with predicted URL")
                return False
        logger.info("[PAGES] Build wait elapsed; continuing with predicted URL")
        return False

    async def run(self, handle: RepositoryHandle) -> str:
        if await self.enable(handle):
            await self.wait_for_build(handle)
        else:
            await self.sleep(self.build_wait)
        return pages_url_for(handle.owner, handle.name)
