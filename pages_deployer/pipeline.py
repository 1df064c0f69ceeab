# pipeline.py
import asyncio
import logging
from typing import Awaitable, Callable

from .generator import CodeGenerator
from .github import GitHubClient
from .models import DeploymentResult, GenerationRequest, NotificationPayload
from .notifier import ResultNotifier
from .pages import StaticSiteEnabler
from .provisioner import RepositoryProvisioner
from .publisher import ContentPublisher
from .settings import Settings

logger = logging.getLogger("pages_deployer.pipeline")


class DeploymentPipeline:
    """
    Runs one request end to end:
    generate -> create repo -> commit files -> enable Pages -> notify.

    Every stage error aborts the run except Pages enablement. Resources
    created before a failure are left in place.
    """

    def __init__(
        self,
        settings: Settings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings
        self.sleep = sleep
        self.generator = CodeGenerator(settings)
        self.notifier = ResultNotifier(settings, sleep=sleep)

    async def run(self, request: GenerationRequest) -> DeploymentResult:
        logger.info(f"[PIPELINE] Start task={request.task} round={request.round}")

        files = await self.generator.generate(request.brief, request.attachments, request.task)

        async with GitHubClient(self.settings) as github:
            provisioner = RepositoryProvisioner(github, self.settings, sleep=self.sleep)
            handle = await provisioner.provision(request.task, request.brief)
            logger.info(f"[PIPELINE] Repository created: {handle.repo_url}")

            handle = await ContentPublisher(github).publish(handle, files)
            commit_sha = handle.head_sha

            pages_url = await StaticSiteEnabler(github, self.settings, sleep=self.sleep).run(handle)
            logger.info(f"[PIPELINE] Pages URL: {pages_url}")

        payload = NotificationPayload(
            email=request.email,
            task=request.task,
            round=request.round,
            nonce=request.nonce,
            repo_url=handle.repo_url,
            commit_sha=commit_sha,
            pages_url=pages_url,
        )
        await self.notifier.notify(payload)

        logger.info(f"[PIPELINE] Done. Repo: {handle.repo_url} Commit: {commit_sha}")
        return DeploymentResult(repo_url=handle.repo_url, pages_url=pages_url, commit_sha=commit_sha)
