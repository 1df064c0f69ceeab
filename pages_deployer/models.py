# models.py
from typing import Any, Dict, List, Union

from pydantic import BaseModel, ConfigDict

# Ordered path -> text content
FileSet = Dict[str, str]


class GenerationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    email: str
    task: str
    round: Union[int, str]
    nonce: str
    secret: str
    brief: str = ""
    attachments: List[Any] = []


class RepositoryHandle(BaseModel):
    model_config = ConfigDict(frozen=True)

    owner: str
    name: str
    head_sha: str
    html_url: str = ""
    default_branch: str = "main"

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def repo_url(self) -> str:
        return self.html_url or f"https://github.com/{self.owner}/{self.name}"


class NotificationPayload(BaseModel):
    email: str
    task: str
    round: Union[int, str]
    nonce: str
    repo_url: str
    commit_sha: str
    pages_url: str


class DeploymentResult(BaseModel):
    repo_url: str
    pages_url: str
    commit_sha: str
