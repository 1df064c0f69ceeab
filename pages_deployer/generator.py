# generator.py
import json
import logging
import re
from typing import Any, List

import httpx

from .errors import GenerationError, upstream_details
from .models import FileSet
from .settings import Settings

logger = logging.getLogger("pages_deployer.generator")

SYSTEM_PROMPT = (
    "You are an expert full-stack developer who creates beautiful, functional web applications. "
    "Output only raw HTML code without any markdown formatting or code blocks."
)

REQUIREMENTS = [
    "Create ONE self-contained HTML file with embedded CSS and JavaScript",
    "Make it visually beautiful with modern design",
    "Make it fully functional and interactive",
    "Use modern JavaScript (ES6+)",
    "Include responsive design for mobile",
    "Add smooth animations and transitions",
    "Use a professional color scheme",
    "Include clear instructions for the user",
]

FENCE_RE = re.compile(r"```[a-zA-Z0-9_-]*[ \t]*\n?")


def build_prompt(brief: str, attachments: List[Any], task: str) -> str:
    prompt_parts = [
        "Create a complete, production-ready single-page web application.",
        "",
        f"Task: {task}",
        f"Brief: {brief}",
        f"Attachments: {json.dumps(attachments)}",
        "",
        "Requirements:",
    ]
    for idx, requirement in enumerate(REQUIREMENTS, 1):
        prompt_parts.append(f"{idx}. {requirement}")
    prompt_parts.extend([
        "",
        "Return ONLY the complete HTML code, nothing else. No markdown, no explanations.",
    ])
    return "\n".join(prompt_parts)


def strip_code_fences(text: str) -> str:
    """Remove markdown fence markers (```html, ```) the model may add anyway."""
    return FENCE_RE.sub("", text).strip()


def build_readme(task: str, brief: str) -> str:
    return "\n".join([
        f"# {task}",
        "",
        "## Description",
        brief,
        "",
        "## Live Demo",
        "Visit the GitHub Pages URL to see the live application.",
        "",
        "## Setup",
        "Simply open `index.html` in a modern web browser.",
        "",
        "## Features",
        "- Modern, responsive design",
        "- Fully functional interface",
        "- Mobile-friendly",
        "- Fast and lightweight",
        "",
        "## License",
        "MIT License",
        "",
        "## Generated",
        "This application was automatically generated by an LLM.",
    ])


class CodeGenerator:
    """Single-shot chat-completion call that yields an index page and README."""

    def __init__(self, settings: Settings):
        self.api_url = settings.GENERATION_API_URL
        self.api_key = settings.GROQ_API_KEY
        self.model = settings.GENERATION_MODEL
        self.timeout = settings.GENERATION_TIMEOUT_SECONDS
        self.temperature = 0.7
        self.max_tokens = 8000

    async def complete(self, prompt: str) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(self.api_url, json=payload, headers=headers)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"[GENERATE] API returned {e.response.status_code}: {e.response.text[:500]}")
            raise GenerationError(f"Failed to generate code: {e}", details=upstream_details(e)) from e
        except httpx.RequestError as e:
            logger.error(f"[GENERATE] Request error: {e!r}")
            raise GenerationError(f"Failed to generate code: {e!r}", details=upstream_details(e)) from e
        except ValueError as e:
            raise GenerationError("Generation API returned invalid JSON", details=str(e)) from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise GenerationError("Unexpected completion format", details=data) from e
        if not isinstance(content, str) or not content.strip():
            raise GenerationError("Generation API returned an empty completion", details=data)
        return content

    async def generate(self, brief: str, attachments: List[Any], task: str) -> FileSet:
        logger.info(f"[GENERATE] Requesting app for task '{task}' from {self.model}")
        raw = await self.complete(build_prompt(brief, attachments, task))
        html_content = strip_code_fences(raw)
        logger.info(f"[GENERATE] Received index.html ({len(html_content)} chars)")
        return {
            "index.html": html_content,
            "README.md": build_readme(task, brief),
        }
