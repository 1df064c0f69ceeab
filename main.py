# main.py
import os
import sys
import logging
import traceback
from datetime import datetime, timezone
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from pages_deployer.errors import AuthorizationError, DeploymentError, ValidationError
from pages_deployer.pipeline import DeploymentPipeline
from pages_deployer.settings import Settings
from pages_deployer.validator import validate_request

# ------------------------- Settings -------------------------
settings = Settings()

# ------------------------- Logging -------------------------
def configure_logging(cfg: Settings) -> logging.Logger:
    root = logging.getLogger("pages_deployer")
    root.setLevel(logging.INFO)
    fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    root.handlers = []
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(fmt)
    root.addHandler(console_handler)
    if cfg.LOG_FILE_PATH:
        log_dir = os.path.dirname(cfg.LOG_FILE_PATH)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(cfg.LOG_FILE_PATH, mode="a", encoding="utf-8")
        file_handler.setFormatter(fmt)
        root.addHandler(file_handler)
    root.propagate = False
    return root

logger = configure_logging(settings)

def flush_logs():
    sys.stdout.flush()
    for h in logger.handlers:
        h.flush()

# ------------------------- App & Dependencies -------------------------
app = FastAPI(title="Pages Deployer", description="LLM-generated single-page apps published to GitHub Pages")

def get_settings() -> Settings:
    return settings

def get_pipeline(cfg: Settings = Depends(get_settings)) -> DeploymentPipeline:
    return DeploymentPipeline(cfg)

def describe_request(body: Any) -> str:
    if not isinstance(body, dict):
        return f"<{type(body).__name__}>"
    return f"task={body.get('task')} round={body.get('round')} email={body.get('email')}"

# ------------------------- Endpoint handlers -------------------------
@app.post("/api-endpoint")
async def api_endpoint(
    request: Request,
    cfg: Settings = Depends(get_settings),
    pipeline: DeploymentPipeline = Depends(get_pipeline),
):
    try:
        body = await request.json()
    except ValueError:
        body = None
    logger.info(f"Received request: {describe_request(body)}")

    try:
        task_data = validate_request(body, cfg.SECRET_KEY)
    except ValidationError as e:
        logger.warning(f"Rejected request: {e.message}")
        return JSONResponse(status_code=e.status_code, content={"error": e.message, "details": e.details})
    except AuthorizationError as e:
        client = request.client.host if request.client else "unknown"
        logger.warning(f"Invalid secret provided for task {body.get('task')} from {client}")
        return JSONResponse(status_code=e.status_code, content={"error": e.message})

    logger.info(f"Secret validated. Processing task: {task_data.task}")
    try:
        result = await pipeline.run(task_data)
    except DeploymentError as e:
        logger.exception(f"[CRITICAL FAILURE] Task {task_data.task} failed: {e.message}")
        details = e.details if e.details is not None else traceback.format_exc()
        return JSONResponse(status_code=e.status_code, content={"error": e.message, "details": details})
    except Exception as e:
        logger.exception(f"[CRITICAL FAILURE] Task {task_data.task} failed: {e}")
        return JSONResponse(status_code=500, content={"error": str(e), "details": traceback.format_exc()})
    finally:
        flush_logs()

    return JSONResponse(
        status_code=200,
        content={
            "success": True,
            "repo_url": result.repo_url,
            "pages_url": result.pages_url,
            "commit_sha": result.commit_sha,
            "message": "Application created successfully!",
        },
    )

@app.get("/")
async def root():
    return {"status": "Server is running", "endpoint": "POST /api-endpoint"}

@app.get("/health")
async def health(cfg: Settings = Depends(get_settings)):
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": {
            "github_token": "configured" if cfg.GITHUB_TOKEN else "missing",
            "generation_api_key": "configured" if cfg.GROQ_API_KEY else "missing",
            "secret_key": "configured" if cfg.SECRET_KEY else "missing",
            "evaluation_url": cfg.EVALUATION_URL or "missing",
            "generation_model": cfg.GENERATION_MODEL,
        },
    }


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Server running on port {settings.PORT}, endpoint: POST /api-endpoint")
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
