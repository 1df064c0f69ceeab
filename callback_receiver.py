#!/usr/bin/env python3
"""
Local stand-in for the evaluation server.

Records every deployment callback it receives so a full pipeline run can be
checked end to end without the real evaluator.

Usage:
    python callback_receiver.py

Then point the deployer at it:
    EVALUATION_URL=http://localhost:8001/evaluation-callback
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Dict, List

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse

logger = logging.getLogger("callback_receiver")

app = FastAPI(title="Evaluation Callback Receiver")

callbacks_received: List[Dict] = []

EXAMPLE_PAYLOAD = {
    "email": "student@example.com",
    "task": "demo-task",
    "round": 1,
    "nonce": "nonce-123",
    "repo_url": "https://github.com/user/demo-task-1700000000000",
    "commit_sha": "abc123",
    "pages_url": "https://user.github.io/demo-task-1700000000000/",
}


@app.post("/evaluation-callback")
async def evaluation_callback(request: Request):
    try:
        body = await request.json()
    except ValueError as e:
        logger.warning(f"[CALLBACK] Rejected non-JSON body: {e}")
        return JSONResponse(status_code=400, content={"status": "error", "message": "Body must be JSON"})

    callback_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "body": body,
        "client_ip": request.client.host if request.client else "unknown",
    }
    callbacks_received.append(callback_data)
    logger.info(f"[CALLBACK] Received from {callback_data['client_ip']}: {json.dumps(body)}")

    return JSONResponse(
        status_code=200,
        content={
            "status": "success",
            "message": "Callback received and logged",
            "timestamp": callback_data["timestamp"],
            "data_received": body,
        },
    )


@app.get("/")
async def root():
    """Instructions page."""
    html_content = f"""
    <!DOCTYPE html>
    <html>
    <head><title>Evaluation Callback Receiver</title></head>
    <body style="font-family: Arial, sans-serif; max-width: 900px; margin: 40px auto;">
        <h1>Evaluation Callback Receiver</h1>
        <p>Set <code>EVALUATION_URL=http://localhost:8001/evaluation-callback</code> for the deployer.</p>
        <p>Callbacks received: <strong>{len(callbacks_received)}</strong> (<a href="/callbacks">view all</a>)</p>
        <h3>Expected payload</h3>
        <pre>{json.dumps(EXAMPLE_PAYLOAD, indent=2)}</pre>
    </body>
    </html>
    """
    return HTMLResponse(content=html_content)


@app.get("/callbacks")
async def get_callbacks():
    return {"total_callbacks": len(callbacks_received), "callbacks": callbacks_received}


@app.get("/callbacks/latest")
async def get_latest_callback():
    if not callbacks_received:
        return JSONResponse(status_code=404, content={"message": "No callbacks received yet"})
    return callbacks_received[-1]


@app.get("/clear")
async def clear_callbacks():
    count = len(callbacks_received)
    callbacks_received.clear()
    return {"message": f"Cleared {count} callbacks", "remaining": len(callbacks_received)}


@app.get("/health")
async def health():
    return {"status": "healthy", "callbacks_count": len(callbacks_received)}


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(stream=sys.stdout, level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
    logger.info("Starting callback receiver on http://0.0.0.0:8001")
    uvicorn.run(app, host="0.0.0.0", port=8001)
