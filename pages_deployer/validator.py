# validator.py
import hmac
from typing import Any

import pydantic

from .errors import AuthorizationError, ValidationError
from .models import GenerationRequest

REQUIRED_FIELDS = ("email", "task", "round", "nonce", "secret")


def verify_secret(secret_from_request: Any, expected_secret: str) -> bool:
    if not expected_secret or not isinstance(secret_from_request, str):
        return False
    return hmac.compare_digest(secret_from_request.encode("utf-8"), expected_secret.encode("utf-8"))


def validate_request(body: Any, expected_secret: str) -> GenerationRequest:
    """Check required fields and the shared secret.

    Raises ValidationError for a malformed body or missing fields and
    AuthorizationError on a secret mismatch. Makes no external calls.
    """
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")

    missing = [name for name in REQUIRED_FIELDS if not body.get(name)]
    if missing:
        raise ValidationError("Missing required fields", details={"missing": missing})

    if not verify_secret(body["secret"], expected_secret):
        raise AuthorizationError("Invalid secret")

    fields = {name: body[name] for name in REQUIRED_FIELDS}
    fields["brief"] = body.get("brief") or ""
    fields["attachments"] = body.get("attachments") or []
    try:
        return GenerationRequest(**fields)
    except pydantic.ValidationError as e:
        raise ValidationError("Invalid field types", details=e.errors(include_url=False))
