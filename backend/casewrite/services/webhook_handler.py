"""
Webhook handling: verify, parse, normalize, hand off.

handle_webhook() never raises for a bad request. Every outcome comes back as
a WebhookOutcome; only the router turns error kinds into HTTP status codes.

Order of checks:
  1. signature (only when a secret is configured for the source)
  2. source type
  3. body parse (UTF-8 JSON object)
  4. normalization
  5. document pipeline
"""

import json
import logging
from typing import Any, Protocol

from pydantic import ValidationError

from casewrite.config import WebhookSecretConfig
from casewrite.models.webhook import (
    IncomingWebhookRequest,
    NormalizedDocumentEvent,
    WebhookErrorKind,
    WebhookOutcome,
    parse_source_type,
)
from casewrite.services.webhook_normalizer import normalize_event
from casewrite.services.webhook_signature import verify_signature

logger = logging.getLogger(__name__)


class EventPipeline(Protocol):
    async def process_event(self, event: NormalizedDocumentEvent) -> dict: ...


def parse_body(raw_body: bytes) -> dict[str, Any]:
    """
    Parse the raw body as a JSON object.

    Raises:
        ValueError: if the body is not UTF-8, not JSON, nested too deeply to
            parse, or not an object.
    """
    try:
        parsed = json.loads(raw_body.decode("utf-8"))
    except UnicodeDecodeError:
        raise ValueError("body is not valid UTF-8")
    except json.JSONDecodeError as e:
        raise ValueError(f"body is not valid JSON ({e.msg})")
    except RecursionError:
        raise ValueError("body is nested too deeply")

    if not isinstance(parsed, dict):
        raise ValueError("body must be a JSON object")
    return parsed


async def handle_webhook(
    request: IncomingWebhookRequest,
    secrets: WebhookSecretConfig,
    pipeline: EventPipeline,
) -> WebhookOutcome:
    """Run one webhook through verification, normalization and the pipeline exactly once."""
    source_type = request.source_type

    secret = secrets.secret_for(source_type)
    if secret and not verify_signature(request.raw_body, request.signature, secret):
        logger.warning(f"Rejected {source_type!r} webhook: invalid signature")
        return WebhookOutcome.failure(
            WebhookErrorKind.INVALID_SIGNATURE, "Invalid webhook signature"
        )

    route = parse_source_type(source_type)
    if route is None:
        logger.warning(f"Rejected webhook with unsupported type {source_type!r}")
        return WebhookOutcome.failure(
            WebhookErrorKind.UNSUPPORTED_SOURCE_TYPE,
            f"Unsupported webhook type: {source_type}",
        )

    try:
        body = parse_body(request.raw_body)
    except ValueError as e:
        logger.warning(f"Rejected {source_type!r} webhook: {e}")
        return WebhookOutcome.failure(
            WebhookErrorKind.MALFORMED_BODY, f"Malformed webhook body: {e}"
        )

    try:
        event = normalize_event(route, body)
    except ValidationError as e:
        logger.warning(f"Rejected {source_type!r} webhook: fields have unexpected types")
        return WebhookOutcome.failure(
            WebhookErrorKind.MALFORMED_BODY,
            f"Malformed webhook body: {e.error_count()} field(s) have unexpected types",
        )
    except Exception as e:
        logger.exception(f"Normalizing {source_type!r} webhook failed")
        return WebhookOutcome.failure(
            WebhookErrorKind.INTERNAL_ERROR,
            f"Failed to handle {source_type} webhook: {e}",
        )

    try:
        result = await pipeline.process_event(event)
    except Exception as e:
        logger.exception(f"Document pipeline failed for {source_type!r} webhook")
        outcome = WebhookOutcome.failure(WebhookErrorKind.DOWNSTREAM_FAILURE, str(e))
        outcome.event = event
        return outcome

    logger.info(f"Accepted {source_type!r} webhook from source {event.source!r}")
    return WebhookOutcome(result=result, event=event)
