"""
AWS Lambda handler for the Commission Engine API.

This is the production entry point for the stateless endpoints (calculation
and rule validation). For local development, use main.py (Flask app) instead.
"""

import json
import logging

from commission_engine import CommissionEngine
from commission_engine.config import EngineSettings
from commission_engine.exceptions import CommissionEngineError
from commission_engine.models import CommissionRule

settings = EngineSettings.from_env()

# Configure logging
logger = logging.getLogger()
logger.setLevel(settings.log_level)

# Initialize engine (reused across warm invocations)
engine = CommissionEngine(settings=settings)

# CORS headers for API Gateway
CORS_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
}


def _response(status_code, payload):
    return {"statusCode": status_code, "headers": CORS_HEADERS, "body": json.dumps(payload)}


def lambda_handler(event, context):
    """
    Main Lambda entry point.

    Handles API Gateway events for:
    - GET /health
    - GET /api
    - POST /calculate
    - POST /rules/validate
    - OPTIONS (CORS preflight)
    """
    # Handle CORS preflight
    http_method = event.get("httpMethod") or event.get("requestContext", {}).get("http", {}).get("method", "")
    if http_method == "OPTIONS":
        return {"statusCode": 200, "headers": CORS_HEADERS, "body": ""}

    # Get path (supports both REST API and HTTP API formats)
    path = event.get("path") or event.get("rawPath", "")

    # Route to appropriate handler
    if path == "/health" and http_method == "GET":
        return handle_health()
    elif path == "/calculate" and http_method == "POST":
        return handle_calculate(event)
    elif path == "/rules/validate" and http_method == "POST":
        return handle_validate_rule(event)
    elif path == "/api" and http_method == "GET":
        return handle_api_info()
    else:
        return _response(404, {"error": "Not found", "path": path})


def handle_health():
    """Health check endpoint."""
    return _response(200, {"status": "healthy", "environment": settings.environment})


def handle_api_info():
    """API information endpoint."""
    return _response(
        200,
        {
            "status": "ok",
            "message": "Commission Engine API",
            "version": "1.0",
            "environment": settings.environment,
            "runtime": "AWS Lambda",
            "endpoints": {
                "calculate": "/calculate [POST]",
                "validate_rule": "/rules/validate [POST]",
                "health": "/health [GET]",
            },
        },
    )


def _parse_body(event):
    """Return the decoded JSON body, or None when it is empty."""
    body = event.get("body", "")
    if not isinstance(body, str):
        return body
    if not body:
        return None
    # Handle base64 encoded body (API Gateway)
    if event.get("isBase64Encoded"):
        import base64

        body = base64.b64decode(body).decode("utf-8")
    return json.loads(body)


def handle_calculate(event):
    """Run a deal through the rule pipeline."""
    try:
        input_data = _parse_body(event)
        if not input_data:
            return _response(400, {"error": "No input data provided", "status": "failed"})

        deal_id = (input_data.get("deal") or {}).get("id", "Unknown")
        logger.info(f"Calculating commission for deal: {deal_id}")

        result = engine.calculator.calculate_from_dict(input_data)

        logger.info(f"Commission calculated for deal {deal_id}: {result['total_commission']}")

        return _response(200, result)

    except json.JSONDecodeError as e:
        logger.error(f"JSON parse error: {str(e)}")
        return _response(400, {"error": f"Invalid JSON: {str(e)}", "status": "failed"})

    except (ValueError, KeyError, TypeError) as e:
        # Validation errors from engine (missing fields, invalid types, etc.)
        logger.error(f"Validation error: {str(e)}")
        return _response(400, {"error": f"Validation error: {str(e)}", "status": "validation_failed"})

    except Exception as e:
        # Unexpected errors - log details but return generic message to avoid information disclosure
        logger.error(f"Unexpected processing error: {str(e)}", exc_info=True)
        return _response(500, {"error": "An unexpected error occurred during processing", "status": "failed"})


def handle_validate_rule(event):
    """Validate a rule definition."""
    try:
        input_data = _parse_body(event)
        if not input_data:
            return _response(400, {"error": "No input data provided", "status": "failed"})

        rule = CommissionRule.from_dict(input_data)
        engine.validate_rule(rule)
        return _response(200, {"valid": True, "rule_type": rule.rule_type})

    except json.JSONDecodeError as e:
        return _response(400, {"error": f"Invalid JSON: {str(e)}", "status": "failed"})

    except CommissionEngineError as e:
        logger.info(f"Rule rejected: {str(e)}")
        return _response(400, {"error": str(e), "code": e.code, "valid": False, "status": "validation_failed"})

    except (ValueError, KeyError, TypeError) as e:
        return _response(400, {"error": f"Validation error: {str(e)}", "valid": False, "status": "validation_failed"})
