from datetime import date
import logging
import os

from flask import Flask, request, jsonify
from flask_cors import CORS

from commission_engine import CalculationContext, CommissionEngine, CommissionRule, Deal
from commission_engine.config import EngineSettings
from commission_engine.exceptions import (
    BatchValidationError,
    CommissionEngineError,
    CommissionNotFoundError,
    ConcurrentModificationError,
)
from commission_engine.models import ACTION_ADJUST_AND_APPROVE
from commission_engine.output import OutputBuilder
from commission_engine.templates import build_rules, list_templates

settings = EngineSettings.from_env()

# Configure logging
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = Flask(__name__)

# Enable CORS for all routes
CORS(app)

# Initialize the engine (in-memory store for local development)
engine = CommissionEngine(settings=settings)
output = OutputBuilder()


def _error(message, status_code, status="failed", **extra):
    return jsonify({"error": message, "status": status, **extra}), status_code


def _engine_error(e: CommissionEngineError):
    """Map typed engine errors to HTTP responses."""
    if isinstance(e, CommissionNotFoundError):
        return _error(str(e), 404, code=e.code)
    if isinstance(e, ConcurrentModificationError):
        return _error(str(e), 409, code=e.code)
    if isinstance(e, BatchValidationError):
        return _error(str(e), 400, status="validation_failed", code=e.code, ineligible_ids=e.ineligible_ids)
    return _error(str(e), 400, status="validation_failed", code=e.code)


@app.errorhandler(CommissionEngineError)
def handle_engine_error(e):
    logger.error(f"Engine error: {str(e)}")
    return _engine_error(e)


@app.route("/api", methods=["GET"])
def api_info():
    """API information endpoint"""
    return jsonify({
        "status": "ok",
        "message": "Commission Engine API",
        "version": "1.0",
        "environment": settings.environment,
        "endpoints": {
            "calculate": "/calculate [POST]",
            "validate_rule": "/rules/validate [POST]",
            "test_rules": "/rules/test [POST]",
            "templates": "/rule-templates [GET]",
            "action": "/commissions/<id>/action [POST]",
            "bulk_action": "/commissions/bulk-action [POST]",
            "history": "/commissions/<id>/history [GET]",
            "health": "/health [GET]"
        }
    }), 200


@app.route("/health", methods=["GET"])
def health():
    """Health check for monitoring"""
    return jsonify({"status": "healthy"}), 200


@app.route("/calculate", methods=["POST"])
def calculate():
    """
    Calculate a deal's commission. With "record": true the result is stored
    as a new commission in 'calculated' status.
    """
    try:
        input_data = request.get_json(force=True, silent=True)

        if not input_data:
            return _error("No input data provided", 400)

        deal = Deal.from_dict(input_data.get("deal") or {})
        rules = [CommissionRule.from_dict(r) for r in input_data.get("rules") or []]
        context = CalculationContext.from_dict(input_data.get("context"))

        logger.info(f"Calculating commission for deal: {deal.id or deal.name or 'Unknown'}")
        result = engine.calculate_commission(deal, rules, context)
        response = output.calculation(result)

        if input_data.get("record"):
            record = engine.record_calculation(deal, result, input_data.get("actor_id"), input_data.get("target"))
            response["commission"] = output.record(record)

        return jsonify(response), 200

    except CommissionEngineError:
        raise

    except (ValueError, KeyError, TypeError) as e:
        logger.error(f"Validation error: {str(e)}")
        return _error(str(e), 400, status="validation_failed")


@app.route("/rules/validate", methods=["POST"])
def validate_rule():
    """Validate a rule definition before it is saved."""
    input_data = request.get_json(force=True, silent=True)
    if not input_data:
        return _error("No input data provided", 400)
    try:
        rule = CommissionRule.from_dict(input_data)
    except (ValueError, KeyError, TypeError) as e:
        return _error(f"Validation error: {str(e)}", 400, status="validation_failed")

    engine.validate_rule(rule)
    return jsonify({"valid": True, "rule_type": rule.rule_type}), 200


@app.route("/rules/test", methods=["POST"])
def preview_rules():
    """Run rules against a sample deal without storing anything."""
    input_data = request.get_json(force=True, silent=True) or {}
    deal_data = input_data.get("deal")
    if not deal_data or not deal_data.get("amount"):
        return _error("Deal data required for testing", 400)

    try:
        deal = Deal.from_dict(deal_data)
        rules = [CommissionRule.from_dict(r) for r in input_data.get("rules") or []]
        context = CalculationContext.from_dict({
            "userSalesTotal": deal_data.get("user_sales_total", 0),
            "attainmentPercentage": deal_data.get("attainment_percentage", 0),
            **(input_data.get("context") or {}),
        })
    except (ValueError, KeyError, TypeError) as e:
        return _error(f"Validation error: {str(e)}", 400, status="validation_failed")

    preview = engine.calculator.preview(deal, rules, context)
    return jsonify({"success": True, **preview}), 200


@app.route("/rule-templates", methods=["GET"])
def rule_templates():
    templates = list_templates()
    return jsonify({"templates": templates, "total": len(templates)}), 200


@app.route("/rule-templates/<template_type>", methods=["POST"])
def instantiate_template(template_type):
    """Expand a template into rule definitions (not stored)."""
    try:
        rules = build_rules(template_type, date.today())
    except ValueError as e:
        return _error(str(e), 400)
    return jsonify({
        "rules": [output.rule(r) for r in rules],
        "message": f"Created {len(rules)} commission rules from template",
    }), 200


@app.route("/commissions/<commission_id>/action", methods=["POST"])
def commission_action(commission_id):
    """Apply an approval action to one commission."""
    input_data = request.get_json(force=True, silent=True) or {}
    action = input_data.get("action")
    actor_id = input_data.get("actor_id")
    if not action or not actor_id:
        return _error("action and actor_id are required", 400, status="validation_failed")

    if action == ACTION_ADJUST_AND_APPROVE:
        if input_data.get("adjustment_amount") is None:
            return _error("adjustment_amount is required for adjust_and_approve", 400, status="validation_failed")
        updated = engine.process_adjust_and_approve(
            commission_id,
            input_data["adjustment_amount"],
            input_data.get("adjustment_reason"),
            actor_id,
        )
    else:
        updated = engine.process_approval(
            commission_id,
            action,
            actor_id,
            input_data.get("notes"),
            input_data.get("payment_reference"),
        )

    return jsonify({
        "success": True,
        "commission": output.record(updated),
        "message": f"Commission {action} successful"
    }), 200


@app.route("/commissions/bulk-action", methods=["POST"])
def bulk_action():
    """Approve or reject many commissions at once."""
    input_data = request.get_json(force=True, silent=True) or {}
    commission_ids = input_data.get("commission_ids")
    if not isinstance(commission_ids, list) or not commission_ids:
        return _error("commission_ids must be a non-empty list", 400, status="validation_failed")

    result = engine.process_bulk_approval(
        commission_ids,
        input_data.get("action"),
        input_data.get("actor_id"),
        input_data.get("notes"),
        input_data.get("company_id"),
    )
    return jsonify(output.batch(result)), 200


@app.route("/commissions/<commission_id>/history", methods=["GET"])
def commission_history(commission_id):
    events = engine.approvals.get_history(commission_id)
    return jsonify({
        "commission_id": commission_id,
        "history": [output.event(e) for e in events],
    }), 200


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port, debug=False)
