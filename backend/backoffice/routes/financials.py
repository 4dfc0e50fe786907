# Overview: Flask API routes for the unified financial calculation; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..services import financial_service
from ..services.financial_service import FAILURE_DETAILS
from ..validation import ValidationError, parse_capital_value, parse_date_window


financials_bp = Blueprint("financials", __name__, url_prefix="/api/financials")


def _error(exc: Exception, status: int, details: str = FAILURE_DETAILS):
    return jsonify({"error": str(exc), "details": details}), status


def _flag(name: str) -> bool:
    return request.args.get(name, "false").lower() == "true"


@financials_bp.route("/unified", methods=["OPTIONS"])
def unified_preflight():
    return current_app.response_class("ok", status=200)


@financials_bp.post("/unified")
def unified_calculation():
    """
    One-shot recomputation.

    Body: {"dateRange": {"from": ISO, "to": ISO} | null, "userId": any}
    Response: the full metrics object plus dateRange echo and calculatedAt.
    """
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        return _error(ValidationError("Invalid JSON payload"), 400, "Invalid request")

    try:
        window = parse_date_window(payload.get("dateRange"))
        report = financial_service.unified_report(
            window=window,
            user_id=payload.get("userId"),
            include_orders=_flag("include_orders"),
        )
        return jsonify(report), 200
    except ValidationError as exc:
        return _error(exc, 400, "Invalid request")
    except Exception as exc:
        current_app.logger.exception("Error in unified financial calculator")
        return _error(exc, 500)


@financials_bp.get("/unified")
def unified_calculation_query():
    """Same as POST /unified with the window given as ?from=&to=."""
    try:
        window = parse_date_window({"from": request.args.get("from"), "to": request.args.get("to")})
        report = financial_service.unified_report(
            window=window,
            user_id=request.args.get("user_id"),
            include_orders=_flag("include_orders"),
        )
        return jsonify(report), 200
    except ValidationError as exc:
        return _error(exc, 400, "Invalid request")
    except Exception as exc:
        current_app.logger.exception("Error in unified financial calculator")
        return _error(exc, 500)


@financials_bp.get("/capital")
def get_capital():
    try:
        capital = financial_service.get_initial_capital()
        return jsonify({"initialCapital": capital}), 200
    except Exception as exc:
        current_app.logger.exception("Failed to read initial capital")
        return _error(exc, 500, "Failed to read initial capital")


@financials_bp.put("/capital")
def update_capital():
    """
    Update initial_capital, then return metrics recomputed from a fresh read.

    Body: {"value": number, "dateRange": {...} | null}
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return _error(ValidationError("Invalid JSON payload"), 400, "Invalid request")

    try:
        value = parse_capital_value(payload.get("value"))
        window = parse_date_window(payload.get("dateRange"))
        report = financial_service.update_capital(value, window=window)
        return jsonify(report), 200
    except ValidationError as exc:
        return _error(exc, 400, "Invalid request")
    except Exception as exc:
        current_app.logger.exception("Failed to update initial capital")
        return _error(exc, 500, "Failed to update initial capital")
