from flask import Blueprint, current_app, jsonify, request

from ..decorators import error_response, require_operator
from ..errors import CounterPosError, ValidationError
from ..time_utils import parse_iso_date


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/daily")
@require_operator
def daily_report():
    raw_date = request.args.get("date")
    try:
        try:
            report_date = parse_iso_date(raw_date)
        except ValueError:
            raise ValidationError("date must be YYYY-MM-DD", details={"field": "date", "value": raw_date})

        aggregate = current_app.extensions["counterpos"].reporting.daily(report_date)
        return jsonify({"report": aggregate.to_dict()}), 200

    except CounterPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to build daily report")
        return jsonify({"error": "Internal server error"}), 500
