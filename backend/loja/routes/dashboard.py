# Overview: Flask API route for the dashboard summary.

from flask import Blueprint, request

from ..decorators import json_errors
from ..services import dashboard_service
from ..validation import parse_date

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("")
@json_errors
def dashboard_route():
    """
    Query params:
    - today: YYYY-MM-DD (optional) - reference date, defaults to the server date
    """
    raw = request.args.get("today")
    today = parse_date(raw, "today") if raw else None
    return dashboard_service.get_dashboard(today=today)
