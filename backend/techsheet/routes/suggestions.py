# Overview: Flask API route for field autocomplete suggestions.

from flask import Blueprint, request

from ..services import suggestion_service
from ..decorators import require_auth, require_permission

suggestions_bp = Blueprint("suggestions", __name__, url_prefix="/api/suggestions")


@suggestions_bp.get("")
@require_auth
@require_permission("VIEW_SUGGESTIONS")
def list_suggestions():
    """
    Previously entered values for a datasheet field.

    Query params:
    - field: str (required) - product or detail field name
    - q: str - substring to match; shorter than 3 characters returns []
    """
    field = request.args.get("field")
    if not field:
        return {"error": "field is required"}, 400
    if field not in suggestion_service.SUGGESTABLE_FIELDS:
        return {"error": f"Unknown field: {field}"}, 400

    values = suggestion_service.suggest(field, request.args.get("q"))
    return {"field": field, "suggestions": values}
