from flask import Blueprint, request, g, abort

from api.responses import pagination_meta, parse_pagination, success_response
from models.activity import ENTITY_TYPES
from models.schemas.activity import ActivityOutSchema
from services import current_services
from utils.decorators import jwt_required

bp = Blueprint("activities", __name__)

activity_out_schema = ActivityOutSchema()
activities_out_schema = ActivityOutSchema(many=True)


@bp.get("")
@jwt_required()
def list_activities():
    """
    Activity feed of the caller's company, newest first.
    ---
    tags:
      - Activities
    security:
      - Bearer: []
    parameters:
      - { in: query, name: page, type: integer }
      - { in: query, name: limit, type: integer }
      - { in: query, name: entity_type, type: string }
    responses:
      200: { description: OK }
      400: { description: Unknown entity_type }
    """
    page, limit = parse_pagination(default_limit=20)
    entity_type = request.args.get("entity_type") or None
    if entity_type and entity_type not in ENTITY_TYPES:
        abort(400, description=f"entity_type must be one of {', '.join(ENTITY_TYPES)}")
    rows, total = current_services().activity.recent(g.current_user.company_id, page, limit, entity_type=entity_type)
    return success_response(
        "Activities retrieved successfully",
        {**pagination_meta(total, page, limit), "activities": activities_out_schema.dump(rows)},
    )


@bp.get("/<activity_id>")
@jwt_required()
def get_activity(activity_id: str):
    """
    One activity entry of the caller's company.
    ---
    tags:
      - Activities
    security:
      - Bearer: []
    parameters:
      - { in: path, name: activity_id, type: string, required: true }
    responses:
      200: { description: OK }
      404: { description: Not found in this company }
    """
    activity = current_services().activity.get(g.current_user.company_id, activity_id)
    if activity is None:
        abort(404, description="Activity not found")
    return success_response("Activity retrieved successfully", {"activity": activity_out_schema.dump(activity)})
