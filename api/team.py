from __future__ import annotations

from flask import Blueprint, request, g, abort
from sqlalchemy import or_

from api.responses import pagination_meta, parse_pagination, success_response
from models.schemas.user import MemberCreateSchema, MemberUpdateSchema, TeamMemberOutSchema
from models.user import User
from services import current_services
from utils.decorators import jwt_required, roles_required
from utils.errors import Forbidden

bp = Blueprint("team", __name__)

member_create_schema = MemberCreateSchema()
member_update_schema = MemberUpdateSchema()
member_out_schema = TeamMemberOutSchema()
members_out_schema = TeamMemberOutSchema(many=True)


def _tenant_member(member_id: str) -> User:
    member = (
        current_services().storage.get_session()
        .query(User)
        .filter(User.id == member_id, User.company_id == g.current_user.company_id)
        .first()
    )
    if not member:
        abort(404, description="Team member not found")
    return member


@bp.get("")
@jwt_required()
def list_members():
    """
    List team members of the caller's company.
    ---
    tags:
      - Team
    security:
      - Bearer: []
    parameters:
      - { in: query, name: page, type: integer }
      - { in: query, name: limit, type: integer }
      - { in: query, name: q, type: string, description: "search names, email, position" }
    responses:
      200: { description: OK }
    """
    page, limit = parse_pagination()
    query = current_services().storage.get_session().query(User).filter(
        User.company_id == g.current_user.company_id
    )
    q = (request.args.get("q") or "").strip()
    if q:
        like = f"%{q}%"
        query = query.filter(
            or_(
                User.first_name.ilike(like),
                User.last_name.ilike(like),
                User.email.ilike(like),
                User.position.ilike(like),
            )
        )
    total = query.count()
    rows = (
        query.order_by(User.first_name.asc(), User.last_name.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return success_response(
        "Team members retrieved successfully",
        {**pagination_meta(total, page, limit), "members": members_out_schema.dump(rows)},
    )


@bp.get("/<member_id>")
@jwt_required()
def get_member(member_id: str):
    """
    Team member details.
    ---
    tags:
      - Team
    security:
      - Bearer: []
    parameters:
      - { in: path, name: member_id, type: string, required: true }
    responses:
      200: { description: OK }
      404: { description: Not found }
    """
    return success_response("Team member retrieved successfully", member_out_schema.dump(_tenant_member(member_id)))


@bp.post("")
@roles_required(["admin"])
def create_member():
    """
    Admin-only: add a user to the caller's company.
    ---
    tags:
      - Team
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
            password: { type: string }
            first_name: { type: string }
            last_name: { type: string }
            role: { type: string, enum: [admin, recruiter, interviewer, hiring_manager] }
            position: { type: string }
            department: { type: string }
    responses:
      201: { description: Created }
      403: { description: Not an admin }
      409: { description: Email already registered }
    """
    data = member_create_schema.load(request.get_json(silent=True) or {})
    services = current_services()
    actor = g.current_user
    profile = {k: data[k] for k in ("position", "department") if data.get(k)}
    identity = services.sessions.create_member(
        actor.company_id,
        data["email"],
        data["password"],
        data["first_name"],
        data["last_name"],
        data["role"],
        **profile,
    )
    services.activity.record(
        actor.id, actor.company_id, "created", "user", identity.id, f"Added team member {identity.email}"
    )
    return success_response("Team member created successfully", {"member": identity.to_dict()}, 201)


@bp.put("/<member_id>")
@jwt_required()
def update_member(member_id: str):
    """
    Update a team member. Changing role or active flag is admin-only.
    ---
    tags:
      - Team
    security:
      - Bearer: []
    parameters:
      - { in: path, name: member_id, type: string, required: true }
      - in: body
        name: body
        schema:
          type: object
          properties:
            role: { type: string }
            department: { type: string }
            position: { type: string }
            is_active: { type: boolean }
    responses:
      200: { description: OK }
      403: { description: Only admins can change roles }
      404: { description: Not found }
    """
    data = member_update_schema.load(request.get_json(silent=True) or {})
    actor = g.current_user
    if ("role" in data or "is_active" in data) and actor.role != "admin":
        raise Forbidden("Only admins can change roles")
    if data.get("is_active") is False and member_id == actor.id:
        abort(400, description="You cannot deactivate your own account")

    services = current_services()
    member = _tenant_member(member_id)
    for key, value in data.items():
        setattr(member, key, value)
    services.storage.new(member)
    services.storage.save()
    if data.get("is_active") is False:
        # a deactivated account keeps no live sessions
        services.store.clear_sessions(member.id)
    services.activity.record(
        actor.id, actor.company_id, "updated", "user", member.id, "Updated team member", details=data
    )
    return success_response("Team member updated successfully", member_out_schema.dump(member))


@bp.delete("/<member_id>")
@roles_required(["admin"])
def delete_member(member_id: str):
    """
    Admin-only: remove a team member (never yourself).
    ---
    tags:
      - Team
    security:
      - Bearer: []
    parameters:
      - { in: path, name: member_id, type: string, required: true }
    responses:
      200: { description: OK }
      400: { description: Cannot delete own account }
      404: { description: Not found }
    """
    actor = g.current_user
    if member_id == actor.id:
        abort(400, description="You cannot delete your own account")
    services = current_services()
    member = _tenant_member(member_id)
    services.storage.delete(member)
    services.storage.save()
    services.activity.record(
        actor.id, actor.company_id, "deleted", "user", member_id, "Removed team member"
    )
    return success_response("Team member removed successfully")
