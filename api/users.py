from __future__ import annotations

from flask import Blueprint, request, g, abort

from api.responses import success_response
from models.schemas.activity import ActivityOutSchema
from models.schemas.auth import ChangePasswordSchema
from models.schemas.user import ProfileUpdateSchema, UserOutSchema
from models.user import User, default_preferences
from services import current_services
from utils.decorators import jwt_required

bp = Blueprint("users", __name__)

profile_update_schema = ProfileUpdateSchema()
change_password_schema = ChangePasswordSchema()
user_out_schema = UserOutSchema()
user_list_out_schema = UserOutSchema(many=True)
recent_activities_schema = ActivityOutSchema(many=True)


def _load_self() -> User:
    user = current_services().store.get_user(g.current_user.id)
    if user is None:
        abort(404, description="User not found")
    return user


@bp.get("/users/me")
@jwt_required()
def me():
    """
    Get current user profile.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return success_response("User profile retrieved successfully", {"user": user_out_schema.dump(_load_self())})


@bp.put("/users/me")
@jwt_required()
def update_me():
    """
    Update current user profile.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            first_name: { type: string }
            last_name: { type: string }
            position: { type: string }
            department: { type: string }
            avatar: { type: string }
            phone_number: { type: string }
            location: { type: string }
            bio: { type: string }
            preferences: { type: object }
    responses:
      200:
        description: OK
      422:
        description: Validation error
    """
    data = profile_update_schema.load(request.get_json(silent=True) or {})
    services = current_services()
    user = _load_self()

    preferences = data.pop("preferences", None)
    for key, value in data.items():
        setattr(user, key, value)
    if preferences is not None:
        merged = default_preferences()
        merged.update(user.preferences or {})
        if "notifications" in preferences:
            merged["notifications"] = {**merged.get("notifications", {}), **preferences["notifications"]}
        if "theme" in preferences:
            merged["theme"] = preferences["theme"]
        user.preferences = merged

    services.storage.new(user)
    services.storage.save()
    services.activity.record(
        user.id, user.company_id, "updated", "user", user.id, "Updated profile information"
    )
    return success_response("Profile updated successfully", {"user": user_out_schema.dump(user)})


@bp.put("/users/me/password")
@jwt_required()
def change_password():
    """
    Change password. Every refresh token of the caller is revoked.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            current_password: { type: string }
            new_password: { type: string }
    responses:
      200:
        description: OK
      400:
        description: New password equals the current one
      401:
        description: Current password is incorrect
    """
    data = change_password_schema.load(request.get_json(silent=True) or {})
    current_services().sessions.change_password(
        g.current_user.id, data["current_password"], data["new_password"]
    )
    return success_response("Password changed successfully")


@bp.get("/users/me/stats")
@jwt_required()
def my_stats():
    """
    Activity statistics of the caller: total entries and the five most recent.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    me = g.current_user
    count, recent = current_services().activity.user_summary(me.id, me.company_id)
    return success_response(
        "User statistics retrieved successfully",
        {"activities_count": count, "recent_activities": recent_activities_schema.dump(recent)},
    )


@bp.get("/users")
@jwt_required()
def list_users():
    """
    List users of the caller's company.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200: { description: OK }
    """
    session = current_services().storage.get_session()
    rows = (
        session.query(User)
        .filter(User.company_id == g.current_user.company_id)
        .order_by(User.created_at.desc())
        .all()
    )
    return success_response("Users retrieved successfully", {"users": user_list_out_schema.dump(rows)})


@bp.get("/users/<user_id>")
@jwt_required()
def get_user(user_id: str):
    """
    Get one user of the caller's company.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: path
        name: user_id
        type: string
        required: true
    responses:
      200: { description: OK }
      404: { description: Not found (or another company's user) }
    """
    session = current_services().storage.get_session()
    user = (
        session.query(User)
        .filter(User.id == user_id, User.company_id == g.current_user.company_id)
        .first()
    )
    if not user:
        abort(404, description="User not found")
    return success_response("User retrieved successfully", {"user": user_out_schema.dump(user)})
