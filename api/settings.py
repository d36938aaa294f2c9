from __future__ import annotations

from copy import deepcopy

from flask import Blueprint, request, g, abort

from api.responses import success_response
from models.company import Company
from models.schemas.company import (
    CompanyOutSchema,
    CompanyUpdateSchema,
    InterviewPreferencesSchema,
    NotificationPreferencesSchema,
)
from services import current_services
from utils.decorators import jwt_required, roles_required

bp = Blueprint("settings", __name__)

company_out_schema = CompanyOutSchema()
company_update_schema = CompanyUpdateSchema()
interview_preferences_schema = InterviewPreferencesSchema()
notification_preferences_schema = NotificationPreferencesSchema()


def _own_company() -> Company:
    company = current_services().storage.get(Company, g.current_user.company_id)
    if company is None:
        abort(404, description="Company not found")
    return company


def _save_section(company: Company, section: str, values: dict, action: str) -> dict:
    """Merge `values` into one settings section and persist the whole JSON document."""
    settings = company.get_settings()
    current = settings.get(section, {})
    for key, value in values.items():
        if isinstance(value, dict) and isinstance(current.get(key), dict):
            current[key] = {**current[key], **value}
        else:
            current[key] = value
    settings[section] = current
    # JSON columns only notice reassignment, not in-place mutation
    company.settings = deepcopy(settings)

    services = current_services()
    services.storage.new(company)
    services.storage.save()
    services.activity.record(
        g.current_user.id, company.id, "updated", "settings", company.id, action, details={section: values}
    )
    return current


@bp.get("/company")
@jwt_required()
def get_company_settings():
    """
    Company profile and settings of the caller's tenant.
    ---
    tags:
      - Settings
    security:
      - Bearer: []
    responses:
      200: { description: OK }
    """
    return success_response("Company settings retrieved successfully", company_out_schema.dump(_own_company()))


@bp.put("/company")
@roles_required(["admin"])
def update_company_settings():
    """
    Admin-only: update the company profile.
    ---
    tags:
      - Settings
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            name: { type: string }
            description: { type: string }
            logo: { type: string }
            website: { type: string }
            industry: { type: string }
            size: { type: string, enum: ["1-10", "11-50", "51-200", "201-500", "501-1000", "1001-5000", "5000+"] }
            location: { type: string }
    responses:
      200: { description: OK }
      403: { description: Not an admin }
    """
    data = company_update_schema.load(request.get_json(silent=True) or {})
    services = current_services()
    company = _own_company()
    for key, value in data.items():
        setattr(company, key, value)
    services.storage.new(company)
    services.storage.save()
    services.activity.record(
        g.current_user.id, company.id, "updated", "company", company.id, "Updated company settings"
    )
    return success_response("Company settings updated successfully", company_out_schema.dump(company))


@bp.get("/interview-preferences")
@jwt_required()
def get_interview_preferences():
    """
    Default interview duration and location.
    ---
    tags:
      - Settings
    security:
      - Bearer: []
    responses:
      200: { description: OK }
    """
    prefs = _own_company().get_settings()["interview_preferences"]
    return success_response("Interview preferences retrieved successfully", prefs)


@bp.put("/interview-preferences")
@roles_required(["admin", "hiring_manager"])
def update_interview_preferences():
    """
    Update interview defaults (admin or hiring manager).
    ---
    tags:
      - Settings
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            default_duration: { type: integer }
            default_location: { type: string }
    responses:
      200: { description: OK }
      403: { description: Forbidden }
    """
    data = interview_preferences_schema.load(request.get_json(silent=True) or {})
    prefs = _save_section(_own_company(), "interview_preferences", data, "Updated interview preferences")
    return success_response("Interview preferences updated successfully", prefs)


@bp.get("/notification-preferences")
@jwt_required()
def get_notification_preferences():
    """
    Company-wide notification toggles.
    ---
    tags:
      - Settings
    security:
      - Bearer: []
    responses:
      200: { description: OK }
    """
    prefs = _own_company().get_settings()["notification_preferences"]
    return success_response("Notification preferences retrieved successfully", prefs)


@bp.put("/notification-preferences")
@roles_required(["admin"])
def update_notification_preferences():
    """
    Admin-only: update notification toggles.
    ---
    tags:
      - Settings
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email:
              type: object
              properties:
                new_applicant: { type: boolean }
                interview_scheduled: { type: boolean }
                interview_completed: { type: boolean }
    responses:
      200: { description: OK }
      403: { description: Not an admin }
    """
    data = notification_preferences_schema.load(request.get_json(silent=True) or {})
    prefs = _save_section(_own_company(), "notification_preferences", data, "Updated notification preferences")
    return success_response("Notification preferences updated successfully", prefs)
