from marshmallow import ValidationError

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128


def norm_email(value):
    return value.strip().lower() if isinstance(value, str) else value


def normalize_email_field(data):
    """pre_load helper: lower-case and strip the 'email' key if present."""
    if isinstance(data, dict) and "email" in data:
        data = dict(data)
        data["email"] = norm_email(data["email"])
    return data


def not_blank(value: str) -> None:
    if value is None or not str(value).strip():
        raise ValidationError("Field cannot be empty.")


def validate_password(value: str) -> None:
    if value is None or len(value) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")
    if len(value) > MAX_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_LENGTH} characters long.")
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        raise ValidationError("Password contains invalid characters.")
