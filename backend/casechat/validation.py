"""Input checks shared by the login/signup flows and the local signup route.

Each check raises :class:`FormValidationError` carrying the message shown to
the user; nothing here touches the network.
"""

import re
from typing import Any, Dict, Mapping, Optional

from .errors import FormValidationError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8
MIN_AGE = 13

CASE_TYPES = (
    "Consumer complaint",
    "Contract dispute",
    "Property dispute",
)

SIGNUP_FIELDS = ("name", "email", "password", "confirmPassword", "age", "gender")


def parse_age(value: Any) -> Optional[int]:
    """Leading-integer parse: ``"21 years"`` -> 21, ``"abc"`` -> None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    match = re.match(r"\s*([+-]?\d+)", str(value))
    return int(match.group(1)) if match else None


def validate_login(email: str, password: str) -> None:
    if not email or not password:
        raise FormValidationError("Please fill in all fields")
    if not EMAIL_RE.match(email):
        raise FormValidationError("Please enter a valid email")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise FormValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


def _check_length(password: str, confirm: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise FormValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


def _check_match(password: str, confirm: str) -> None:
    if password != confirm:
        raise FormValidationError("Passwords do not match")


def validate_signup(
    form: Mapping[str, Any],
    check_email: bool = True,
    match_before_length: bool = False,
) -> Dict[str, Any]:
    """Validate a signup form and build the backend payload.

    ``form`` uses the UI field names (``password``/``confirmPassword``); the
    returned payload uses the backend's (``createPassword``) with ``age`` as
    an int. The signup screen checks password length before the confirmation
    match; the local ``/api/signup`` route checks the match first.
    """
    if any(not form.get(name) for name in SIGNUP_FIELDS):
        raise FormValidationError("Please fill in all fields")
    email = str(form["email"])
    password = str(form["password"])
    confirm = str(form["confirmPassword"])
    if check_email and not EMAIL_RE.match(email):
        raise FormValidationError("Please enter a valid email")
    checks = [_check_length, _check_match]
    if match_before_length:
        checks.reverse()
    for check in checks:
        check(password, confirm)
    age = parse_age(form["age"])
    if age is None or age < MIN_AGE:
        raise FormValidationError(f"You must be at least {MIN_AGE} years old")
    return {
        "name": form["name"],
        "email": email,
        "createPassword": password,
        "confirmPassword": confirm,
        "age": age,
        "gender": form["gender"],
    }


def validate_new_case(name: str, case_type: str) -> None:
    if not name or not name.strip():
        raise FormValidationError("Case name is required")
    if not case_type:
        raise FormValidationError("Case type is required")
    if case_type not in CASE_TYPES:
        raise FormValidationError(f"Unknown case type: {case_type}")
