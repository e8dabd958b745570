"""HubSpot error translation and schema-missing-field classification.

``is_schema_field_error`` decides whether a failed CRM operation should
trigger the self-healing path (reset, re-provision, retry once). It is the
only place that knows HubSpot's wording, so a change in the API's error
messages is a one-place fix here.

Two detection paths, either is sufficient:

1. Message content, case-insensitive:
   - ``property not found``
   - ``invalid property``
   - ``unknown property``
   - ``property_doesnt_exist`` (HubSpot error code)
   - ``property <name> does not exist`` style sentences. A bare
     ``does not exist`` is NOT enough ("Deal does not exist" is a missing
     record, not a missing field).
2. Structured hint: a non-empty ``property_name`` attribute on the error
   (``HubSpotAPIError`` fills it from ``errors[].context.propertyName``),
   unless the error is a value-validation failure.

Never matched: bare field-name tokens such as ``propertyName``, and value
validation wording (``must be``, ``invalid value``, ``not a valid``,
``INVALID_OPTION`` ...). "Property value must be a string" names a property
that exists and must not cause a reset/retry loop. The value-validation
check runs before the message patterns, so HubSpot bodies such as "option
maybe does not exist for sow_status" stay excluded; only an explicit
``PROPERTY_DOESNT_EXIST`` code outranks it.
"""

import json
import re
from typing import Any

from sow_portal.core.exceptions import HubSpotAPIError

SCHEMA_ERROR_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"property not found"),
    # "invalid property value" is a value error, not a missing field
    re.compile(r"invalid property(?!\s+values?\b)"),
    re.compile(r"unknown property"),
    re.compile(r"property_doesnt_exist"),
    # "Property sow_status does not exist", "properties [a, b] do not exist"
    re.compile(r"\bpropert(?:y|ies)\b[^.;\n]{0,120}?\bdo(?:es)?\s+not\s+exist"),
)

VALUE_VALIDATION_PHRASES: tuple[str, ...] = (
    "must be",
    "invalid value",
    "not a valid",
    "was not one of the allowed options",
)

VALUE_VALIDATION_CODES: frozenset[str] = frozenset(
    {
        "INVALID_OPTION",
        "INVALID_INTEGER",
        "INVALID_LONG",
        "INVALID_DOUBLE",
        "INVALID_DATE",
        "INVALID_DATETIME",
        "INVALID_BOOLEAN",
        "INVALID_EMAIL",
        "INVALID_PHONE_NUMBER",
        "INVALID_TYPE",
    }
)

SCHEMA_ERROR_CODE = "PROPERTY_DOESNT_EXIST"


def is_value_validation_error(error: BaseException | Any) -> bool:
    """True when the error complains about a value, not a missing field."""
    code = getattr(error, "error_code", None)
    if code and str(code).upper() in VALUE_VALIDATION_CODES:
        return True
    message = str(error).lower()
    return any(phrase in message for phrase in VALUE_VALIDATION_PHRASES)


def is_schema_field_error(error: BaseException | Any) -> bool:
    """Classify an operation failure as "remote schema is missing a field".

    Args:
        error: The exception (or any value) raised by the operation.

    Returns:
        True if the self-healing path should run.
    """
    code = getattr(error, "error_code", None)
    if code and str(code).upper() == SCHEMA_ERROR_CODE:
        return True

    # Value errors often quote the property, e.g. "option x does not exist for sow_status"
    if is_value_validation_error(error):
        return False

    message = str(error).lower()
    if any(pattern.search(message) for pattern in SCHEMA_ERROR_PATTERNS):
        return True

    return bool(getattr(error, "property_name", None))

    return False


def _first_error_detail(body: Any) -> tuple[str | None, str | None]:
    """Pull (error_code, property_name) out of a HubSpot error body.

    HubSpot shape::

        {"status": "error", "category": "VALIDATION_ERROR", "message": "...",
         "errors": [{"code": "PROPERTY_DOESNT_EXIST",
                     "context": {"propertyName": ["sow_pin"]}}]}
    """
    if not isinstance(body, dict):
        return None, None

    error_code: str | None = None
    property_name: str | None = None
    for item in body.get("errors") or []:
        if not isinstance(item, dict):
            continue
        code = item.get("code")
        if code and error_code is None:
            error_code = str(code)
        context = item.get("context") or {}
        names = context.get("propertyName") if isinstance(context, dict) else None
        if isinstance(names, list) and names:
            property_name = property_name or str(names[0])
        elif isinstance(names, str) and names:
            property_name = property_name or names
        if code == SCHEMA_ERROR_CODE:
            # The most specific signal wins
            error_code = SCHEMA_ERROR_CODE
    return error_code, property_name


def error_from_result(status: int, error: str | None, body: Any = None) -> HubSpotAPIError:
    """Build a ``HubSpotAPIError`` from a failed gateway result.

    Args:
        status: HTTP status (0 for transport failures).
        error: Normalized error text from the gateway.
        body: Parsed JSON body, if any.

    Returns:
        HubSpotAPIError with category, code and property hints populated.
    """
    if body is None and error:
        try:
            body = json.loads(error)
        except ValueError:
            body = None

    category = body.get("category") if isinstance(body, dict) else None
    error_code, property_name = _first_error_detail(body)

    if status:
        message = f"HubSpot API error: {status} - {error or 'unknown error'}"
    else:
        message = f"HubSpot request failed: {error or 'unknown error'}"

    return HubSpotAPIError(
        message,
        http_status=status,
        category=category,
        error_code=error_code,
        property_name=property_name,
        body=body,
    )
