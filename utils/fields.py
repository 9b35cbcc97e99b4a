import logging
from typing import Dict, Iterable, List, Optional

from email_validator import validate_email, EmailNotValidError
from pydantic import ValidationError as SchemaError

import config
from schemas.event import FieldDefinition, FieldType
from utils.exceptions import ValidationError

logger = logging.getLogger(__name__)


def parse_fields_schema(raw: Optional[Iterable[dict]]) -> List[FieldDefinition]:
    """Loads the stored JSON schema, skipping entries that no longer parse."""
    fields = []
    for entry in raw or []:
        try:
            fields.append(FieldDefinition.model_validate(entry))
        except SchemaError:
            logger.warning("Ignoring malformed field definition: %r", entry)
    return fields


def public_fields(fields: List[FieldDefinition]) -> List[FieldDefinition]:
    """The live form only renders required fields, in schema order."""
    return [field for field in fields if field.required]


def is_valid_email(value: str) -> bool:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def collect_field_errors(fields: List[FieldDefinition], payload: Dict[str, str]) -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    for field in fields:
        value = (payload.get(field.id) or "").strip()
        if field.required and not value:
            errors.setdefault(field.id, []).append(f"{field.label} is required")
        elif value and field.type == FieldType.EMAIL and not is_valid_email(value):
            errors.setdefault(field.id, []).append("Invalid email address")
    return errors


def signature_errors(signature: str) -> List[str]:
    if not signature or len(signature) < config.SIGNATURE_MIN_LENGTH:
        return ["Signature is required"]
    if not signature.startswith("data:image/"):
        return ["Signature must be an image data URI"]
    return []


def validate_submission(fields: List[FieldDefinition], payload: Dict[str, str], signature: str) -> Dict[str, str]:
    """
    Checks a submitted payload against the field schema, and the signature.

    Keys outside the schema are tolerated and returned untouched.
    Raises ValidationError indexed by field id, with signature problems
    under "signature".
    """
    errors = collect_field_errors(fields, payload)
    problems = signature_errors(signature)
    if problems:
        errors["signature"] = problems
    if errors:
        raise ValidationError(errors)
    return payload
