import pytest

from schemas.event import FieldDefinition
from utils.exceptions import ValidationError
from utils.fields import parse_fields_schema, public_fields, collect_field_errors, signature_errors, validate_submission

FIELDS = [
    FieldDefinition(id="name", label="שם מלא", required=True),
    FieldDefinition(id="email", label="אימייל", type="email"),
    FieldDefinition(id="invoiceEmail", label="מייל לחשבונית", type="email", required=True),
]

SIGNATURE = "data:image/png;base64," + "A" * 120


class TestFieldSchema:

    def test_malformed_entries_are_skipped(self):
        fields = parse_fields_schema([
            {"id": "name", "label": "Name", "required": True},
            {"label": "no id"},
            {"id": "kind", "label": "Kind", "type": "colour"},
        ])
        assert [field.id for field in fields] == ["name"]

    def test_public_fields_keep_required_in_order(self):
        assert [field.id for field in public_fields(FIELDS)] == ["name", "invoiceEmail"]


class TestPayloadValidation:

    def test_required_blank_is_reported_by_id(self):
        errors = collect_field_errors(FIELDS, {"name": "   ", "invoiceEmail": "a@example.com"})
        assert errors == {"name": ["שם מלא is required"]}

    def test_missing_key_counts_as_blank(self):
        errors = collect_field_errors(FIELDS, {"name": "Dana"})
        assert list(errors) == ["invoiceEmail"]

    def test_email_format(self):
        errors = collect_field_errors(FIELDS, {"name": "Dana", "email": "not-an-email", "invoiceEmail": "a@example.com"})
        assert errors == {"email": ["Invalid email address"]}

    def test_optional_blank_email_passes(self):
        payload = {"name": "Dana", "email": "", "invoiceEmail": "a@example.com"}
        assert validate_submission(FIELDS, payload, SIGNATURE) is payload

    def test_extra_keys_tolerated(self):
        payload = {"name": "Dana", "invoiceEmail": "a@example.com", "tableNumber": "7"}
        assert validate_submission(FIELDS, payload, SIGNATURE)["tableNumber"] == "7"

    def test_raises_with_all_errors(self):
        with pytest.raises(ValidationError) as info:
            validate_submission(FIELDS, {"email": "x"}, "")
        assert set(info.value.errors) == {"name", "email", "invoiceEmail", "signature"}
        assert info.value.status_code == 400


class TestSignatureRules:

    def test_missing_or_short(self):
        assert signature_errors("") == ["Signature is required"]
        assert signature_errors("data:image/png;base64,AAAA") == ["Signature is required"]

    def test_must_be_image_data_uri(self):
        assert signature_errors("x" * 200) == ["Signature must be an image data URI"]

    def test_accepted(self):
        assert signature_errors(SIGNATURE) == []
