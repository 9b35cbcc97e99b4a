"""
Public invite flow: view, submit, resubmit and return by email.
"""

import asyncio
import time

import pytest
from sqlalchemy import func, select

import config
import routers.public
import utils.documents
from database import async_session
from models.submission import Submission

VALID_PAYLOAD = {"name": "Yossi Cohen", "guests": "120"}


def count_submissions():
    async def _count():
        async with async_session() as session:
            result = await session.execute(select(func.count()).select_from(Submission))
            return result.scalar_one()

    return asyncio.run(_count())


def owner_invite(client, owner_headers, invite):
    response = client.get(f"/invites/{invite['id']}", headers=owner_headers)
    assert response.status_code == 200
    return response.json()


class TestViewInvite:

    def test_first_view_marks_viewed(self, client, owner_headers, invite):
        response = client.get(f"/invite/{invite['token']}")
        assert response.status_code == 200
        body = response.json()

        assert body["alreadySubmitted"] is False
        assert body["invite"]["customerName"] == "Yossi Cohen"
        assert body["event"]["title"] == "חתונה בגן"
        assert body["event"]["price"] == 1500
        assert body["event"]["businessName"] == "Dana Events"
        assert owner_invite(client, owner_headers, invite)["status"] == "VIEWED"

    def test_form_fields_are_the_required_ones(self, client, invite):
        body = client.get(f"/invite/{invite['token']}").json()
        assert [field["id"] for field in body["formFields"]] == ["name", "guests"]
        assert len(body["event"]["fieldsSchema"]) == 3

    def test_invite_overrides_event_values(self, client, owner_headers, invite):
        client.put(f"/invites/{invite['id']}", headers=owner_headers, json={"price": 900, "eventDate": "2025-06-10"})

        event = client.get(f"/invite/{invite['token']}").json()["event"]
        assert event["price"] == 900
        assert event["eventDate"] == "2025-06-10"

    def test_unknown_token_is_not_found(self, client):
        response = client.get("/invite/does-not-exist")
        assert response.status_code == 404
        assert response.json() == {"message": "Not found"}

    def test_view_does_not_regress_signed(self, client, owner_headers, invite, signature_png):
        client.post(f"/invite/{invite['token']}/submit", json={"payload": VALID_PAYLOAD, "signature": signature_png})

        response = client.get(f"/invite/{invite['token']}")
        assert response.json()["alreadySubmitted"] is True
        assert owner_invite(client, owner_headers, invite)["status"] == "SIGNED"


class TestSubmit:

    def test_submit_renders_pdf_and_signs(self, client, owner_headers, invite, signature_png):
        response = client.post(
            f"/invite/{invite['token']}/submit",
            json={"payload": VALID_PAYLOAD, "signature": signature_png},
        )
        assert response.status_code == 200, response.text
        body = response.json()

        assert body["message"] == "Form submitted successfully"
        assert body["ownerEmail"] == "owner@example.com"
        assert body["pdfUrl"].startswith("/uploads/signed_")
        assert body["whatsappUrl"].startswith("https://wa.me/972501234567?text=")

        pdf = client.get(body["pdfUrl"])
        assert pdf.status_code == 200
        assert pdf.content.startswith(b"%PDF")
        assert owner_invite(client, owner_headers, invite)["status"] == "SIGNED"

    def test_submit_from_strokes(self, client, invite):
        strokes = [[[10, 10], [40, 30], [80, 20], [120, 60]], [[30, 70], [90, 75]]]
        response = client.post(f"/invite/{invite['token']}/submit", json={"payload": VALID_PAYLOAD, "strokes": strokes})
        assert response.status_code == 200, response.text
        assert response.json()["pdfUrl"]

    def test_resubmit_overwrites_single_submission(self, client, owner_headers, invite, signature_png):
        first = client.post(f"/invite/{invite['token']}/submit", json={"payload": VALID_PAYLOAD, "signature": signature_png})
        assert first.status_code == 200
        before = client.get(f"/invites/{invite['id']}/submission", headers=owner_headers).json()

        second = client.post(
            f"/invite/{invite['token']}/submit",
            json={"payload": {"name": "Yossi C.", "guests": "80"}, "strokes": [[[5, 5], [150, 100]]]},
        )
        assert second.status_code == 200
        after = client.get(f"/invites/{invite['id']}/submission", headers=owner_headers).json()

        assert count_submissions() == 1
        assert after["payload"] == {"name": "Yossi C.", "guests": "80"}
        assert after["signaturePng"] != before["signaturePng"]
        assert after["submittedAt"] >= before["submittedAt"]
        assert after["pdfUrl"] != before["pdfUrl"]
        assert owner_invite(client, owner_headers, invite)["status"] == "SIGNED"

    def test_missing_required_field(self, client, invite, signature_png):
        response = client.post(
            f"/invite/{invite['token']}/submit",
            json={"payload": {"name": "Yossi Cohen", "guests": "  "}, "signature": signature_png},
        )
        assert response.status_code == 400
        assert response.json()["errors"] == {"guests": ["מספר אורחים is required"]}
        assert count_submissions() == 0

    def test_invalid_email_rejected_blank_email_accepted(self, client, invite, signature_png):
        bad = client.post(
            f"/invite/{invite['token']}/submit",
            json={"payload": dict(VALID_PAYLOAD, email="not-an-email"), "signature": signature_png},
        )
        assert bad.status_code == 400
        assert "email" in bad.json()["errors"]

        good = client.post(
            f"/invite/{invite['token']}/submit",
            json={"payload": dict(VALID_PAYLOAD, email=""), "signature": signature_png},
        )
        assert good.status_code == 200

    def test_signature_required(self, client, invite):
        response = client.post(f"/invite/{invite['token']}/submit", json={"payload": VALID_PAYLOAD})
        assert response.status_code == 400
        assert "signature" in response.json()["errors"]

    def test_unreadable_signature_still_stores_submission(self, client, owner_headers, invite):
        broken = "data:image/png;base64," + "A" * 200
        response = client.post(f"/invite/{invite['token']}/submit", json={"payload": VALID_PAYLOAD, "signature": broken})

        assert response.status_code == 200
        assert response.json()["pdfUrl"] is None
        assert count_submissions() == 1
        assert owner_invite(client, owner_headers, invite)["status"] == "SIGNED"

        submission = client.get(f"/invites/{invite['id']}/submission", headers=owner_headers).json()
        assert submission["signedPdfPath"] is None

    def test_unknown_token(self, client, signature_png):
        response = client.post("/invite/nope/submit", json={"payload": VALID_PAYLOAD, "signature": signature_png})
        assert response.status_code == 404
        assert response.json() == {"message": "Not found"}


class TestSendEmail:

    @pytest.fixture
    def sent(self, monkeypatch):
        calls = []

        def fake_send_email(to, subject, html, attachments=None):
            calls.append({"to": to, "subject": subject, "html": html, "attachments": attachments})
            return True

        monkeypatch.setattr(routers.public, "send_email", fake_send_email)
        return calls

    def test_send_marks_returned(self, client, owner_headers, invite, signature_png, sent):
        client.post(f"/invite/{invite['token']}/submit", json={"payload": VALID_PAYLOAD, "signature": signature_png})

        response = client.post(f"/invite/{invite['token']}/send-email", json={"recipientEmail": "office@example.com"})
        assert response.status_code == 200, response.text
        assert owner_invite(client, owner_headers, invite)["status"] == "RETURNED"

        assert len(sent) == 1
        assert sent[0]["to"] == "office@example.com"
        filename, path = sent[0]["attachments"][0]
        assert filename == "signed_document_Yossi_Cohen.pdf"
        assert path.read_bytes().startswith(b"%PDF")

    def test_returned_is_final(self, client, owner_headers, invite, signature_png, sent):
        client.post(f"/invite/{invite['token']}/submit", json={"payload": VALID_PAYLOAD, "signature": signature_png})
        client.post(f"/invite/{invite['token']}/send-email", json={"recipientEmail": "office@example.com"})

        client.get(f"/invite/{invite['token']}")
        resubmit = client.post(f"/invite/{invite['token']}/submit", json={"payload": VALID_PAYLOAD, "signature": signature_png})

        assert resubmit.status_code == 200
        assert owner_invite(client, owner_headers, invite)["status"] == "RETURNED"

    def test_requires_signed_document(self, client, invite, sent):
        response = client.post(f"/invite/{invite['token']}/send-email", json={"recipientEmail": "office@example.com"})
        assert response.status_code == 400
        assert "document" in response.json()["errors"]
        assert sent == []

    def test_rejects_bad_recipient(self, client, invite, sent):
        response = client.post(f"/invite/{invite['token']}/send-email", json={"recipientEmail": "nope"})
        assert response.status_code == 400
        assert "recipientEmail" in response.json()["errors"]


class TestUploads:

    def test_unknown_file(self, client):
        assert client.get("/uploads/signed_1_missing.pdf").status_code == 404

    def test_hidden_file_rejected(self, client):
        assert client.get("/uploads/.env").status_code == 404


class TestRenderedDocument:

    @pytest.fixture
    def rendered(self, monkeypatch):
        documents = []
        real_render = utils.documents.render_document

        def recording_render(data):
            result = real_render(data)
            documents.append(result)
            return result

        monkeypatch.setattr(utils.documents, "render_document", recording_render)
        return documents

    def test_event_location_falls_back_to_template(self, client, invite, signature_png, rendered):
        client.post(f"/invite/{invite['token']}/submit", json={"payload": VALID_PAYLOAD, "signature": signature_png})

        layout = rendered[0].layout
        assert "eventLocation" in layout.row_keys
        row = next(row for row in layout.detail_rows if row.key == "eventLocation")
        assert row.value == "גן האירועים, תל אביב"

    def test_invite_location_wins(self, client, owner_headers, invite, signature_png, rendered):
        client.put(f"/invites/{invite['id']}", headers=owner_headers, json={"eventLocation": "אולם הכרמל"})
        client.post(f"/invite/{invite['token']}/submit", json={"payload": VALID_PAYLOAD, "signature": signature_png})

        row = next(row for row in rendered[0].layout.detail_rows if row.key == "eventLocation")
        assert row.value == "אולם הכרמל"

    def test_timed_out_render_leaves_no_file(self, client, owner_headers, invite, signature_png, monkeypatch, tmp_path):
        real_render = utils.documents.render_document

        def slow_render(data):
            time.sleep(0.5)
            return real_render(data)

        monkeypatch.setattr(utils.documents, "render_document", slow_render)
        monkeypatch.setattr(config, "RENDER_TIMEOUT_SECONDS", 0.05)
        monkeypatch.setattr(config, "UPLOAD_DIR", str(tmp_path))

        response = client.post(f"/invite/{invite['token']}/submit", json={"payload": VALID_PAYLOAD, "signature": signature_png})
        assert response.status_code == 200
        assert response.json()["pdfUrl"] is None

        # let the abandoned render finish
        time.sleep(1.0)
        assert list(tmp_path.glob("signed_*")) == []
        assert owner_invite(client, owner_headers, invite)["status"] == "SIGNED"
