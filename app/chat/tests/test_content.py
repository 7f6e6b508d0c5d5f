"""
Tests for the message content union.

parse_content is the single gate between raw client input and the stored
message columns, so each variant's rules are pinned down here.
"""

import pytest

from chat.content import MAX_CONTENT_LENGTH, Attachment, Audio, File, Image, System, Text, parse_content
from core.exceptions import ValidationError

PDF = {"data": "https://cdn.example/notes.pdf", "type": "application/pdf", "name": "notes.pdf", "size": 2048}


class TestParseText:
    def test_text_strips_body(self):
        content = parse_content("text", "  What is x?  ")

        assert content == Text(body="What is x?")
        assert content.storage_fields() == {"content": "What is x?", "attachment": None}

    def test_missing_type_means_text(self):
        assert isinstance(parse_content(None, "hi"), Text)

    def test_type_is_case_insensitive(self):
        assert isinstance(parse_content(" TEXT ", "hi"), Text)

    @pytest.mark.parametrize("body", ["", "   ", None])
    def test_blank_text_is_rejected(self, body):
        """
        Empty text sends are rejected before anything is persisted.

        Why it matters: The gateway must answer with an error and never
        broadcast an empty bubble.
        """
        with pytest.raises(ValidationError) as exc:
            parse_content("text", body)

        assert exc.value.error_code == "EMPTY_MESSAGE"

    def test_text_with_attachment_is_rejected(self):
        with pytest.raises(ValidationError) as exc:
            parse_content("text", "hi", PDF)

        assert exc.value.error_code == "INVALID_ATTACHMENT"

    def test_content_longer_than_limit_is_rejected(self):
        with pytest.raises(ValidationError) as exc:
            parse_content("text", "x" * (MAX_CONTENT_LENGTH + 1))

        assert exc.value.error_code == "CONTENT_TOO_LONG"

    def test_system_variant(self):
        assert parse_content("system", "Room created") == System(body="Room created")


class TestParseAttachments:
    def test_file_keeps_caption_and_attachment(self):
        content = parse_content("file", "Chapter 3 notes", PDF)

        assert isinstance(content, File)
        assert content.caption == "Chapter 3 notes"
        assert content.storage_fields()["attachment"] == {
            "data": "https://cdn.example/notes.pdf",
            "type": "application/pdf",
            "name": "notes.pdf",
            "size": 2048,
        }

    @pytest.mark.parametrize("kind,variant", [("image", Image), ("audio", Audio), ("file", File)])
    def test_attachment_variants(self, kind, variant):
        assert isinstance(parse_content(kind, "", PDF), variant)

    def test_attachment_types_require_attachment(self):
        with pytest.raises(ValidationError) as exc:
            parse_content("image", "look at this")

        assert exc.value.error_code == "ATTACHMENT_REQUIRED"

    def test_unknown_type_is_rejected(self):
        with pytest.raises(ValidationError) as exc:
            parse_content("sticker", "hi")

        assert exc.value.error_code == "INVALID_MESSAGE_TYPE"


class TestAttachment:
    def test_accepts_url_alias_and_defaults_mime_type(self):
        attachment = Attachment.from_payload({"url": "https://cdn.example/a.bin"})

        assert attachment.url == "https://cdn.example/a.bin"
        assert attachment.mime_type == "application/octet-stream"
        assert attachment.size == 0

    @pytest.mark.parametrize(
        "payload",
        [
            "https://cdn.example/a.png",
            {"type": "image/png"},
            {"data": "https://cdn.example/a.png", "size": "big"},
            {"data": "https://cdn.example/a.png", "size": -1},
        ],
    )
    def test_invalid_payloads_are_rejected(self, payload):
        with pytest.raises(ValidationError) as exc:
            Attachment.from_payload(payload)

        assert exc.value.error_code == "INVALID_ATTACHMENT"
