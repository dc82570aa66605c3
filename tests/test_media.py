"""
Tests for guestbook.media.

Tests cover:
- Content type allowlist and extension mapping
- Size ceiling boundaries
- Selection of the upload part from a multipart form
"""

import io

import pytest
from starlette.datastructures import FormData, Headers, UploadFile

from guestbook.errors import MediaRejected
from guestbook.media import (
    ALLOWED_CONTENT_TYPES,
    CONTENT_TYPE_EXTENSIONS,
    MAX_IMAGE_SIZE,
    check_content_type,
    check_size,
    extension_for,
    select_upload_part,
    validate_image,
)


def make_upload(content: bytes = b"data", content_type: str = "image/png", filename: str = "a.png") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


class TestContentType:
    """Test the content type allowlist."""

    @pytest.mark.parametrize("content_type, extension", [
        ("image/jpeg", "jpg"),
        ("image/jpg", "jpg"),
        ("image/png", "png"),
        ("image/webp", "webp"),
        ("IMAGE/PNG", "png"),
        ("image/webp; charset=binary", "webp"),
    ])
    def test_allowed(self, content_type, extension):
        assert check_content_type(content_type) == extension

    @pytest.mark.parametrize("content_type", [
        "image/gif",
        "image/svg+xml",
        "text/plain",
        "application/octet-stream",
        "",
        None,
    ])
    def test_rejected(self, content_type):
        with pytest.raises(MediaRejected) as exc_info:
            check_content_type(content_type)

        assert exc_info.value.reason == "bad_type"
        assert exc_info.value.status_code == 415
        assert exc_info.value.user_message == "❌ Tipo de archivo no permitido"

    def test_exactly_four_allowed_types(self):
        assert ALLOWED_CONTENT_TYPES == {"image/jpeg", "image/jpg", "image/png", "image/webp"}

    def test_extension_map_is_total_over_allowed_types(self):
        assert set(CONTENT_TYPE_EXTENSIONS) == set(ALLOWED_CONTENT_TYPES)
        assert {extension_for(ct) for ct in ALLOWED_CONTENT_TYPES} == {"jpg", "png", "webp"}


class TestSize:
    """Test the 5 MiB ceiling."""

    def test_ceiling_value(self):
        assert MAX_IMAGE_SIZE == 5 * 1024 * 1024

    def test_exactly_at_ceiling_accepted(self):
        check_size(b"\0" * MAX_IMAGE_SIZE)

    def test_one_byte_over_rejected(self):
        with pytest.raises(MediaRejected) as exc_info:
            check_size(b"\0" * (MAX_IMAGE_SIZE + 1))

        assert exc_info.value.reason == "too_large"
        assert exc_info.value.status_code == 413

    def test_custom_limit(self):
        check_size(b"12345", max_size=5)
        with pytest.raises(MediaRejected):
            check_size(b"123456", max_size=5)

    def test_empty_payload_accepted(self):
        check_size(b"")


class TestValidateImage:
    """Test the combined check."""

    def test_returns_payload_and_extension(self):
        validated = validate_image("image/jpeg", b"jpegbytes")

        assert validated.payload == b"jpegbytes"
        assert validated.extension == "jpg"

    def test_type_checked_before_size(self):
        with pytest.raises(MediaRejected) as exc_info:
            validate_image("image/gif", b"\0" * 10, max_size=1)
        assert exc_info.value.reason == "bad_type"


class TestSelectUploadPart:
    """Test picking the 'file' part out of a form."""

    def test_selects_file_part(self):
        upload = make_upload()
        form = FormData([("caption", "hello"), ("file", upload)])

        assert select_upload_part(form) is upload

    def test_other_file_parts_ignored(self):
        wanted = make_upload(filename="wanted.png")
        form = FormData([
            ("avatar", make_upload(content_type="image/gif", filename="x.gif")),
            ("file", wanted),
        ])

        assert select_upload_part(form) is wanted

    def test_first_file_part_wins(self):
        first = make_upload(filename="first.png")
        form = FormData([("file", first), ("file", make_upload(filename="second.png"))])

        assert select_upload_part(form) is first

    @pytest.mark.parametrize("items", [
        [],
        [("avatar", "not used")],
        [("file", "plain text value")],
    ])
    def test_missing_field(self, items):
        form = FormData(items)

        with pytest.raises(MediaRejected) as exc_info:
            select_upload_part(form)

        assert exc_info.value.reason == "missing_field"
        assert exc_info.value.status_code == 400

    def test_missing_field_when_only_other_file_parts(self):
        form = FormData([("avatar", make_upload())])

        with pytest.raises(MediaRejected):
            select_upload_part(form)
