"""
Unit Tests for Image Attachments
"""

import pytest

from exam_studio.core.models.images import (
    ImageAttachmentError,
    PendingImage,
    RemoteImage,
    image_mime_type,
    load_pending_image,
)


class TestLoadPendingImage:
    def test_load_when_png_then_size_and_format_read(self, sample_image):
        image = load_pending_image(sample_image)

        assert isinstance(image, PendingImage)
        assert (image.width, image.height) == (200, 100)
        assert image.format == "PNG"
        assert image.filename == "sample.png"
        assert image.preview_uri.startswith("file://")

    def test_load_when_missing_then_raises(self, tmp_path):
        with pytest.raises(ImageAttachmentError, match="not found"):
            load_pending_image(tmp_path / "missing.png")

    def test_load_when_not_an_image_then_raises(self, tmp_path):
        text = tmp_path / "notes.png"
        text.write_text("definitely not a png")

        with pytest.raises(ImageAttachmentError, match="Not a readable image"):
            load_pending_image(text)


def test_mime_type_when_png_then_image_png(sample_image):
    assert image_mime_type(load_pending_image(sample_image)) == "image/png"


def test_remote_image_when_created_then_not_pending():
    image = RemoteImage("https://cdn.test/a.png")
    assert not image.is_pending
    assert image.preview_uri == "https://cdn.test/a.png"
