"""
Module: images

Purpose:
    Image attachments on questions, options and exam media. An attachment is
    either a local file waiting for upload (PendingImage) or a URL the backend
    already serves (RemoteImage).

Key Classes:
    - PendingImage: Local file, inspected with Pillow on creation
    - RemoteImage: Persisted remote URL
    - ImageAttachmentError: File missing or not a readable image

Key Functions:
    - load_pending_image(path): Inspect a file and build a PendingImage
    - image_mime_type(image): MIME type for multipart uploads

Dependencies:
    - PIL: Format and size probing

Used By:
    - core.models.draft
    - editor.session (attach flows)
    - api.admin_service (multipart files)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Union

from PIL import Image, UnidentifiedImageError


class ImageAttachmentError(Exception):
    """Raised when a file cannot be attached as an image."""
    pass


@dataclass(frozen=True, slots=True)
class PendingImage:
    """
    Local image that has not been uploaded yet.

    Attributes:
        path: Absolute path of the file on disk
        width: Pixel width reported by Pillow
        height: Pixel height reported by Pillow
        format: Pillow format name like "PNG" or "JPEG"
    """

    path: Path
    width: int
    height: int
    format: str

    @property
    def preview_uri(self) -> str:
        """Local preview, shown until the upload succeeds."""
        return self.path.as_uri()

    @property
    def filename(self) -> str:
        return self.path.name

    @property
    def is_pending(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class RemoteImage:
    """Image already stored by the backend."""

    url: str

    @property
    def preview_uri(self) -> str:
        return self.url

    @property
    def is_pending(self) -> bool:
        return False


ImageAttachment = Union[PendingImage, RemoteImage]


def load_pending_image(path: Path | str) -> PendingImage:
    """
    Inspect a local file and wrap it as a PendingImage.

    Args:
        path: Image file on disk

    Returns:
        PendingImage with size and format filled in

    Raises:
        ImageAttachmentError: If the file is missing or not an image
    """
    path = Path(path).expanduser().resolve()
    if not path.is_file():
        raise ImageAttachmentError(f"Image file not found: {path}")

    try:
        with Image.open(path) as img:
            img.verify()
        # verify() leaves the image unusable; reopen for size/format
        with Image.open(path) as img:
            width, height = img.size
            fmt = img.format or "UNKNOWN"
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise ImageAttachmentError(f"Not a readable image: {path.name} ({e})") from e

    return PendingImage(path=path, width=width, height=height, format=fmt)


def image_mime_type(image: PendingImage) -> str:
    """Return the MIME type for a pending image's format."""
    return Image.MIME.get(image.format.upper(), "application/octet-stream")
