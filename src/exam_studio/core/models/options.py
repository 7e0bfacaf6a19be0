"""
Module: options

Purpose:
    The Option dataclass - one answer choice belonging to a question.

Used By:
    - core.models.questions.Question
    - core.validation
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .ids import EntityId, TemporaryId
from .images import ImageAttachment


@dataclass(frozen=True)
class Option:
    """
    Answer option (immutable).

    Attributes:
        id: Temporary or persisted id
        option_text: English option text
        is_correct: Whether this option is a correct answer
        option_order: 1-based display order within the question
        option_text_hi: Optional Hindi text
        image: Optional pending or remote image
        requires_image: Set by CSV import; cleared by uploading or ignoring

    Example:
        >>> opt = Option.blank(order=1)
        >>> opt.is_correct
        False
    """

    id: EntityId
    option_text: str = ""
    is_correct: bool = False
    option_order: int = 1
    option_text_hi: str = ""
    image: Optional[ImageAttachment] = None
    requires_image: bool = False

    def __post_init__(self) -> None:
        if self.option_order < 1:
            raise ValueError(f"option_order must be >= 1: {self.option_order}")

    @classmethod
    def blank(cls, order: int) -> "Option":
        """Create an empty, incorrect option with a fresh temporary id."""
        return cls(id=TemporaryId.new("option"), option_order=order)

    @property
    def has_image(self) -> bool:
        return self.image is not None

    @property
    def missing_required_image(self) -> bool:
        return self.requires_image and self.image is None
