"""Select the generation pathway for a user turn."""

from __future__ import annotations

from enum import Enum

from models.request_config import IMAGE_EDIT, IMAGE_GENERATION, get_model_profile
from services.chat.errors import MissingEditImageError


class Pathway(str, Enum):
    IMAGE_EDIT = "image_edit"
    IMAGE_GENERATION = "image_generation"
    STREAMING_CHAT = "streaming_chat"


def select_pathway(model: str, *, has_attachment: bool, has_prior_generated_image: bool) -> Pathway:
    """Return the single pathway that handles a turn.

    Raises:
        MissingEditImageError: The image-edit model was selected with neither a
            fresh attachment nor a previously generated image.
    """
    kind = get_model_profile(model).kind
    if kind == IMAGE_EDIT:
        if has_attachment or has_prior_generated_image:
            return Pathway.IMAGE_EDIT
        raise MissingEditImageError("Attach an image to edit, or generate one first.")
    if kind == IMAGE_GENERATION:
        return Pathway.IMAGE_GENERATION
    return Pathway.STREAMING_CHAT
