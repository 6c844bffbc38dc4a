"""Builds the chat payload for the image-generation call."""

from typing import Any


def build_generation_messages(
    system_prompt: str, user_text: str, reference_images: list[str] | None = None
) -> list[dict[str, Any]]:
    """Return ``[system, user]`` messages for the generation endpoint.

    The system entry carries the persona prompt verbatim. With reference
    images, the user entry is a multi-part list (text first, then each image
    in input order); without, it is plain text. No validation or rewriting
    happens here.
    """
    messages: list[dict[str, Any]] = [{"role": "system", "content": system_prompt}]
    if reference_images:
        parts: list[dict[str, Any]] = [{"type": "text", "text": user_text}]
        parts.extend(
            {"type": "image_url", "image_url": {"url": image}} for image in reference_images
        )
        messages.append({"role": "user", "content": parts})
    else:
        messages.append({"role": "user", "content": user_text})
    return messages
