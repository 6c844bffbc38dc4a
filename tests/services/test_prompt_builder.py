"""Tests for generation prompt assembly."""

from agentsquare.services.prompt_builder import build_generation_messages


def test_text_only_user_entry_is_plain_string():
    """Without images the user content is the text itself."""
    messages = build_generation_messages("persona", "draw a fox")
    assert messages == [
        {"role": "system", "content": "persona"},
        {"role": "user", "content": "draw a fox"},
    ]


def test_images_follow_text_in_input_order():
    """Reference images become image_url parts, order preserved."""
    images = ["https://r.test/z.png", "data:image/png;base64,AAAA", "https://r.test/a.png"]
    user = build_generation_messages("persona", "mix these", images)[1]
    assert user["content"][0] == {"type": "text", "text": "mix these"}
    assert [p["image_url"]["url"] for p in user["content"][1:]] == images


def test_system_prompt_verbatim_and_text_untouched():
    """Neither the persona nor the user text is rewritten."""
    messages = build_generation_messages("  multi\nline persona  ", "  spaced  ", [])
    assert messages[0]["content"] == "  multi\nline persona  "
    assert messages[1]["content"] == "  spaced  "
