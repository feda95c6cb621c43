"""Fixed backend instructions for each transform kind.

Users never edit these; the generation prompt is only ever embedded into the
sticker template.
"""

from __future__ import annotations

from stickify.models import StickerStyle

# ---------------------------------------------------------------------------
# Text removal.
# ---------------------------------------------------------------------------
TEXT_REMOVAL_INSTRUCTION = (
    "Analyze this image and re-generate a high-quality, static version of it without any "
    "text, overlays, watermarks, or captions. The output should be a clean, vibrant "
    "sticker-style image with a transparent or simple background, perfectly optimized for "
    "a Slack emoji. Keep the core character or subject but remove every single piece of "
    "written text."
)

FRAME_TEXT_REMOVAL_INSTRUCTION = (
    "Remove ALL text, captions, watermarks, and overlays from this image. Keep the exact "
    "same scene, characters, colors, and composition. Output a clean version without any "
    "written text. Preserve transparency if present."
)

# ---------------------------------------------------------------------------
# Prompt generation.
# ---------------------------------------------------------------------------
GENERATION_TEMPLATE = (
    "Professional high-quality Slack sticker: {prompt}. Isolated on a white or "
    "transparent-style neutral background, vibrant colors, clear bold outlines, sticker "
    "aesthetic, no text."
)

# ---------------------------------------------------------------------------
# Reimagine styles.
# ---------------------------------------------------------------------------
STYLE_DESCRIPTIONS: dict[StickerStyle, str] = {
    StickerStyle.CARTOON: (
        "vibrant cartoon sticker style with bold outlines, exaggerated features, bright "
        "colors, and clean vector-like appearance"
    ),
    StickerStyle.EMOJI: (
        "simple emoji style with minimal details, round shapes, bold expressions, flat "
        "colors, suitable for small display"
    ),
    StickerStyle.CHIBI: (
        "cute chibi anime style with oversized head, small body, big expressive eyes, "
        "kawaii aesthetic"
    ),
    StickerStyle.MINIMALIST: (
        "minimalist line art sticker with clean simple lines, limited color palette, "
        "modern aesthetic"
    ),
}

REIMAGINE_TEMPLATE = (
    "Create a {style} version of the subject in this image. Keep the same pose, "
    "expression, and essence but reimagine it as a premium sticker design. The result "
    "should have a transparent background and be suitable for use as a chat sticker or "
    "emoji. Make it visually striking and memorable with no text overlays."
)


def text_removal_instruction(*, animated: bool = False) -> str:
    """Instruction for scrubbing text; animated sources get the frame variant."""
    return FRAME_TEXT_REMOVAL_INSTRUCTION if animated else TEXT_REMOVAL_INSTRUCTION


def generation_instruction(prompt: str) -> str:
    return GENERATION_TEMPLATE.format(prompt=prompt.strip())


def reimagine_instruction(style: StickerStyle) -> str:
    return REIMAGINE_TEMPLATE.format(style=STYLE_DESCRIPTIONS[style])
