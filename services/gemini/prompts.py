"""Prompt text for face analysis and avatar generation."""

FALLBACK_SCRIPT = "No description generated."

AVATAR_PROMPT_SUFFIX = " --aspect-ratio 1:1 --style photorealistic masterpiece"


def build_analysis_instruction() -> str:
    """Return the instruction sent alongside the photo."""
    return (
        "Analyze this image and write a highly detailed visual description (script) of the person's face. "
        "Focus on facial structure, skin tone, specific eye details, hair texture and color, "
        "distinctive features, expression, and lighting. "
        "The output should be a single, high-quality prompt suitable for an AI image generator "
        "to recreate a similar style portrait."
    )


def build_avatar_prompt(script: str) -> str:
    """Append the fixed style and aspect-ratio directive to a script."""
    return f"{script}{AVATAR_PROMPT_SUFFIX}"
