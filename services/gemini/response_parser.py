"""Helpers to parse Gemini generate_content responses."""

from typing import Any, Dict, List, Optional

from services.errors import GenerationFailed


def extract_text(response: Any) -> Optional[str]:
    """Return the response text, or None when the model produced none."""
    try:
        text = getattr(response, "text", None)
    except ValueError:
        # Older SDKs raise when the candidate has no text parts.
        return None
    if text is None:
        return None
    text = str(text).strip()
    return text or None


def first_candidate_parts(response: Any) -> List[Any]:
    """Return the parts of the first candidate, or an empty list."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    content = getattr(candidates[0], "content", None)
    return list(getattr(content, "parts", None) or [])


def extract_inline_image(response: Any) -> bytes:
    """Return the raw bytes of the first part carrying inline image data.

    Raises:
        GenerationFailed: With reason ``no_content`` when no parts were returned,
            or ``no_image`` when none of the parts holds image data.
    """
    parts = first_candidate_parts(response)
    if not parts:
        raise GenerationFailed("No content returned from image generation.", GenerationFailed.NO_CONTENT)

    for part in parts:
        inline_data = getattr(part, "inline_data", None)
        data = getattr(inline_data, "data", None) if inline_data is not None else None
        if data:
            return data

    raise GenerationFailed("No image data found in response.", GenerationFailed.NO_IMAGE)


def extract_usage(response: Any) -> Dict[str, Optional[int]]:
    """Return token usage information from the response, if present."""
    usage = getattr(response, "usage_metadata", None)
    return {
        "input_tokens": getattr(usage, "prompt_token_count", None) if usage else None,
        "output_tokens": getattr(usage, "candidates_token_count", None) if usage else None,
    }
