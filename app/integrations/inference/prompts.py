"""
Detection prompt and request assembly.

Everything here is stateless: the instruction text is fixed, and the request
input is built from the media kind plus one content block.
"""

DETECTION_PROMPT = """
You are an AI model specialized in detecting deepfakes or manipulated media.
You will be given an input (image, video, audio, or text).
Your task is to analyze it and determine whether it is natural (authentic/original) or deepfake (AI-generated, manipulated, or synthetic).

Return the result ONLY in the following JSON format:

{
  "media_type": "<image | video | audio | text>",
  "deepfake_probability": <integer 0–100>,
  "natural_probability": <integer 0–100>,
  "reasoning": {
    "content_analysis": "Brief description of the media (faces, voices, handwriting, text style, etc.)",
    "deepfake_indicators": "Signs of manipulation or AI generation if any",
    "authentic_indicators": "Signs of natural origin (lighting, noise, handwriting variation, speech cadence, etc.)",
    "overall": "Short conclusion explaining why the probabilities were assigned"
  }
}

Rules:
- Probabilities must sum to 100.
- No ranges allowed, only exact integers.
- If the medium does not contain faces/voices, state 'not applicable' for that section.
- Keep reasoning concise, factual, and evidence-based.

Display Percentage Rules:
- If natural_probability >= 70: set natural_probability to 90-99 (AUTHENTIC range)
- If natural_probability > 50 and < 70: set natural_probability to 70-89 (INCONCLUSIVE range)
- If natural_probability <= 50: set natural_probability to 0-69 (SYNTHETIC range)
- deepfake_probability = 100 - natural_probability
- Use deterministic values based on the original analysis (same input = same output)
""".strip()


def build_content_block(media_kind: str, content: str) -> dict:
    """Wrap the media reference (or raw text) in a Responses API content part."""
    if media_kind == "image":
        return {"type": "input_image", "image_url": content}
    if media_kind in ("video", "audio"):
        # The endpoint cannot fetch video/audio directly, so only the URL is passed along
        return {"type": "input_text", "text": f"Media URL: {content}"}
    return {"type": "input_text", "text": content}


def build_request_input(media_kind: str, content_block: dict) -> list[dict]:
    """Single user turn: instruction, kind hint, then the content block."""
    return [
        {
            "role": "user",
            "content": [
                {"type": "input_text", "text": DETECTION_PROMPT},
                {"type": "input_text", "text": f"media_type_hint:{media_kind or 'unknown'}"},
                content_block,
            ],
        }
    ]
