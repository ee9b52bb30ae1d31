"""
FakeDetector: in-memory stand-in for InferenceClient.

`invoke` records the request input and returns a Responses-API shaped
envelope (or raises the configured error).
"""

import json


def responses_envelope(text: str) -> dict:
    """Minimal Responses API envelope with a single assistant message."""
    return {
        "id": "resp_test_001",
        "object": "response",
        "model": "o3",
        "output": [
            {"type": "reasoning", "id": "rs_1", "summary": []},
            {
                "type": "message",
                "id": "msg_1",
                "role": "assistant",
                "content": [{"type": "output_text", "text": text, "annotations": []}],
            },
        ],
    }


VERDICT_JSON = {
    "media_type": "text",
    "deepfake_probability": 5,
    "natural_probability": 95,
    "reasoning": {
        "content_analysis": "Short informal greeting.",
        "deepfake_indicators": "none",
        "authentic_indicators": "casual phrasing",
        "overall": "Likely human-written.",
    },
}


class FakeDetector:
    def __init__(self, text: str | None = None, envelope=None,
                 error: Exception | None = None, configured: bool = True):
        if envelope is None:
            envelope = responses_envelope(text if text is not None else json.dumps(VERDICT_JSON))
        self.envelope = envelope
        self.error = error
        self.is_configured = configured
        self.model = "o3"
        self.calls: list[list[dict]] = []

    async def invoke(self, request_input: list[dict], **options):
        self.calls.append(request_input)
        if self.error is not None:
            raise self.error
        return self.envelope

    async def close(self) -> None:
        return None
