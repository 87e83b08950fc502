"""Isolate the JSON payload from a free-text model response.

Handles common LLM quirks like markdown code fences and prose before or after
the object.
"""

import re

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


def extract_json(response_text: str) -> str:
    """Return the substring of a model response that should hold the JSON object.

    Tries, in order: a fenced code block, the span from the first '{' to the
    last '}', then the stripped response itself. No decoding happens here.

    Args:
        response_text: Raw LLM response

    Returns:
        Candidate JSON text
    """
    fenced = _FENCED_BLOCK.search(response_text)
    if fenced:
        return fenced.group(1).strip()

    start = response_text.find("{")
    end = response_text.rfind("}")
    if start != -1 and end > start:
        return response_text[start : end + 1]

    return response_text.strip()
