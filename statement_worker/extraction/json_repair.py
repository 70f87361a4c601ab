"""Recovery of truncated JSON responses.

Long statements can hit the provider's output token limit mid-array. The
complete transactions before the cut are still usable, so the truncated
tail is dropped and the open brackets are closed.
"""

import re

_FENCE_RE = re.compile(r"```(?:json)?\s*")


def strip_code_fences(raw: str) -> str:
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        lines = cleaned.splitlines()
        if lines and lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        cleaned = "\n".join(lines)
    return cleaned


def repair_truncated_json(raw: str) -> str:
    """Best-effort repair of a JSON object cut off part-way through.

    Returns ``{"transactions": []}`` when no object start can be found.
    The result is not guaranteed to parse; callers must still handle
    ``json.JSONDecodeError``.
    """
    text = _FENCE_RE.sub("", raw)
    start = text.find('{"transactions"')
    if start == -1:
        start = text.find("{")
    if start == -1:
        return '{"transactions": []}'
    text = text[start:]

    braces, brackets = _open_counts(text)
    if braces == 0 and brackets == 0:
        return text

    last_complete = text.rfind("},")
    if text.rfind("}]") == -1 and last_complete > 0:
        text = text[: last_complete + 1]
        braces, brackets = _open_counts(text)

    return text + "]" * max(brackets, 0) + "}" * max(braces, 0)


def _open_counts(text: str) -> tuple[int, int]:
    braces = brackets = 0
    in_string = escaped = False
    for char in text:
        if escaped:
            escaped = False
            continue
        if char == "\\":
            escaped = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if char == "{":
            braces += 1
        elif char == "}":
            braces -= 1
        elif char == "[":
            brackets += 1
        elif char == "]":
            brackets -= 1
    return braces, brackets
