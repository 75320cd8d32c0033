import re
from urllib.parse import unquote

from ..config import MESSAGE_MAX_LENGTH
from ..errors import InvalidMessage
from .stamps import Stamp, get_stamp_by_id

_SCRIPT_BLOCK = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)
_TAG = re.compile(r"<\s*/?[a-z][a-z0-9]*[^>]*>", re.IGNORECASE)
_DANGEROUS_PROTOCOL = re.compile(r"(?:javascript|data|vbscript|about|file):", re.IGNORECASE)
_EVENT_HANDLER = re.compile(r"\s*on\w+\s*=\s*[\"']?[^\"'>]*[\"']?", re.IGNORECASE)

MESSAGE_KINDS = ("text", "stamp")


def sanitize_text(value: str | None) -> str:
    if not value:
        return ""
    cleaned = value
    # Undo up to three layers of percent-encoding before stripping markup.
    for _ in range(3):
        decoded = unquote(cleaned)
        if decoded == cleaned:
            break
        cleaned = decoded
    cleaned = _SCRIPT_BLOCK.sub("", cleaned)
    cleaned = _TAG.sub("", cleaned)
    cleaned = _DANGEROUS_PROTOCOL.sub("", cleaned)
    cleaned = _EVENT_HANDLER.sub("", cleaned)
    cleaned = cleaned.replace("<", "").replace(">", "")
    return cleaned.strip()


def validate_text_message(content: str | None) -> str:
    body = sanitize_text(content)
    if not body:
        raise InvalidMessage("Message body required")
    if len(body) > MESSAGE_MAX_LENGTH:
        raise InvalidMessage(f"Message must be at most {MESSAGE_MAX_LENGTH} characters")
    return body


def validate_stamp_message(stamp_id: str | None) -> Stamp:
    if not stamp_id:
        raise InvalidMessage("stamp_id is required for stamp messages")
    stamp = get_stamp_by_id(stamp_id)
    if not stamp:
        raise InvalidMessage("Unknown stamp_id")
    return stamp
