"""
TwiML envelope and SMS segmentation.
"""
from typing import List, Union
from xml.sax.saxutils import escape

SMS_SEGMENT_LIMIT = 160
MULTIPART_SEGMENT_LIMIT = 153

_XML_ENTITIES = {'"': "&quot;"}


def escape_xml(text: str) -> str:
    """Escape &, <, > and double quotes for an XML text node."""
    return escape(text or "", _XML_ENTITIES)


def format_twiml_response(message: Union[str, List[str]]) -> str:
    """
    Wrap a reply in a minimal TwiML <Response>.

    :param message: Plain-text reply, or a list of parts sent as separate messages
    :return: TwiML document
    """
    parts = [message] if isinstance(message, str) else list(message)
    body = "".join(f"  <Message>{escape_xml(part)}</Message>\n" for part in parts)
    return '<?xml version="1.0" encoding="UTF-8"?>\n<Response>\n' + body + "</Response>"


def _chunk_words(text: str, width: int) -> List[str]:
    chunks = []
    current = ""
    for word in (w for w in text.split(" ") if w):
        while len(word) > width:
            # Hard-split words longer than a whole segment
            if current:
                chunks.append(current)
                current = ""
            chunks.append(word[:width])
            word = word[width:]
        candidate = f"{current} {word}" if current else word
        if len(candidate) <= width:
            current = candidate
        else:
            chunks.append(current)
            current = word
    if current:
        chunks.append(current)
    return chunks


def split_sms(message: str, limit: int = SMS_SEGMENT_LIMIT) -> List[str]:
    """
    Split a long reply into SMS-sized parts at word boundaries.

    Multi-part messages use 153-character segments, each ending with an
    " (i/n)" marker that counts toward the segment length.

    :param message: Reply text
    :param limit: Single-message limit
    :return: List of parts; a short message is returned as one part
    """
    message = message or ""
    if len(message) <= limit:
        return [message]

    segment = min(limit, MULTIPART_SEGMENT_LIMIT)
    flat = message.strip()
    total = 1
    while True:
        marker_length = len(f" ({total}/{total})")
        chunks = _chunk_words(flat, segment - marker_length)
        if len(chunks) <= total:
            break
        total = len(chunks)

    count = len(chunks)
    return [f"{chunk} ({i}/{count})" for i, chunk in enumerate(chunks, start=1)]
