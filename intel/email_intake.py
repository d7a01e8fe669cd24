"""
Email and video-URL intake.

Email-mode and video-URL-mode callers collect structured fields; this
module turns them into the single plain-text block the Payload
Assembler analyzes.
"""

import re
from dataclasses import dataclass
from typing import Optional

from pipeline.errors import EmptyInputError

_HEADER_HINT_RE = re.compile(r"^(From|To|Subject|Received|Date):", re.IGNORECASE | re.MULTILINE)
_FROM_RE = re.compile(r"^From:\s*(.+)$", re.MULTILINE)
_SUBJECT_RE = re.compile(r"^Subject:\s*(.+)$", re.MULTILINE)


@dataclass
class EmailFields:
    sender: str = ""
    subject: str = ""
    headers: str = ""
    body: str = ""


def parse_raw_email(raw: str) -> Optional[EmailFields]:
    """Split a pasted raw email (headers, blank line, body) into fields.

    Returns None when the text does not look like a raw email.
    """
    raw = (raw or "").replace("\r\n", "\n")
    header_end = raw.find("\n\n")
    if header_end == -1 or not _HEADER_HINT_RE.search(raw):
        return None

    headers = raw[:header_end]
    body = raw[header_end + 2:]

    from_match = _FROM_RE.search(headers)
    subject_match = _SUBJECT_RE.search(headers)
    return EmailFields(
        sender=from_match.group(1).strip() if from_match else "",
        subject=subject_match.group(1).strip() if subject_match else "",
        headers=headers,
        body=body,
    )


def format_email_payload(fields: EmailFields) -> str:
    if not (fields.body or fields.headers or fields.subject):
        raise EmptyInputError("Provide at least an email body, headers or subject.")

    return "\n".join([
        "[ANALYSIS_TYPE: EMAIL]",
        f"Sender: {fields.sender or 'Unknown'}",
        f"Subject: {fields.subject or 'Unknown'}",
        "",
        "--- HEADERS ---",
        fields.headers or "N/A",
        "",
        "--- BODY ---",
        fields.body,
    ]).strip()


def format_video_url_payload(url: str) -> str:
    """Video-URL mode sends the bare URL; the enricher does the lookup."""
    url = (url or "").strip()
    if not url:
        raise EmptyInputError("Provide a video URL to analyze.")
    return url
