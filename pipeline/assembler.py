"""
Payload Assembler.

Turns the caller's heterogeneous evidence (free text, screenshot, audio
clip, video clip) into the ordered list of content segments sent in a
single inference call:

    [task text] [image][image instruction] [audio][audio instruction] [video][video instruction]

Attachments may arrive as raw bytes or as base64 text with an optional
data-URI prefix. The MIME type comes from the data-URI when present,
otherwise from the payload's magic bytes, otherwise a per-kind default.
"""

import base64
import binascii
import logging
import re
from typing import List, Optional, Tuple, Union

from pipeline.capability import DEFAULT_REASONING_BUDGET, reasoning_budget_for, select_tier
from pipeline.errors import EmptyInputError
from pipeline.schemas import (
    AnalysisRequest,
    ContentSegment,
    MediaClass,
    MediaSegment,
    TextSegment,
    segments_have_media,
)

logger = logging.getLogger("shadow_scan.pipeline.assembler")

Attachment = Union[bytes, bytearray, str, None]

TASK_PROMPT = (
    "Analyze the following content for potential scams, social engineering, "
    "or malicious intent. \n\nContent: \"{text}\""
)

MEDIA_INSTRUCTIONS = {
    MediaClass.IMAGE: (
        "Also analyze the attached image/screenshot for visual cues of scams "
        "(fake logos, urgency, poor design, etc.)."
    ),
    MediaClass.AUDIO: (
        "Listen to the attached audio snippet. First, provide a verbatim transcription "
        "of what was said in the 'transcription' field. Then, analyze the tone, urgency, "
        "voice patterns, and content for indicators of vishing (voice phishing), social "
        "engineering, or manipulation. Does the speaker sound robotic, aggressive, or "
        "unnaturally urgent?"
    ),
    MediaClass.VIDEO: (
        "Watch the attached video. Analyze the visual elements and any spoken audio. "
        "Look for deepfake artifacts, unnatural movements, suspicious text overlays, or "
        "manipulative scripts. If there is speech, transcribe it in the 'transcription' field."
    ),
}

DEFAULT_MIME_TYPES = {
    MediaClass.IMAGE: "image/png",
    MediaClass.AUDIO: "audio/mp3",
    MediaClass.VIDEO: "video/mp4",
}

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[\w.+-]+=[\w.+-]+)*;base64,", re.IGNORECASE)


# ============================================================================
# MIME DETECTION
# ============================================================================

def _sniff_image(data: bytes) -> Optional[str]:
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return None


def _sniff_audio(data: bytes) -> Optional[str]:
    if data.startswith(b"ID3") or data[:2] in (b"\xff\xfb", b"\xff\xf3", b"\xff\xf2"):
        return "audio/mp3"
    if data[:4] == b"RIFF" and data[8:12] == b"WAVE":
        return "audio/wav"
    if data.startswith(b"OggS"):
        return "audio/ogg"
    if data.startswith(b"fLaC"):
        return "audio/flac"
    if data[4:8] == b"ftyp":
        return "audio/mp4"
    if data.startswith(b"\x1a\x45\xdf\xa3"):
        return "audio/webm"
    return None


def _sniff_video(data: bytes) -> Optional[str]:
    if data[4:8] == b"ftyp":
        if data[8:10] == b"qt":
            return "video/quicktime"
        return "video/mp4"
    if data.startswith(b"\x1a\x45\xdf\xa3"):
        return "video/webm"
    return None


_SNIFFERS = {
    MediaClass.IMAGE: _sniff_image,
    MediaClass.AUDIO: _sniff_audio,
    MediaClass.VIDEO: _sniff_video,
}


def detect_mime_type(data: bytes, media_class: MediaClass, declared: Optional[str] = None) -> str:
    """Resolve the MIME type for an attachment of the given media class."""
    if declared and declared.lower().startswith(media_class.value + "/"):
        return declared.lower()
    sniffed = _SNIFFERS[media_class](data)
    return sniffed or DEFAULT_MIME_TYPES[media_class]


def decode_attachment(value: Attachment, media_class: MediaClass) -> Optional[Tuple[bytes, str]]:
    """Return (raw bytes, mime type) for an attachment, or None when absent."""
    if value is None:
        return None

    declared = None
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    else:
        text = value.strip()
        match = _DATA_URI_RE.match(text)
        if match:
            declared = match.group("mime")
            text = text[match.end():]
        try:
            raw = base64.b64decode("".join(text.split()), validate=True)
        except (binascii.Error, ValueError) as e:
            raise EmptyInputError(f"The attached {media_class.value} is not valid base64 data.") from e

    if not raw:
        return None
    return raw, detect_mime_type(raw, media_class, declared)


# ============================================================================
# ASSEMBLER
# ============================================================================

class PayloadAssembler:
    """Builds content segments and the final AnalysisRequest.

    The enricher is optional; when given, text that mentions a video link
    is passed through enricher.enrich() before the task prompt is built.
    """

    def __init__(self, enricher=None, reasoning_budget: int = DEFAULT_REASONING_BUDGET):
        self.enricher = enricher
        self.reasoning_budget = reasoning_budget

    async def assemble(
        self,
        text: Optional[str] = None,
        image: Attachment = None,
        audio: Attachment = None,
        video: Attachment = None,
    ) -> List[ContentSegment]:
        segments: List[ContentSegment] = []

        final_text = (text or "").strip()
        if final_text and self.enricher is not None and self.enricher.mentions_video_link(final_text):
            final_text = await self.enricher.enrich(final_text)

        if final_text:
            segments.append(TextSegment(value=TASK_PROMPT.format(text=final_text)))

        for media_class, value in (
            (MediaClass.IMAGE, image),
            (MediaClass.AUDIO, audio),
            (MediaClass.VIDEO, video),
        ):
            decoded = decode_attachment(value, media_class)
            if decoded is None:
                continue
            raw, mime_type = decoded
            logger.debug("Attaching %s (%s, %d bytes)", media_class.value, mime_type, len(raw))
            segments.append(MediaSegment(media_class=media_class, mime_type=mime_type, data=raw))
            segments.append(TextSegment(value=MEDIA_INSTRUCTIONS[media_class]))

        if not segments:
            raise EmptyInputError("No content provided for analysis.")
        return segments

    async def build_request(
        self,
        text: Optional[str] = None,
        image: Attachment = None,
        audio: Attachment = None,
        video: Attachment = None,
        extended_reasoning: bool = False,
    ) -> AnalysisRequest:
        segments = await self.assemble(text=text, image=image, audio=audio, video=video)
        tier = select_tier(segments_have_media(segments, MediaClass.IMAGE), extended_reasoning)
        return AnalysisRequest(
            segments=tuple(segments),
            capability_tier=tier,
            extended_reasoning=extended_reasoning,
            reasoning_budget=reasoning_budget_for(extended_reasoning, self.reasoning_budget),
        )
