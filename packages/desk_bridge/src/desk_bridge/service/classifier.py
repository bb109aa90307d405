"""
Content Classifier

Pure functions describing inbound content for the desk:

- classify(): filename, mimetype and caption for an upload, plus a text
  summary for kinds that are delivered as text (contact cards, reactions)
- extract_text(): the text to post when the message is delivered as text
"""

import re
from dataclasses import dataclass

from desk_bridge.contracts.inbound import (
    AudioContent,
    ContactCardContent,
    DocumentContent,
    ImageContent,
    InboundMessage,
    ReactionContent,
    TextContent,
    UnsupportedContent,
    VideoContent,
)

OCTET_STREAM = "application/octet-stream"

IMAGE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/heic": "heic",
}

VIDEO_EXTENSIONS = {
    "video/mp4": "mp4",
    "video/3gpp": "3gp",
    "video/quicktime": "mov",
    "video/webm": "webm",
    "video/x-matroska": "mkv",
}

DOCUMENT_EXTENSIONS = {
    "application/pdf": "pdf",
    "application/msword": "doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "application/vnd.ms-excel": "xls",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": "xlsx",
    "application/vnd.ms-powerpoint": "ppt",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": "pptx",
    "application/zip": "zip",
    "application/json": "json",
    "text/plain": "txt",
    "text/csv": "csv",
    "image/jpeg": "jpg",
    "image/png": "png",
}

WAID_PATTERN = re.compile(r"waid=(\d+)")


@dataclass(frozen=True)
class MediaDescriptor:
    filename: str
    mimetype: str
    caption: str = ""
    summary: str = ""


def clean_mimetype(raw: str, default: str) -> str:
    """Drop parameters ("; codecs=opus") and fall back to a default."""
    cleaned = (raw or "").split(";", 1)[0].strip()
    return cleaned or default


def contact_card_summary(display_name: str, vcard: str) -> str:
    match = WAID_PATTERN.search(vcard or "")
    phone = match.group(1) if match else ""
    return f"Name: {display_name}\nPhone: {phone}"


def classify(message: InboundMessage) -> MediaDescriptor:
    """
    Describe a message's content for delivery.

    Every mimetype returned is free of parameters.
    """
    message_id = message.message_id

    match message.content:
        case AudioContent(mimetype=raw):
            if "mp4" in raw and "ogg" not in raw:
                return MediaDescriptor(f"{message_id}.m4a", "audio/mp4")
            return MediaDescriptor(f"{message_id}.ogg", "audio/ogg")

        case VideoContent(caption=caption, mimetype=raw):
            mimetype = clean_mimetype(raw, "video/mp4")
            ext = VIDEO_EXTENSIONS.get(mimetype, "mp4")
            return MediaDescriptor(f"{message_id}.{ext}", mimetype, caption)

        case ImageContent(caption=caption, mimetype=raw):
            mimetype = clean_mimetype(raw, "image/jpeg")
            ext = IMAGE_EXTENSIONS.get(mimetype, "jpg")
            return MediaDescriptor(f"{message_id}.{ext}", mimetype, caption)

        case DocumentContent(caption=caption, mimetype=raw, filename=filename):
            mimetype = clean_mimetype(raw, OCTET_STREAM)
            if not filename:
                filename = f"{message_id}.{DOCUMENT_EXTENSIONS.get(mimetype, 'bin')}"
            return MediaDescriptor(filename, mimetype, caption)

        case ContactCardContent(display_name=name, vcard=vcard):
            return MediaDescriptor(
                f"{message_id}.bin", OCTET_STREAM, summary=contact_card_summary(name, vcard)
            )

        case ReactionContent(glyph=glyph):
            return MediaDescriptor(f"{message_id}.bin", OCTET_STREAM, summary=f"[Reação: {glyph}]")

        case TextContent() | UnsupportedContent():
            return MediaDescriptor(f"{message_id}.bin", OCTET_STREAM)

    return MediaDescriptor(f"{message_id}.bin", OCTET_STREAM)


def extract_text(message: InboundMessage) -> str:
    """Text body, caption, or a bracketed placeholder for the content kind."""
    match message.content:
        case TextContent(text=text):
            return text
        case ImageContent(caption=caption):
            return caption or "[Imagem]"
        case VideoContent(caption=caption):
            return caption or "[Vídeo]"
        case AudioContent():
            return "[Áudio]"
        case DocumentContent(caption=caption, filename=filename):
            if caption:
                return caption
            return f"[Documento: {filename}]" if filename else "[Documento]"
        case ContactCardContent(display_name=name):
            return f"[Contato: {name}]"
        case ReactionContent(glyph=glyph):
            return f"[Reação: {glyph}]"
        case UnsupportedContent():
            return ""
    return ""
