"""
Delivery helpers: pick the Telegram upload method for a downloaded file.
"""

import os
import enum
import logging


class MediaKind(enum.Enum):
    AUDIO = 'audio'
    VIDEO = 'video'
    IMAGE = 'image'
    DOCUMENT = 'document'


AUDIO_EXTENSIONS = ('.mp3', '.m4a', '.wav', '.ogg', '.flac', '.aac', '.opus')
VIDEO_EXTENSIONS = ('.mp4', '.avi', '.mkv', '.mov', '.webm', '.flv', '.wmv')
IMAGE_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.gif', '.bmp', '.webp')

CAPTION_ICONS = {
    MediaKind.AUDIO: "🎵",
    MediaKind.VIDEO: "📹",
    MediaKind.IMAGE: "🖼️",
    MediaKind.DOCUMENT: "📁",
}

# Characters of the title kept in captions
CAPTION_TITLE_LENGTH = 50


def classify_file(file_path):
    """
    Classifies file by extension.

    Args:
        file_path: Path or filename

    Returns:
        MediaKind: DOCUMENT for unknown extensions
    """
    ext = os.path.splitext(file_path)[1].lower()
    if ext in AUDIO_EXTENSIONS:
        return MediaKind.AUDIO
    if ext in VIDEO_EXTENSIONS:
        return MediaKind.VIDEO
    if ext in IMAGE_EXTENSIONS:
        return MediaKind.IMAGE
    return MediaKind.DOCUMENT


def build_caption(kind, title, size_mb):
    return f"{CAPTION_ICONS[kind]} {title[:CAPTION_TITLE_LENGTH]}\nSize: {size_mb:.1f}MB"


async def send_media(message, file_path, title, size_mb):
    """
    Uploads file as a reply to message using the method matching its kind.

    Args:
        message: telegram.Message to reply to
        file_path: Local file
        title: Title used in caption
        size_mb: File size in MB

    Returns:
        MediaKind: Kind the file was sent as
    """
    kind = classify_file(file_path)
    caption = build_caption(kind, title, size_mb)
    logging.info(f"Sending {file_path} as {kind.value}")

    with open(file_path, 'rb') as f:
        if kind is MediaKind.AUDIO:
            await message.reply_audio(audio=f, title=title, caption=caption)
        elif kind is MediaKind.VIDEO:
            await message.reply_video(video=f, caption=caption, supports_streaming=True)
        elif kind is MediaKind.IMAGE:
            await message.reply_photo(photo=f, caption=caption)
        else:
            await message.reply_document(
                document=f,
                filename=os.path.basename(file_path),
                caption=caption,
            )

    return kind
