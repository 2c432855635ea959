"""
Telegram callbacks module for the link download bot.

Contains the quality keyboard, callback query handler and the
download-and-deliver logic shared with plain link messages.
"""

import os
import asyncio
import logging
import functools
from concurrent.futures import ThreadPoolExecutor

from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.ext import ContextTypes
from telegram.error import BadRequest

from linkgrab.config import DOWNLOAD_PATH, MAX_FILE_SIZE_MB
from linkgrab.security import (
    PLATFORM_YOUTUBE,
    pause_state,
    sessions,
)
from linkgrab.downloader import (
    AUDIO_FORMAT,
    download_media,
    download_best_effort,
)
from linkgrab.delivery import send_media
from linkgrab.cleanup import delete_file, schedule_file_deletion

# Thread pool for yt-dlp and HTTP downloads
_executor = ThreadPoolExecutor(max_workers=4)

# Longest quality label shown on a button
MAX_LABEL_LENGTH = 50

# Longest error text shown to users
MAX_ERROR_LENGTH = 100

# Options offered when no format list is available
FALLBACK_CHOICES = [
    ("q_best", "⭐ Best quality", "best"),
    ("q_720", "📺 Up to 720p", "best[height<=720]"),
    ("q_480", "📱 Up to 480p", "best[height<=480]"),
]


async def run_blocking(func, *args, **kwargs):
    """Runs a blocking function in the thread pool."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_executor, functools.partial(func, *args, **kwargs))


async def safe_edit_message(query, text, reply_markup=None, parse_mode=None):
    """
    Safely edits message, ignoring 'message not modified' error.
    """
    try:
        await query.edit_message_text(
            text,
            reply_markup=reply_markup,
            parse_mode=parse_mode
        )
    except BadRequest as e:
        if "Message is not modified" not in str(e):
            raise


def truncate_label(label, limit=MAX_LABEL_LENGTH):
    if len(label) > limit:
        return label[:limit - 3] + "..."
    return label


def build_quality_keyboard(formats, platform):
    """
    Creates keyboard for quality selection.

    Args:
        formats: List of FormatDescriptor
        platform: Platform tag of the URL

    Returns:
        InlineKeyboardMarkup
    """
    keyboard = []

    if formats:
        for fmt in formats:
            keyboard.append([
                InlineKeyboardButton(
                    f"🎬 {truncate_label(fmt.label)}",
                    callback_data=f"dl_{fmt.format_id}"
                )
            ])

        if platform == PLATFORM_YOUTUBE:
            keyboard.append([InlineKeyboardButton("🎵 MP3 Audio Only", callback_data="audio")])
    else:
        for data, text, _ in FALLBACK_CHOICES:
            keyboard.append([InlineKeyboardButton(text, callback_data=data)])

    keyboard.append([InlineKeyboardButton("❌ Cancel", callback_data="cancel")])

    return InlineKeyboardMarkup(keyboard)


def describe_formats(formats, platform):
    """Builds the message shown above the quality keyboard."""
    if not formats:
        return (
            f"📹 {platform.capitalize()} link detected\n\n"
            "Could not list qualities, pick a generic option:"
        )

    text = f"📹 {platform.capitalize()} video detected\n\n🎬 Available qualities:\n"
    for i, fmt in enumerate(formats[:3], 1):
        text += f"{i}. {fmt.label}\n"
    if len(formats) > 3:
        text += f"... and {len(formats) - 3} more\n"
    text += "\n👇 Please select quality:"
    return text


def resolve_choice(data):
    """
    Maps callback data to a download request.

    Args:
        data: Callback data

    Returns:
        tuple or None: (format_spec, audio_only), None for unknown data
    """
    if data == "audio":
        return AUDIO_FORMAT, True
    for choice, _, format_spec in FALLBACK_CHOICES:
        if data == choice:
            return format_spec, False
    if data.startswith("dl_") and len(data) > 3:
        return data[3:], False
    return None


async def handle_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handles quality selection callbacks."""
    query = update.callback_query
    await query.answer()

    notice = pause_state.notice()
    if notice:
        await safe_edit_message(query, notice)
        return

    data = query.data
    user_id = update.effective_user.id

    if data == "cancel":
        sessions.forget(user_id)
        await safe_edit_message(query, "❌ Download cancelled.")
        return

    choice = resolve_choice(data)
    if choice is None:
        logging.warning(f"Unknown callback data from {user_id}: {data}")
        await safe_edit_message(query, "❌ Unknown option.")
        return

    session = sessions.pop(user_id)
    if not session:
        await safe_edit_message(query, "❌ URL not found! Please send the link again.")
        return

    format_spec, audio_only = choice
    logging.info(f"User {user_id} selected {format_spec} for {session.url}")

    async def update_status(text):
        await safe_edit_message(query, text)

    await fetch_and_deliver(
        query.message,
        update_status,
        session.url,
        format_spec,
        context.job_queue,
        audio_only=audio_only,
    )


async def fetch_and_deliver(message, update_status, url, format_spec, job_queue,
                            audio_only=False, generic=False):
    """
    Downloads media, checks its size and sends it back.

    Always finishes with exactly one terminal status: delivered, too large
    or an error.

    Args:
        message: telegram.Message the file is sent in reply to
        update_status: Coroutine function that replaces the status text
        url: Media URL
        format_spec: yt-dlp format id or expression
        job_queue: JobQueue used to schedule deletion
        audio_only: Download audio as MP3
        generic: Link without quality selection, allows direct download

    Returns:
        bool: True if the file was delivered
    """
    file_path = None
    try:
        await update_status("⏳ Downloading...")

        if generic:
            file_path, title = await run_blocking(download_best_effort, url, DOWNLOAD_PATH)
        else:
            file_path, title = await run_blocking(
                download_media, url, format_spec, DOWNLOAD_PATH, audio_only=audio_only
            )

        if not file_path or not os.path.exists(file_path):
            await update_status("❌ File not found after download")
            return False

        file_size_mb = os.path.getsize(file_path) / (1024 * 1024)

        if file_size_mb > MAX_FILE_SIZE_MB:
            delete_file(file_path)
            await update_status(f"❌ File too large: {file_size_mb:.1f}MB > {MAX_FILE_SIZE_MB:g}MB")
            logging.info(f"Rejected {file_path}: {file_size_mb:.1f}MB over limit")
            return False

        await update_status(f"📤 Uploading ({file_size_mb:.1f}MB)...")
        await send_media(message, file_path, title, file_size_mb)

        await update_status(f"✅ Download complete! ({file_size_mb:.1f}MB)")
        logging.info(f"Download successful: {file_path}")
        return True

    except Exception as e:
        logging.error(f"Download error for {url}: {e}")
        try:
            await update_status(f"❌ Error: {str(e)[:MAX_ERROR_LENGTH]}")
        except Exception as status_error:
            logging.error(f"Could not report error to user: {status_error}")
        return False

    finally:
        if file_path and os.path.exists(file_path):
            schedule_file_deletion(job_queue, file_path)
