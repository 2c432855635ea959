"""
Telegram commands module for the link download bot.

Contains command handlers (/start, /help, /status, /pause, /resume,
/clean) and the handler for link messages.
"""

import logging

from telegram import Update
from telegram.ext import ContextTypes

from linkgrab.config import (
    DOWNLOAD_PATH,
    MAX_FILE_SIZE_MB,
    FILE_RETENTION_SECONDS,
)
from linkgrab.security import (
    ADMIN_ONLY_MESSAGE,
    QUALITY_PLATFORMS,
    pause_state,
    sessions,
    is_admin,
    validate_url,
    detect_platform,
    parse_pause_hours,
)
from linkgrab.cleanup import (
    CLEANUP_INTERVAL_SECONDS,
    clean_directory,
    get_directory_stats,
    get_disk_usage,
)
from linkgrab.downloader import list_formats
from linkgrab.telegram_callbacks import (
    run_blocking,
    build_quality_keyboard,
    describe_formats,
    fetch_and_deliver,
)


async def reply_if_paused(update: Update):
    """
    Sends the pause notice when the bot is paused.

    Returns:
        bool: True if the update must not be processed further
    """
    notice = pause_state.notice()
    if notice:
        await update.message.reply_text(notice)
        return True
    return False


async def require_admin(update: Update):
    """Rejects non-admin users, returns True if user is admin."""
    user_id = update.effective_user.id
    if is_admin(user_id):
        return True
    logging.warning(f"Rejected admin command from {user_id}")
    await update.message.reply_text(ADMIN_ONLY_MESSAGE)
    return False


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handles /start command."""
    if await reply_if_paused(update):
        return

    user = update.effective_user
    retention_minutes = FILE_RETENTION_SECONDS // 60

    await update.message.reply_text(
        f"Hello {user.first_name}! 👋\n\n"
        "🤖 Link Download Bot\n\n"
        "📥 Supported links:\n"
        "✅ YouTube (with quality selection)\n"
        "✅ Twitter/X (with quality selection)\n"
        "✅ Instagram, Facebook and other sites\n"
        "✅ Direct file links\n\n"
        "🛠️ Commands:\n"
        "/start - This menu\n"
        "/help - Detailed help\n"
        "/status - Bot status (admin)\n"
        "/pause [hours] - Pause bot (admin)\n"
        "/resume - Resume bot (admin)\n"
        "/clean - Delete downloaded files (admin)\n\n"
        "🎯 Just send me a link!\n"
        f"💡 Files are deleted from the server after {retention_minutes} min."
    )
    logging.info(f"User {user.id} started bot")


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handles /help command."""
    if await reply_if_paused(update):
        return

    await update.message.reply_text(
        "📖 How to use the bot:\n\n"
        "1. Send a YouTube or Twitter/X link\n"
        "2. Select quality from the list (or MP3 audio for YouTube)\n"
        "3. Wait for the file\n\n"
        "Other links are downloaded in the best available quality.\n"
        "Direct file links keep their original format.\n\n"
        "📁 File types:\n"
        "- Videos: MP4, MKV, WEBM...\n"
        "- Audio: MP3, M4A, WAV...\n"
        "- Images: JPG, PNG, GIF...\n"
        "- Anything else is sent as a document\n\n"
        f"Maximum file size: {MAX_FILE_SIZE_MB:g} MB"
    )


async def status_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handles /status command - shows bot and storage status."""
    if not await require_admin(update):
        return

    user_id = update.effective_user.id
    file_count, total_size_mb = get_directory_stats(DOWNLOAD_PATH)
    used_gb, free_gb, total_gb, usage_percent = get_disk_usage()

    remaining = pause_state.remaining()
    if remaining is None:
        state = "✅ Active"
    else:
        state = f"⏸️ Paused, resumes in {int(remaining.total_seconds()) // 60} min"

    status_msg = (
        f"📊 Bot Status\n\n"
        f"🤖 State: {state}\n\n"
        f"⚙️ Settings:\n"
        f"- Max file size: {MAX_FILE_SIZE_MB:g} MB\n"
        f"- Files kept for: {FILE_RETENTION_SECONDS // 60} min\n"
        f"- Cleanup every: {CLEANUP_INTERVAL_SECONDS} s\n\n"
        f"📁 Storage:\n"
        f"- Files: {file_count}\n"
        f"- Size: {total_size_mb:.1f} MB\n"
        f"- Disk: {used_gb:.1f} GB / {total_gb:.1f} GB ({usage_percent:.1f}%), {free_gb:.1f} GB free\n\n"
        f"👤 Your ID: {user_id}"
    )

    if free_gb < 5:
        status_msg += "\n\n⚠️ Critically low disk space!"

    await update.message.reply_text(status_msg)


async def pause_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handles /pause [hours] command."""
    if not await require_admin(update):
        return

    hours = parse_pause_hours(context.args)
    until = pause_state.pause(hours)

    await update.message.reply_text(
        f"⏸️ Bot paused for {hours} hour(s)\n"
        f"Will resume at: {until.strftime('%Y-%m-%d %H:%M:%S')}"
    )
    logging.info(f"Bot paused by {update.effective_user.id} for {hours} hours")


async def resume_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handles /resume command."""
    if not await require_admin(update):
        return

    pause_state.resume()

    await update.message.reply_text("▶️ Bot resumed successfully!")
    logging.info(f"Bot resumed by {update.effective_user.id}")


async def clean_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handles /clean command - deletes every downloaded file."""
    if not await require_admin(update):
        return

    deleted_count = clean_directory(DOWNLOAD_PATH)

    await update.message.reply_text(f"🧹 Cleaned {deleted_count} files")
    logging.info(f"Cleaned {deleted_count} files by {update.effective_user.id}")


async def handle_link(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handles text messages with links."""
    if await reply_if_paused(update):
        return

    user = update.effective_user
    text = (update.message.text or "").strip()

    logging.info(f"Message from {user.id}: {text[:50]}")

    if not validate_url(text):
        await update.message.reply_text(
            "Please send a valid URL starting with http:// or https://\n\n"
            "- YouTube/Twitter: quality selection\n"
            "- Direct files: original format preserved"
        )
        return

    platform = detect_platform(text)

    if platform in QUALITY_PLATFORMS:
        await offer_quality_choice(update, context, text, platform)
    else:
        await process_generic_link(update, context, text)


async def offer_quality_choice(update: Update, context: ContextTypes.DEFAULT_TYPE, url, platform):
    """Lists qualities and shows the selection keyboard."""
    user_id = update.effective_user.id
    # Latest link wins even if an earlier lookup finishes later
    sessions.remember(user_id, url, platform)
    progress_message = await update.message.reply_text("🔍 Getting available qualities...")

    formats = await run_blocking(list_formats, url, MAX_FILE_SIZE_MB)

    await progress_message.edit_text(
        describe_formats(formats, platform),
        reply_markup=build_quality_keyboard(formats, platform),
    )


async def process_generic_link(update: Update, context: ContextTypes.DEFAULT_TYPE, url):
    """Downloads a link without quality selection."""
    progress_message = await update.message.reply_text("📥 Downloading...")

    async def update_status(text):
        await progress_message.edit_text(text)

    await fetch_and_deliver(
        update.message,
        update_status,
        url,
        'best',
        context.job_queue,
        generic=True,
    )
