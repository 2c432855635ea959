#!/usr/bin/env python3
"""
Link Download Telegram Bot - Main Entry Point

A Telegram bot that downloads media from YouTube, Twitter/X and other
links, with quality selection and automatic cleanup of downloaded files.
"""

import os
import sys
import logging

from telegram import BotCommand
from telegram.ext import (
    ApplicationBuilder,
    CommandHandler,
    MessageHandler,
    CallbackQueryHandler,
    filters,
)

from linkgrab.config import (
    BOT_TOKEN,
    CONFIG_FILE_PATH,
    is_token_configured,
    write_default_config,
)
from linkgrab.cleanup import (
    CLEANUP_INTERVAL_SECONDS,
    monitor_disk_space,
    periodic_cleanup,
)
from linkgrab.telegram_commands import (
    start,
    help_command,
    status_command,
    pause_command,
    resume_command,
    clean_command,
    handle_link,
)
from linkgrab.telegram_callbacks import handle_callback

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=logging.INFO
)
logging.getLogger("httpx").setLevel(logging.WARNING)

# New text messages only, edited messages and channel posts have no update.message
LINK_FILTER = filters.UpdateType.MESSAGE & filters.TEXT & ~filters.COMMAND


async def set_bot_commands(application):
    """Sets Telegram bot menu commands."""
    commands = [
        BotCommand("start", "Start using the bot"),
        BotCommand("help", "Help and instructions"),
        BotCommand("status", "Bot status (admin)"),
        BotCommand("pause", "Pause the bot (admin)"),
        BotCommand("resume", "Resume the bot (admin)"),
        BotCommand("clean", "Delete downloaded files (admin)"),
    ]

    await application.bot.set_my_commands(commands)
    logging.info("Set Telegram bot menu commands")


def check_token():
    """
    Makes sure a real bot token is configured.

    Writes a default config file when none exists.

    Returns:
        bool: True if the bot can start
    """
    if not os.path.exists(CONFIG_FILE_PATH):
        write_default_config(CONFIG_FILE_PATH)

    if not is_token_configured(BOT_TOKEN):
        logging.error(f"Bot token not configured! Edit {CONFIG_FILE_PATH} or set TELEGRAM_BOT_TOKEN.")
        return False
    return True


def main():
    """Main function - entry point for the bot."""
    if not check_token():
        sys.exit(1)

    # Initial disk space check
    monitor_disk_space()

    # Create bot application
    application = (
        ApplicationBuilder()
        .token(BOT_TOKEN)
        .concurrent_updates(True)
        .connect_timeout(30)
        .read_timeout(60)
        .write_timeout(60)
        .post_init(set_bot_commands)
        .build()
    )

    # Sweep the download directory
    application.job_queue.run_repeating(
        periodic_cleanup,
        interval=CLEANUP_INTERVAL_SECONDS,
        first=CLEANUP_INTERVAL_SECONDS,
        name="periodic_cleanup",
    )
    logging.info("Started automatic file cleanup job")

    # Register handlers
    application.add_handler(CommandHandler("start", start))
    application.add_handler(CommandHandler("help", help_command))
    application.add_handler(CommandHandler("status", status_command))
    application.add_handler(CommandHandler("pause", pause_command))
    application.add_handler(CommandHandler("resume", resume_command))
    application.add_handler(CommandHandler("clean", clean_command))

    application.add_handler(MessageHandler(LINK_FILTER, handle_link))

    application.add_handler(CallbackQueryHandler(handle_callback))

    # Start the bot
    logging.info("Starting Telegram bot...")
    application.run_polling()


if __name__ == "__main__":
    main()
