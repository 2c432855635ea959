"""
Link Download Telegram Bot - Package

This package contains all modules for the link download bot.
"""

from linkgrab.config import (
    CONFIG,
    BOT_TOKEN,
    ADMIN_IDS,
    MAX_FILE_SIZE_MB,
    DOWNLOAD_PATH,
    FILE_RETENTION_SECONDS,
    load_config,
    write_default_config,
    is_token_configured,
)

from linkgrab.security import (
    validate_url,
    detect_platform,
    is_admin,
    pause_state,
    sessions,
)

from linkgrab.cleanup import (
    CLEANUP_INTERVAL_SECONDS,
    delete_file,
    schedule_file_deletion,
    cleanup_old_files,
    clean_directory,
    periodic_cleanup,
    monitor_disk_space,
)

from linkgrab.downloader import (
    FormatDescriptor,
    list_formats,
    download_media,
    download_direct,
    download_best_effort,
)

from linkgrab.delivery import (
    MediaKind,
    classify_file,
    send_media,
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

from linkgrab.telegram_callbacks import (
    handle_callback,
    fetch_and_deliver,
    build_quality_keyboard,
)

__all__ = [
    # Config
    'CONFIG',
    'BOT_TOKEN',
    'ADMIN_IDS',
    'MAX_FILE_SIZE_MB',
    'DOWNLOAD_PATH',
    'FILE_RETENTION_SECONDS',
    'load_config',
    'write_default_config',
    'is_token_configured',
    # Security
    'validate_url',
    'detect_platform',
    'is_admin',
    'pause_state',
    'sessions',
    # Cleanup
    'CLEANUP_INTERVAL_SECONDS',
    'delete_file',
    'schedule_file_deletion',
    'cleanup_old_files',
    'clean_directory',
    'periodic_cleanup',
    'monitor_disk_space',
    # Downloader
    'FormatDescriptor',
    'list_formats',
    'download_media',
    'download_direct',
    'download_best_effort',
    # Delivery
    'MediaKind',
    'classify_file',
    'send_media',
    # Telegram commands
    'start',
    'help_command',
    'status_command',
    'pause_command',
    'resume_command',
    'clean_command',
    'handle_link',
    # Telegram callbacks
    'handle_callback',
    'fetch_and_deliver',
    'build_quality_keyboard',
]
