"""
Cleanup module for the link download bot.

Handles file retention: per-file deferred deletion, the periodic sweep
of the download directory, admin purge and disk monitoring.
"""

import os
import time
import shutil
import logging

from linkgrab.config import DOWNLOAD_PATH, FILE_RETENTION_SECONDS

# How often the sweep runs (seconds)
CLEANUP_INTERVAL_SECONDS = 60


def delete_file(file_path):
    """
    Deletes file if it still exists.

    Args:
        file_path: File to delete

    Returns:
        bool: True if file is gone (deleted now or already missing)
    """
    try:
        os.remove(file_path)
        logging.info(f"Auto deleted: {os.path.basename(file_path)}")
        return True
    except FileNotFoundError:
        return True
    except OSError as e:
        logging.error(f"Error deleting file {file_path}: {e}")
        return False


async def delete_file_job(context):
    """Job queue callback, job data holds the file path."""
    delete_file(context.job.data)


def schedule_file_deletion(job_queue, file_path, delay=None):
    """
    Schedules file deletion after the retention window.

    Args:
        job_queue: telegram.ext.JobQueue
        file_path: File to delete
        delay: Seconds to wait (defaults to FILE_RETENTION_SECONDS)
    """
    delay = FILE_RETENTION_SECONDS if delay is None else delay
    job_queue.run_once(
        delete_file_job,
        when=delay,
        data=file_path,
        name=f"delete:{os.path.basename(file_path)}",
    )
    logging.debug(f"Scheduled deletion of {file_path} in {delay}s")


def _iter_files(directory):
    with os.scandir(directory) as entries:
        for entry in entries:
            if entry.is_file(follow_symlinks=False):
                yield entry


def cleanup_old_files(directory, max_age_seconds=None):
    """
    Deletes files older than the retention window.

    Args:
        directory: Directory to clean
        max_age_seconds: Maximum file age (defaults to FILE_RETENTION_SECONDS)

    Returns:
        int: Number of deleted files
    """
    if max_age_seconds is None:
        max_age_seconds = FILE_RETENTION_SECONDS

    if not os.path.isdir(directory):
        return 0

    current_time = time.time()
    deleted_count = 0
    freed_space_mb = 0

    try:
        for entry in list(_iter_files(directory)):
            try:
                stat = entry.stat(follow_symlinks=False)
                if current_time - stat.st_mtime <= max_age_seconds:
                    continue

                os.remove(entry.path)
                deleted_count += 1
                freed_space_mb += stat.st_size / (1024 * 1024)
                logging.info(f"Deleted old file: {entry.path} ({stat.st_size / (1024 * 1024):.2f} MB)")
            except FileNotFoundError:
                # Scheduled deletion got there first
                continue
            except Exception as e:
                logging.error(f"Error deleting file {entry.path}: {e}")
    except Exception as e:
        logging.error(f"Error cleaning directory {directory}: {e}")

    if deleted_count > 0:
        logging.info(f"Cleanup finished: deleted {deleted_count} files, freed {freed_space_mb:.2f} MB")

    return deleted_count


async def periodic_cleanup(context):
    """
    Job queue callback run every CLEANUP_INTERVAL_SECONDS.
    """
    try:
        deleted_count = cleanup_old_files(DOWNLOAD_PATH, FILE_RETENTION_SECONDS)
        if deleted_count > 0:
            logging.info(f"Periodic cleanup: deleted {deleted_count} old files")
    except Exception as e:
        logging.error(f"Error during periodic cleanup: {e}")


def clean_directory(directory):
    """
    Deletes every file in directory regardless of age.

    Returns:
        int: Number of deleted files
    """
    if not os.path.isdir(directory):
        return 0

    deleted_count = 0
    for entry in list(_iter_files(directory)):
        if delete_file(entry.path):
            deleted_count += 1
    return deleted_count


def get_directory_stats(directory):
    """
    Counts files in directory.

    Returns:
        tuple: (file_count, total_size_mb)
    """
    file_count = 0
    total_size_mb = 0

    if not os.path.isdir(directory):
        return 0, 0

    for entry in _iter_files(directory):
        try:
            total_size_mb += entry.stat(follow_symlinks=False).st_size / (1024 * 1024)
            file_count += 1
        except FileNotFoundError:
            continue

    return file_count, total_size_mb


def get_disk_usage():
    """
    Checks disk space usage.

    Returns:
        tuple: (used_gb, free_gb, total_gb, usage_percent)
    """
    # Method 1: shutil.disk_usage
    try:
        total, used, free = shutil.disk_usage(DOWNLOAD_PATH)
        total_gb = total / (1024 ** 3)
        free_gb = free / (1024 ** 3)
        used_gb = used / (1024 ** 3)
        usage_percent = (used / total) * 100 if total > 0 else 0

        return used_gb, free_gb, total_gb, usage_percent
    except Exception as e:
        logging.warning(f"shutil.disk_usage failed: {e}")

    # Method 2: os.statvfs (fallback for older systems)
    try:
        stat = os.statvfs(DOWNLOAD_PATH)
        total_gb = (stat.f_blocks * stat.f_frsize) / (1024 ** 3)
        free_gb = (stat.f_avail * stat.f_frsize) / (1024 ** 3)
        used_gb = total_gb - free_gb
        usage_percent = (used_gb / total_gb) * 100 if total_gb > 0 else 0

        logging.info("Used os.statvfs to check disk space")
        return used_gb, free_gb, total_gb, usage_percent
    except Exception as e:
        logging.warning(f"os.statvfs failed: {e}")

    logging.error("All disk space checking methods failed")
    return 0, 0, 0, 0


def monitor_disk_space():
    """
    Logs disk space and warns when it runs low.

    Returns:
        float: Free space in GB
    """
    used_gb, free_gb, total_gb, usage_percent = get_disk_usage()

    logging.info(f"Disk space: {used_gb:.1f}/{total_gb:.1f} GB used ({usage_percent:.1f}%), {free_gb:.1f} GB free")

    if free_gb < 5:
        logging.warning(f"WARNING: Critically low disk space! Only {free_gb:.1f} GB remaining.")
    elif free_gb < 10:
        logging.warning(f"WARNING: Low disk space! Only {free_gb:.1f} GB remaining.")

    return free_gb
