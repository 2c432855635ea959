"""
Security module for the link download bot.

Handles URL validation and platform detection, the admin allow-list,
the pause switch and per-user sessions for quality selection.
"""

import re
import logging
import threading
from collections import namedtuple
from datetime import datetime, timedelta

from linkgrab.config import ADMIN_IDS

# Platform tags
PLATFORM_YOUTUBE = 'youtube'
PLATFORM_TWITTER = 'twitter'
PLATFORM_INSTAGRAM = 'instagram'
PLATFORM_FACEBOOK = 'facebook'
PLATFORM_GENERIC = 'generic'

# Host fragments per platform, first match wins
PLATFORM_HOSTS = [
    (PLATFORM_YOUTUBE, ('youtube.com', 'youtu.be')),
    (PLATFORM_TWITTER, ('twitter.com', 'x.com')),
    (PLATFORM_INSTAGRAM, ('instagram.com',)),
    (PLATFORM_FACEBOOK, ('facebook.com', 'fb.com', 'fb.watch')),
]

# A fragment must start a host label, so "dropbox.com" is not "x.com"
_PLATFORM_PATTERNS = [
    (platform, re.compile('|'.join(r'(?<![a-z0-9-])' + re.escape(f) for f in fragments)))
    for platform, fragments in PLATFORM_HOSTS
]

# Platforms that get a quality selection keyboard
QUALITY_PLATFORMS = (PLATFORM_YOUTUBE, PLATFORM_TWITTER)

# Maximum pause length in hours
MAX_PAUSE_HOURS = 24

ADMIN_ONLY_MESSAGE = "⛔ Admin only command!"


def validate_url(text):
    """
    Checks that the message looks like a link we can try to download.

    Args:
        text: Message text

    Returns:
        bool: True if text starts with http:// or https://
    """
    return bool(text) and text.strip().lower().startswith(('http://', 'https://'))


def detect_platform(url):
    """
    Detects platform from URL.

    Args:
        url: Raw URL string

    Returns:
        str: One of the PLATFORM_* tags, PLATFORM_GENERIC if nothing matches
    """
    url_lower = url.lower()
    for platform, pattern in _PLATFORM_PATTERNS:
        if pattern.search(url_lower):
            return platform
    return PLATFORM_GENERIC


def is_admin(user_id):
    """Returns True if user is on the admin allow-list."""
    return user_id in ADMIN_IDS


class PauseState:
    """Process-wide pause switch with an optional resume time."""

    def __init__(self):
        self._lock = threading.Lock()
        self.paused = False
        self.until = None

    def pause(self, hours, now=None):
        """Pauses the bot for given number of hours, returns resume time."""
        now = now or datetime.now()
        with self._lock:
            self.paused = True
            self.until = now + timedelta(hours=hours)
            return self.until

    def resume(self):
        with self._lock:
            self.paused = False
            self.until = None

    def remaining(self, now=None):
        """
        Returns time left until resume.

        Returns:
            timedelta or None: None if not paused or the pause has expired
        """
        now = now or datetime.now()
        with self._lock:
            if not self.paused or self.until is None:
                return None
            if now >= self.until:
                # Expired pause
                self.paused = False
                self.until = None
                return None
            return self.until - now

    def notice(self, now=None):
        """Returns the pause message for users, or None if bot is active."""
        remaining = self.remaining(now)
        if remaining is None:
            return None
        total_minutes = int(remaining.total_seconds()) // 60
        hours = total_minutes // 60
        minutes = total_minutes % 60
        return (
            f"⏸️ Bot is paused\n"
            f"Will resume in: {hours}h {minutes}m"
        )


def parse_pause_hours(args):
    """
    Parses /pause argument.

    Args:
        args: Command arguments list

    Returns:
        int: Hours to pause, 1 when absent or invalid, capped at MAX_PAUSE_HOURS
    """
    hours = 1
    if args:
        try:
            hours = int(args[0])
        except (TypeError, ValueError):
            hours = 1
    if hours <= 0:
        hours = 1
    return min(hours, MAX_PAUSE_HOURS)


Session = namedtuple('Session', ['url', 'platform'])


class SessionStore:
    """
    Last submitted URL per user.

    Needed because callback_data has 64 byte limit. Not persisted,
    a restart loses pending selections.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._sessions = {}

    def remember(self, user_id, url, platform):
        with self._lock:
            self._sessions[user_id] = Session(url, platform)
        logging.debug(f"Stored session for user {user_id}: {platform}")

    def get(self, user_id):
        with self._lock:
            return self._sessions.get(user_id)

    def pop(self, user_id):
        """Returns and clears the session, None if there is none."""
        with self._lock:
            return self._sessions.pop(user_id, None)

    def forget(self, user_id):
        with self._lock:
            self._sessions.pop(user_id, None)


# State variables
pause_state = PauseState()
sessions = SessionStore()
