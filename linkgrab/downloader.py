"""
Downloader module for the link download bot.

Handles format discovery and media downloading via yt-dlp, with a plain
HTTP fallback for direct file links.
"""

import os
import re
import time
import logging
import mimetypes
from dataclasses import dataclass
from urllib.parse import urlparse, unquote

import requests
import yt_dlp

# Number of qualities offered to the user
MAX_FORMAT_CHOICES = 5

# Connect/read timeout for direct downloads (seconds)
DIRECT_DOWNLOAD_TIMEOUT = (10, 60)

DIRECT_CHUNK_SIZE = 8192

# Format expression used for audio-only downloads
AUDIO_FORMAT = 'bestaudio/best'


@dataclass(frozen=True)
class FormatDescriptor:
    """One downloadable encoding of a video."""

    format_id: str
    resolution: str
    note: str
    ext: str
    size_mb: float

    @property
    def label(self):
        return f"{self.note} ({self.resolution}) - {self.size_mb:.1f}MB"

    @property
    def width(self):
        """Width parsed from 'WxH' resolution, None if not available."""
        head, sep, _ = self.resolution.partition('x')
        if not sep:
            return None
        try:
            return int(head)
        except ValueError:
            return None


def sanitize_filename(filename):
    """
    Removes invalid characters from filename.

    Args:
        filename: Original filename

    Returns:
        str: Sanitized filename
    """
    invalid_chars = ['/', '\\', ':', '*', '?', '"', '<', '>', '|']
    for char in invalid_chars:
        filename = filename.replace(char, '-')
    return filename.strip()


def get_basic_ydl_opts():
    """
    Returns basic configuration for yt-dlp.

    Returns:
        dict: yt-dlp options dictionary
    """
    return {
        'quiet': True,
        'no_warnings': True,
        'noplaylist': True,
    }


def get_video_info(url):
    """
    Gets video information without downloading.

    Args:
        url: Video URL

    Returns:
        dict: Video info dictionary from yt-dlp
    """
    with yt_dlp.YoutubeDL(get_basic_ydl_opts()) as ydl:
        return ydl.extract_info(url, download=False)


def _format_sort_key(fmt):
    width = fmt.width
    return (width is None, -(width or 0), -fmt.size_mb)


def list_formats(url, max_size_mb):
    """
    Lists video formats that fit under the size limit, best first.

    Args:
        url: Video URL
        max_size_mb: Size ceiling in MB

    Returns:
        list: Up to MAX_FORMAT_CHOICES FormatDescriptor, empty list on error
    """
    try:
        info = get_video_info(url)
    except Exception as e:
        logging.error(f"Error getting formats for {url}: {e}")
        return []

    formats = []
    for fmt in (info or {}).get('formats') or []:
        # Skip formats without size
        filesize = fmt.get('filesize')
        if not filesize:
            continue

        # Skip audio-only for video selection
        resolution = fmt.get('resolution') or 'N/A'
        if fmt.get('vcodec') == 'none' or resolution == 'audio only':
            continue

        size_mb = filesize / (1024 * 1024)
        if size_mb > max_size_mb:
            continue

        note = fmt.get('format_note') or resolution
        formats.append(FormatDescriptor(
            format_id=str(fmt['format_id']),
            resolution=resolution,
            note=note,
            ext=fmt.get('ext', 'mp4'),
            size_mb=round(size_mb, 1),
        ))

    formats.sort(key=_format_sort_key)
    logging.info(f"Found {len(formats)} suitable formats for {url}")
    return formats[:MAX_FORMAT_CHOICES]


def _resolve_output_path(ydl, info):
    """Returns final file path, taking post-processing into account."""
    for download in info.get('requested_downloads') or []:
        if download.get('filepath'):
            return download['filepath']
    filename = ydl.prepare_filename(info)
    if not os.path.exists(filename):
        # Merged or converted output changes the extension
        merged = os.path.splitext(filename)[0] + '.mp4'
        if os.path.exists(merged):
            return merged
    return filename


def download_media(url, format_spec, download_dir, audio_only=False):
    """
    Downloads media with yt-dlp.

    Args:
        url: Media URL
        format_spec: yt-dlp format id or expression
        download_dir: Target directory
        audio_only: Convert result to MP3

    Returns:
        tuple: (file path, title). The path may not exist if yt-dlp
        produced no file.
    """
    logging.debug(f"Starting download for URL: {url}, format: {format_spec}...")

    ydl_opts = get_basic_ydl_opts()
    ydl_opts.update({
        'format': format_spec,
        'outtmpl': os.path.join(download_dir, '%(title).100s.%(ext)s'),
        'merge_output_format': 'mp4',
        'socket_timeout': 30,
        'retries': 3,
        'fragment_retries': 3,
        # Keep local mtime so the sweep measures age from download time
        'updatetime': False,
    })

    if audio_only:
        ydl_opts.update({
            'format': AUDIO_FORMAT,
            'postprocessors': [{
                'key': 'FFmpegExtractAudio',
                'preferredcodec': 'mp3',
                'preferredquality': '192',
            }],
        })

    with yt_dlp.YoutubeDL(ydl_opts) as ydl:
        info = ydl.extract_info(url, download=True)
        if info is None:
            raise RuntimeError("No media information returned")
        if 'entries' in info:
            info = info['entries'][0]
        file_path = _resolve_output_path(ydl, info)

    title = info.get('title') or os.path.basename(file_path)
    logging.info(f"Downloaded '{title}' to {file_path}")
    return file_path, title


def filename_from_url(url, content_type=None, content_disposition=None):
    """
    Builds local filename for a direct download.

    Args:
        url: File URL
        content_type: Content-Type header, used when no name is found
        content_disposition: Content-Disposition header, used when URL has no filename

    Returns:
        str: Sanitized filename
    """
    filename = sanitize_filename(os.path.basename(unquote(urlparse(url).path)))
    if len(filename) >= 3:
        return filename[:150]

    if content_disposition and 'filename=' in content_disposition:
        match = re.search(r'filename=["\']?([^"\';]+)["\']?', content_disposition)
        if match:
            filename = sanitize_filename(os.path.basename(match.group(1)))
            if len(filename) >= 3:
                return filename[:150]

    ext = None
    if content_type:
        ext = mimetypes.guess_extension(content_type.split(';')[0].strip())
    return f"file_{int(time.time())}{ext or '.bin'}"


def download_direct(url, download_dir):
    """
    Downloads a file over plain HTTP.

    Args:
        url: File URL
        download_dir: Target directory

    Returns:
        tuple: (file path, filename)
    """
    logging.info(f"Direct download: {url}")
    with requests.get(url, stream=True, timeout=DIRECT_DOWNLOAD_TIMEOUT) as response:
        response.raise_for_status()
        filename = filename_from_url(
            url,
            response.headers.get('content-type'),
            response.headers.get('content-disposition'),
        )
        file_path = os.path.join(download_dir, filename)

        with open(file_path, 'wb') as f:
            for chunk in response.iter_content(chunk_size=DIRECT_CHUNK_SIZE):
                if chunk:
                    f.write(chunk)

    return file_path, filename


def download_best_effort(url, download_dir):
    """
    Downloads a link that has no quality selection.

    Tries yt-dlp first and falls back to a direct HTTP download when
    yt-dlp cannot handle the URL.

    Returns:
        tuple: (file path, title)
    """
    try:
        return download_media(url, 'best', download_dir)
    except yt_dlp.utils.DownloadError as e:
        logging.info(f"yt-dlp cannot handle {url} ({e}), trying direct download")
        return download_direct(url, download_dir)
