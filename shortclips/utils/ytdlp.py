"""Video download: yt-dlp for streaming sites, plain HTTP for direct links."""
import asyncio
import logging
import re
import shutil
from pathlib import Path
from typing import List, Optional
from urllib.parse import unquote, urlparse

import httpx

from shortclips.config import settings
from shortclips.models.media import DownloadOptions, DownloadResult, VideoSource

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = {".mp4", ".mkv", ".webm", ".mov", ".avi"}
HTTP_DOWNLOAD_TIMEOUT_SECONDS = 600.0


class YtdlpError(Exception):
    """yt-dlp related error."""
    pass


def check_ytdlp_available() -> bool:
    """Check if yt-dlp is available."""
    return shutil.which(settings.ytdlp_path) is not None


def is_youtube_url(url: str) -> bool:
    """Check if a URL is a valid YouTube URL."""
    youtube_patterns = [
        r"^https?://(?:www\.|m\.)?youtube\.com/watch\?v=[\w-]+",
        r"^https?://(?:www\.)?youtube\.com/shorts/[\w-]+",
        r"^https?://youtu\.be/[\w-]+",
        r"^https?://(?:www\.)?youtube\.com/embed/[\w-]+",
    ]
    return any(re.match(pattern, url) for pattern in youtube_patterns)


def sanitize_filename(name: str) -> str:
    """Replace characters that are unsafe in file names."""
    cleaned = re.sub(r'[<>:"/\\|?*\x00-\x1f]', "_", name).strip(" .")
    return cleaned or "video"


def _target_dir(options: DownloadOptions, default_dir: Path) -> Path:
    """options.output_dir (or the default), plus the per-run subdir when given."""
    base = Path(options.output_dir) if options.output_dir else default_dir
    return base / options.subdir if options.subdir else base


def _find_downloaded_file(output_dir: Path, filename: str) -> Optional[Path]:
    for ext in ["mp4", "mkv", "webm", "mov"]:
        candidate = output_dir / f"{filename}.{ext}"
        if candidate.exists() and candidate.stat().st_size > 1000:
            return candidate
    return None


async def download_video(url: str, output_dir: Path, filename: str = "source") -> Path:
    """
    Download a video with yt-dlp at best quality.

    Args:
        url: Video page URL
        output_dir: Directory to save the video
        filename: Base filename without extension

    Returns:
        Path to downloaded video file

    Raises:
        YtdlpError: If yt-dlp fails or produces no video file
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    for partial in list(output_dir.glob("*.part")) + list(output_dir.glob("*.ytdl")):
        partial.unlink(missing_ok=True)

    output_template = str(output_dir / f"{filename}.%(ext)s")

    # bv* requires a video stream, so audio-only formats are never selected
    cmd = [
        settings.ytdlp_path,
        "-f", "bv*[ext=mp4]+ba[ext=m4a]/bv*[ext=mp4]+ba/bv*+ba/bv*",
        "--merge-output-format", "mp4",
        "-o", output_template,
        "--no-playlist",
        "--newline",
        "--force-overwrites",
        url,
    ]

    logger.info(f"Running yt-dlp command: {' '.join(cmd)}")

    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except FileNotFoundError as e:
        raise YtdlpError(f"yt-dlp not found: {e}")

    merged_path: Optional[Path] = None
    output_lines: List[str] = []

    try:
        while True:
            line = await proc.stdout.readline()
            if not line:
                break
            line_str = line.decode("utf-8", errors="ignore").strip()
            output_lines.append(line_str)

            merge_match = re.search(r'Merging formats into "(.+)"', line_str)
            if merge_match:
                merged_path = Path(merge_match.group(1))
        await proc.wait()
    except asyncio.CancelledError:
        proc.kill()
        await proc.wait()
        raise

    if proc.returncode != 0:
        logger.error("yt-dlp failed with output:\n" + "\n".join(output_lines[-20:]))
        raise YtdlpError("Download failed - check URL and try again")

    if merged_path and merged_path.exists():
        return merged_path

    final_path = _find_downloaded_file(output_dir, filename)
    if not final_path:
        logger.error("Last yt-dlp output:\n" + "\n".join(output_lines[-20:]))
        raise YtdlpError("Download completed but video file not found")

    return final_path


class YtdlpDownloader:
    """Downloader for streaming sites, backed by yt-dlp."""

    def __init__(self, default_dir: Optional[Path] = None):
        self.default_dir = Path(default_dir or settings.download_dir)

    async def download(self, source: VideoSource, options: DownloadOptions) -> DownloadResult:
        output_dir = _target_dir(options, self.default_dir)
        filename = sanitize_filename(source.title) if source.title else "source"
        try:
            path = await download_video(source.url, output_dir, filename)
        except YtdlpError as e:
            return DownloadResult(success=False, error=str(e))
        return DownloadResult(success=True, local_path=str(path))


class HttpDownloader:
    """Downloader for direct HTTP(S) links to a video file."""

    def __init__(
        self,
        default_dir: Optional[Path] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.default_dir = Path(default_dir or settings.download_dir)
        self._client = client

    def _target_path(self, source: VideoSource, output_dir: Path) -> Path:
        if source.title:
            name = sanitize_filename(source.title)
        else:
            name = sanitize_filename(Path(unquote(urlparse(source.url).path)).name)
        if Path(name).suffix.lower() not in VIDEO_EXTENSIONS:
            name += ".mp4"
        return output_dir / name

    async def download(self, source: VideoSource, options: DownloadOptions) -> DownloadResult:
        if urlparse(source.url).scheme not in ("http", "https"):
            return DownloadResult(success=False, error="Only HTTP/HTTPS URLs are supported")

        output_dir = _target_dir(options, self.default_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        local_path = self._target_path(source, output_dir)

        try:
            if self._client is not None:
                await self._stream_to_file(self._client, source.url, local_path)
            else:
                async with httpx.AsyncClient(
                    timeout=HTTP_DOWNLOAD_TIMEOUT_SECONDS,
                    follow_redirects=True,
                    headers={"User-Agent": f"{settings.app_name}/1.0"},
                ) as client:
                    await self._stream_to_file(client, source.url, local_path)
        except httpx.HTTPError as e:
            local_path.unlink(missing_ok=True)
            return DownloadResult(success=False, error=f"HTTP download failed: {e}")
        except OSError as e:
            local_path.unlink(missing_ok=True)
            return DownloadResult(success=False, error=f"Could not write {local_path}: {e}")
        except asyncio.CancelledError:
            local_path.unlink(missing_ok=True)
            raise

        logger.info(f"Downloaded {source.url} to {local_path}")
        return DownloadResult(success=True, local_path=str(local_path))

    async def _stream_to_file(self, client: httpx.AsyncClient, url: str, path: Path) -> None:
        async with client.stream("GET", url) as response:
            response.raise_for_status()
            with open(path, "wb") as f:
                async for chunk in response.aiter_bytes():
                    f.write(chunk)


class SourceRoutingDownloader:
    """Sends YouTube links to yt-dlp and everything else to plain HTTP."""

    def __init__(self, ytdlp: Optional[YtdlpDownloader] = None, http: Optional[HttpDownloader] = None):
        self.ytdlp = ytdlp or YtdlpDownloader()
        self.http = http or HttpDownloader()

    async def download(self, source: VideoSource, options: DownloadOptions) -> DownloadResult:
        if is_youtube_url(source.url):
            return await self.ytdlp.download(source, options)
        return await self.http.download(source, options)
