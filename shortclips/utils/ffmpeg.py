"""FFmpeg and ffprobe utilities."""
import asyncio
import json
import logging
import shutil
from pathlib import Path
from typing import List

from shortclips.config import settings
from shortclips.models.media import RenderRequest, RenderResult

logger = logging.getLogger(__name__)


class FFmpegError(Exception):
    """FFmpeg related error."""
    pass


def check_ffmpeg_available() -> bool:
    """Check if ffmpeg is available."""
    return shutil.which(settings.ffmpeg_path) is not None


def check_ffprobe_available() -> bool:
    """Check if ffprobe is available."""
    return shutil.which(settings.ffprobe_path) is not None


def build_vertical_filter(width: int, height: int) -> str:
    """Fit the frame inside width x height and letterbox the rest (9:16 output)."""
    return (
        f"scale={width}:{height}:force_original_aspect_ratio=decrease,"
        f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2"
    )


def build_export_command(
    source_path: str | Path,
    output_path: str | Path,
    start_time: float,
    end_time: float,
    vertical: bool = False,
) -> List[str]:
    """Build the ffmpeg command line for a single trimmed clip."""
    duration = max(0.0, end_time - start_time)
    cmd = [
        settings.ffmpeg_path,
        "-y",
        "-ss", f"{start_time:.3f}",
        "-i", str(source_path),
        "-t", f"{duration:.3f}",
    ]
    if vertical:
        cmd += ["-vf", build_vertical_filter(settings.vertical_width, settings.vertical_height)]
    cmd += [
        "-c:v", settings.export_video_codec,
        "-preset", settings.export_video_preset,
        "-crf", str(settings.export_video_crf),
        "-c:a", settings.export_audio_codec,
        "-b:a", settings.export_audio_bitrate,
        "-movflags", "+faststart",
        str(output_path),
    ]
    return cmd


async def _run(cmd: List[str]) -> tuple[int, bytes, bytes]:
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await proc.communicate()
    except asyncio.CancelledError:
        proc.kill()
        await proc.wait()
        raise
    return proc.returncode, stdout, stderr


async def probe_duration(media_path: str | Path) -> float:
    """
    Read a media file's duration in seconds with ffprobe.

    The container duration is preferred; the first stream's duration is used
    when the container does not report one.

    Raises:
        FFmpegError: If the file is missing or ffprobe fails
    """
    media_path = Path(media_path)
    if not media_path.exists():
        raise FFmpegError(f"Media file not found: {media_path}")

    cmd = [
        settings.ffprobe_path,
        "-v", "error",
        "-print_format", "json",
        "-show_entries", "format=duration:stream=duration",
        str(media_path),
    ]

    try:
        returncode, stdout, stderr = await _run(cmd)
    except FileNotFoundError as e:
        raise FFmpegError(f"ffprobe not found: {e}")

    if returncode != 0:
        raise FFmpegError(f"ffprobe failed: {stderr.decode(errors='ignore')}")

    try:
        data = json.loads(stdout.decode())
    except json.JSONDecodeError as e:
        raise FFmpegError(f"Failed to parse ffprobe output: {e}")

    candidates = [data.get("format", {}).get("duration")]
    candidates += [s.get("duration") for s in data.get("streams", [])]
    for value in candidates:
        try:
            duration = float(value)
        except (TypeError, ValueError):
            continue
        if duration > 0:
            return duration

    raise FFmpegError(f"ffprobe reported no duration for {media_path}")


async def export_clip(
    source_path: str | Path,
    output_path: str | Path,
    start_time: float,
    end_time: float,
    vertical: bool = False,
) -> Path:
    """
    Export a clip from the source video.

    Args:
        source_path: Path to source video
        output_path: Path for output file
        start_time: Start time in seconds
        end_time: End time in seconds
        vertical: Letterbox into the configured 9:16 frame

    Returns:
        Path to exported clip
    """
    source_path = Path(source_path)
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    cmd = build_export_command(source_path, output_path, start_time, end_time, vertical)
    logger.debug(f"Running ffmpeg: {' '.join(cmd)}")

    try:
        returncode, _, stderr = await _run(cmd)
    except FileNotFoundError as e:
        raise FFmpegError(f"ffmpeg not found: {e}")

    if returncode != 0:
        raise FFmpegError(f"Export failed: {stderr.decode(errors='ignore')[-2000:]}")

    return output_path


async def extract_audio(video_path: str | Path, output_path: str | Path) -> Path:
    """Extract the audio track as mp3 (for transcription upload)."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    cmd = [
        settings.ffmpeg_path,
        "-y",
        "-i", str(video_path),
        "-vn",
        "-acodec", "libmp3lame",
        "-ar", "16000",
        "-ac", "1",
        "-b:a", "64k",
        str(output_path),
    ]

    try:
        returncode, _, stderr = await _run(cmd)
    except FileNotFoundError as e:
        raise FFmpegError(f"ffmpeg not found: {e}")

    if returncode != 0:
        raise FFmpegError(f"Audio extraction failed: {stderr.decode(errors='ignore')[-2000:]}")

    return output_path


class FfmpegClipRenderer:
    """Clip renderer backed by the ffmpeg CLI."""

    async def render(self, request: RenderRequest) -> RenderResult:
        if not Path(request.input_path).is_file():
            return RenderResult(success=False, error=f"Input video not found: {request.input_path}")
        if request.end <= request.start:
            return RenderResult(success=False, error="Empty clip range")

        output_path = Path(request.output_path)
        try:
            await export_clip(
                request.input_path, output_path, request.start, request.end, request.vertical
            )
        except FFmpegError as e:
            if output_path.exists():
                output_path.unlink(missing_ok=True)
            return RenderResult(success=False, error=str(e))

        duration = None
        try:
            duration = await probe_duration(output_path)
        except FFmpegError as e:
            logger.warning(f"Could not probe rendered clip {output_path}: {e}")

        return RenderResult(success=True, output_path=str(output_path), duration_seconds=duration)
