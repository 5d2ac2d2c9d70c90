"""
longscribe.validation - Dependency checks and size estimates.

Validates the environment before falling back to external decoders and
estimates encoded chunk sizes for planning output.
"""

from __future__ import annotations

import shutil
import subprocess

from longscribe.audio.wav import WAV_HEADER_SIZE
from longscribe.exceptions import DependencyError

FFMPEG_INSTALL_HINT = "Install with: brew install ffmpeg (macOS) or apt install ffmpeg (Linux)"


def check_ffmpeg() -> dict[str, str]:
    """Check if FFmpeg and FFprobe are installed and get versions.

    Returns:
        Dict with 'ffmpeg_version' and 'ffprobe_version'

    Raises:
        DependencyError: If FFmpeg or FFprobe not found
    """
    result = {}
    for tool in ("ffmpeg", "ffprobe"):
        tool_path = shutil.which(tool)
        if not tool_path:
            raise DependencyError(tool, f"{tool} not found in PATH", FFMPEG_INSTALL_HINT)

        try:
            proc = subprocess.run(
                [tool_path, "-version"],
                capture_output=True,
                text=True,
                timeout=5,
            )
            version_line = proc.stdout.split("\n")[0]
            result[f"{tool}_version"] = version_line.split()[2] if version_line else "unknown"
        except (subprocess.TimeoutExpired, IndexError):
            result[f"{tool}_version"] = "unknown"

    return result


def estimate_wav_size(duration_ms: float, sample_rate: int = 16000, bit_depth: int = 16) -> int:
    """Estimate mono WAV size in bytes for a given duration.

    Args:
        duration_ms: Audio duration in milliseconds
        sample_rate: Output sample rate
        bit_depth: 8 or 16

    Returns:
        Estimated size in bytes, header included
    """
    bytes_per_sample = bit_depth // 8
    samples = int(duration_ms * sample_rate / 1000)
    return WAV_HEADER_SIZE + samples * bytes_per_sample
