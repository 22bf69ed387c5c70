"""Transport encoding for live session audio.

Outbound frames are float32 samples in [-1, 1] converted to 16-bit
little-endian PCM. Inbound chunks arrive as PCM bytes (or base64 text) and
are decoded back to float32 at the playback rate.
"""

import re
import base64
import binascii
import logging
from math import gcd
from typing import Optional, Union

import numpy as np
from scipy.signal import resample_poly

from ..errors import DecodeError
from ..models.audio import EncodedAudioChunk

logger = logging.getLogger(__name__)

PCM_MIME_TYPE = "audio/pcm"
_RATE_RE = re.compile(r'rate=(\d+)')


def pcm_mime_type(sample_rate: int) -> str:
    return f"{PCM_MIME_TYPE};rate={sample_rate}"


def parse_sample_rate(mime_type: Optional[str], default: int) -> int:
    """Extract the sample rate from a MIME type such as 'audio/pcm;rate=24000'."""
    if not mime_type:
        return default
    match = _RATE_RE.search(mime_type)
    if not match:
        return default
    rate = int(match.group(1))
    return rate if rate > 0 else default


def encode_frame(samples: np.ndarray, sample_rate: int, sequence_number: int = 0) -> EncodedAudioChunk:
    """Convert a block of float32 samples to a PCM transport chunk.

    Args:
        samples: Mono float32 samples, nominally in [-1, 1]
        sample_rate: Capture sample rate in Hz
        sequence_number: Position of this frame in the capture stream

    Returns:
        Immutable EncodedAudioChunk
    """
    clipped = np.clip(np.asarray(samples, dtype=np.float32), -1.0, 1.0)
    pcm = (clipped * 32767.0).astype('<i2')
    return EncodedAudioChunk(
        data=pcm.tobytes(),
        mime_type=pcm_mime_type(sample_rate),
        sample_rate=sample_rate,
        sequence_number=sequence_number,
    )


def resample(samples: np.ndarray, from_rate: int, to_rate: int) -> np.ndarray:
    if from_rate == to_rate:
        return samples
    divisor = gcd(from_rate, to_rate)
    resampled = resample_poly(samples, to_rate // divisor, from_rate // divisor)
    return resampled.astype(np.float32)


def decode_chunk(data: Union[bytes, str],
                 output_rate: int,
                 mime_type: Optional[str] = None,
                 channels: int = 1) -> np.ndarray:
    """Decode an inbound PCM chunk into mono float32 samples at output_rate.

    Args:
        data: 16-bit little-endian PCM, as bytes or base64 text
        output_rate: Playback sample rate the result must match
        mime_type: Optional MIME type carrying the chunk's sample rate
        channels: Interleaved channel count of the PCM data

    Returns:
        Read-only float32 array of samples

    Raises:
        DecodeError: If the chunk is empty, not valid base64, or not whole samples
    """
    if isinstance(data, str):
        try:
            data = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecodeError(f"Invalid base64 audio payload: {e}") from e

    if not data:
        raise DecodeError("Empty audio chunk")

    frame_bytes = 2 * channels
    if len(data) % frame_bytes != 0:
        raise DecodeError(f"Audio chunk of {len(data)} bytes is not a whole number of {channels}-channel 16-bit frames")

    pcm = np.frombuffer(data, dtype='<i2')
    samples = pcm.astype(np.float32) / 32768.0
    if channels > 1:
        samples = samples.reshape(-1, channels).mean(axis=1).astype(np.float32)

    chunk_rate = parse_sample_rate(mime_type, output_rate)
    if chunk_rate != output_rate:
        logger.debug(f"Resampling inbound chunk from {chunk_rate}Hz to {output_rate}Hz")
        samples = resample(samples, chunk_rate, output_rate)

    samples.setflags(write=False)
    return samples
