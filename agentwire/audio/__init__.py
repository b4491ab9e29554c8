"""Audio decoding, chunking and WAV encoding for client-side transcription."""

from agentwire.audio.chunker import AudioChunker, SampleRange, plan_ranges, split_audio
from agentwire.audio.decoder import decode_audio, load_audio_file, make_file_info
from agentwire.audio.wav import WAV_HEADER_SIZE, WavHeader, encode_wav, parse_wav_header

__all__ = [
    "AudioChunker",
    "SampleRange",
    "WAV_HEADER_SIZE",
    "WavHeader",
    "decode_audio",
    "encode_wav",
    "load_audio_file",
    "make_file_info",
    "parse_wav_header",
    "plan_ranges",
    "split_audio",
]
