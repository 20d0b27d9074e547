"""Transcript normalizer: subtitle, JSON and plain-text input to timed words.

WHY: Transcripts arrive as SRT files, WebVTT files, word-level JSON from a
speech-to-text provider, or pasted plain text. Everything downstream needs
one canonical sequence of TimedWord objects, so every format is normalized
here and nowhere else.

HOW: One parser per format, plus an ordered registry of
(name, detector, parser) entries used for auto-detection:
  1. vtt  - content starts with the WEBVTT header
  2. json - content decodes (leniently) to a word array or {"words": [...]}
  3. srt  - numeric index line followed by a clock timestamp
  4. text - always matches; synthesizes timing
Block formats carry no word timing, so each cue's window is divided evenly
across its whitespace tokens.

RULES:
- Malformed cues, timestamps and JSON entries are skipped, never raised
- Only empty content yields an empty Transcript
- JSON start/end are seconds; everything else is converted to float ms
- Output words are ordered by start_ms (stable sort)
- Adding a format = one parser function + one TRANSCRIPT_FORMATS entry
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Callable

from jsonschema import Draft7Validator

from caption_engine.core.ir import TimedWord, Transcript

logger = logging.getLogger(__name__)

PLAIN_TEXT_WORD_MS = 300.0
PLAIN_TEXT_GAP_MS = 50.0

_TIMESTAMP_RE = re.compile(r"^(?:(\d+):)?(\d{1,2}):(\d{1,2})(?:[,.](\d{1,3}))?$")
_TIMING_LINE_RE = re.compile(r"^\s*(\S+)\s*-->\s*(\S+)")
_BLOCK_SPLIT_RE = re.compile(r"\n\s*\n")
_TAG_RE = re.compile(r"<[^>]*>")
_SRT_HEAD_RE = re.compile(r"^\d+\s*\n\s*(?:\d+:)?\d{1,2}:\d{2}")
_VTT_META_BLOCKS = ("NOTE", "STYLE", "REGION")

# Closing sequences tried when a JSON payload was cut off mid-stream.
_JSON_COMPLETIONS = ("", "]", "}]", "}]}", "]}", "]}}", "]}]")

WORD_ENTRY_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "word": {"type": "string"},
        "text": {"type": "string"},
        "start": {"type": "number"},
        "end": {"type": "number"},
        "confidence": {"type": ["number", "null"]},
    },
    "required": ["start", "end"],
    "anyOf": [{"required": ["word"]}, {"required": ["text"]}],
}
"""JSON Schema for one structured word entry (times in seconds)."""

_WORD_ENTRY_VALIDATOR = Draft7Validator(WORD_ENTRY_SCHEMA)


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


def parse_timestamp(value: str) -> float | None:
    """Parse ``HH:MM:SS,mmm`` / ``MM:SS.mmm`` into milliseconds.

    Returns None for anything that is not a clock value, so callers can skip
    the offending cue instead of failing the whole file.
    """
    match = _TIMESTAMP_RE.match(value.strip())
    if not match:
        return None
    hours = int(match.group(1) or 0)
    minutes = int(match.group(2))
    seconds = int(match.group(3))
    millis = int((match.group(4) or "0").ljust(3, "0")[:3])
    return float(hours * 3_600_000 + minutes * 60_000 + seconds * 1000 + millis)


def _parse_timing_line(line: str) -> tuple[float, float] | None:
    match = _TIMING_LINE_RE.match(line)
    if not match:
        return None
    start = parse_timestamp(match.group(1))
    end = parse_timestamp(match.group(2))
    if start is None or end is None or end < start:
        return None
    return start, end


def _spread_evenly(tokens: list[str], start_ms: float, end_ms: float) -> list[TimedWord]:
    step = (end_ms - start_ms) / len(tokens)
    words = []
    for i, token in enumerate(tokens):
        word_end = end_ms if i == len(tokens) - 1 else start_ms + (i + 1) * step
        words.append(TimedWord(word=token, start_ms=start_ms + i * step, end_ms=word_end))
    return words


def _normalize_newlines(content: str) -> str:
    return content.lstrip("\ufeff").replace("\r\n", "\n").replace("\r", "\n")


# ---------------------------------------------------------------------------
# Block / cue formats
# ---------------------------------------------------------------------------


def _split_cues(lines: list[str]) -> list[tuple[str, list[str]]]:
    """Pair each arrow timing line in a block with the text lines after it.

    Lines before the first timing line (index number, cue identifier) are
    dropped. A bare index number directly above a later timing line belongs
    to that cue's header, not to the previous cue's text.
    """
    cues: list[tuple[str, list[str]]] = []
    for line in lines:
        if "-->" in line:
            if cues and cues[-1][1] and cues[-1][1][-1].isdigit():
                cues[-1][1].pop()
            cues.append((line, []))
        elif cues:
            cues[-1][1].append(line)
    return cues


def _parse_cue_blocks(content: str, source_format: str) -> Transcript:
    """Shared SRT / WebVTT block walker.

    Every arrow timing line starts a new cue, so cues that are not separated
    by blank lines still come apart; a line holding "-->" is never cue text.
    """
    words: list[TimedWord] = []
    max_end = 0.0

    for block in _BLOCK_SPLIT_RE.split(_normalize_newlines(content).strip()):
        lines = [line.strip() for line in block.split("\n") if line.strip()]
        if not lines or lines[0].startswith(_VTT_META_BLOCKS):
            continue

        for timing_line, text_lines in _split_cues(lines):
            window = _parse_timing_line(timing_line)
            if window is None:
                logger.debug("Skipping cue with unparseable timing: %r", timing_line)
                continue
            start_ms, end_ms = window
            max_end = max(max_end, end_ms)

            tokens = _TAG_RE.sub("", " ".join(text_lines)).split()
            if tokens:
                words.extend(_spread_evenly(tokens, start_ms, end_ms))

    words.sort(key=lambda w: w.start_ms)
    return Transcript(words=words, duration_ms=max_end, source_format=source_format)


def parse_srt(content: str) -> Transcript:
    """Parse SubRip blocks, synthesizing per-word timing inside each cue."""
    return _parse_cue_blocks(content, "srt")


def parse_vtt(content: str) -> Transcript:
    """Parse WebVTT cues; cue settings after the end timestamp are ignored."""
    return _parse_cue_blocks(content, "vtt")


# ---------------------------------------------------------------------------
# Structured JSON words
# ---------------------------------------------------------------------------


def load_json_lenient(raw: str) -> Any | None:
    """Decode JSON, completing missing closing brackets if needed.

    WHY: Word lists are often pasted from larger provider responses and lose
    their closing brackets. Recovering them is cheaper than rejecting the
    whole transcript.

    HOW: Only attempted when the content starts with '[' or '{'. Tries the
    raw text, then the text without a trailing comma, each with a set of
    closing suffixes.

    RULES:
    - Never raises; returns None when nothing decodes
    """
    raw = _normalize_newlines(raw).strip()
    if not raw or raw[0] not in "[{":
        return None

    candidates = [raw]
    trimmed = re.sub(r",\s*$", "", raw)
    if trimmed != raw:
        candidates.insert(0, trimmed)

    for candidate in candidates:
        for suffix in _JSON_COMPLETIONS:
            try:
                return json.loads(candidate + suffix)
            except json.JSONDecodeError:
                continue
    return None


def _word_entries(payload: Any) -> list[Any] | None:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("words"), list):
        return payload["words"]
    return None


def parse_json_words(payload: Any) -> Transcript:
    """Convert decoded ``[{word, start, end, confidence?}]`` data to a Transcript.

    Accepts either the bare list or an object with a ``words`` list (and an
    optional ``language``). ``text`` is accepted in place of ``word``.
    """
    entries = _word_entries(payload) or []
    language = payload.get("language") if isinstance(payload, dict) else None

    words: list[TimedWord] = []
    for index, entry in enumerate(entries):
        if not _WORD_ENTRY_VALIDATOR.is_valid(entry):
            logger.debug("Skipping invalid word entry #%d: %r", index, entry)
            continue
        text = str(entry.get("word", entry.get("text", ""))).strip()
        start_ms = round(float(entry["start"]) * 1000, 3)
        end_ms = round(float(entry["end"]) * 1000, 3)
        if not (math.isfinite(start_ms) and math.isfinite(end_ms)):
            logger.debug("Skipping word entry #%d with non-finite timing", index)
            continue
        if not text or end_ms < start_ms:
            logger.debug("Skipping empty or inverted word entry #%d", index)
            continue
        confidence = entry.get("confidence")
        words.append(TimedWord(
            word=text,
            start_ms=start_ms,
            end_ms=end_ms,
            confidence=float(confidence) if confidence is not None else None,
        ))

    words.sort(key=lambda w: w.start_ms)
    duration = max((w.end_ms for w in words), default=0.0)
    return Transcript(
        words=words,
        duration_ms=duration,
        language=language if isinstance(language, str) else None,
        source_format="json",
    )


def parse_json_content(content: str) -> Transcript:
    """Parse a JSON string; undecodable content yields an empty Transcript."""
    payload = load_json_lenient(content)
    if payload is None:
        logger.debug("JSON content could not be decoded")
        return Transcript(source_format="json")
    return parse_json_words(payload)


# ---------------------------------------------------------------------------
# Plain text
# ---------------------------------------------------------------------------


def parse_plain_text(content: str) -> Transcript:
    """Give untimed text a synthetic 300 ms per word, 50 ms apart."""
    words: list[TimedWord] = []
    cursor = 0.0
    for token in content.split():
        words.append(TimedWord(word=token, start_ms=cursor, end_ms=cursor + PLAIN_TEXT_WORD_MS))
        cursor += PLAIN_TEXT_WORD_MS + PLAIN_TEXT_GAP_MS
    duration = words[-1].end_ms if words else 0.0
    return Transcript(words=words, duration_ms=duration, source_format="text")


# ---------------------------------------------------------------------------
# Format registry and auto-detection
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TranscriptFormat:
    """One auto-detectable input format."""

    name: str
    detect: Callable[[str], bool]
    parse: Callable[[str], Transcript]


def _looks_like_vtt(content: str) -> bool:
    return content.startswith("WEBVTT")


def _looks_like_json_words(content: str) -> bool:
    return _word_entries(load_json_lenient(content)) is not None


def _looks_like_srt(content: str) -> bool:
    return bool(_SRT_HEAD_RE.match(content))


TRANSCRIPT_FORMATS: list[TranscriptFormat] = [
    TranscriptFormat("vtt", _looks_like_vtt, parse_vtt),
    TranscriptFormat("json", _looks_like_json_words, parse_json_content),
    TranscriptFormat("srt", _looks_like_srt, parse_srt),
    TranscriptFormat("text", lambda content: True, parse_plain_text),
]
"""Detection order matters: first matching detector wins."""


def detect_format(content: str) -> str:
    """Return the name of the first registered format whose detector matches."""
    trimmed = _normalize_newlines(content).strip()
    for fmt in TRANSCRIPT_FORMATS:
        if fmt.detect(trimmed):
            return fmt.name
    return "text"


def parse_transcript(content: str, fmt: str = "auto") -> Transcript:
    """Normalize transcript ``content`` into a Transcript.

    WHY: Single entry point used by preview and export alike, so both see the
    same words for the same upload.

    HOW: Resolves ``fmt`` ("auto" runs the detectors in registry order) and
    delegates to the matching parser.

    RULES:
    - Empty or whitespace-only content returns an empty Transcript
    - Unknown format names raise ValueError
    """
    formats = {f.name: f for f in TRANSCRIPT_FORMATS}
    if fmt != "auto" and fmt not in formats:
        raise ValueError(
            "Unknown transcript format '{}'. Available: auto, {}".format(
                fmt, ", ".join(formats.keys())
            )
        )

    trimmed = _normalize_newlines(content).strip()
    if not trimmed:
        return Transcript(source_format=None if fmt == "auto" else fmt)

    name = detect_format(trimmed) if fmt == "auto" else fmt
    logger.debug("Parsing transcript as %s (%d chars)", name, len(trimmed))
    return formats[name].parse(trimmed)
