"""Shared test fixtures for the caption_engine test suite.

WHY: Most tests need a measurer, and real font metrics differ between
machines. A deterministic measurer makes width expectations exact and
reproducible everywhere.

HOW: The ``measurer`` fixture is an EstimatingMeasurer (0.5 em per
character). Sample transcripts in each supported format are provided as
plain strings.

RULES:
- Tests never depend on system fonts, except the Pillow measurer tests
  which only use Pillow's bundled font
- Timed-word helpers produce deterministic, evenly spaced words
"""

from __future__ import annotations

import pytest

from caption_engine.core.ir import TimedWord
from caption_engine.layout.measurer import EstimatingMeasurer, reset_default_measurer


SAMPLE_SRT = """1
00:00:01,000 --> 00:00:03,000
hello world

2
00:00:03,500 --> 00:00:05,000
<i>how are</i> you
"""

SAMPLE_VTT = """WEBVTT

NOTE this block is a comment

intro
00:01.000 --> 00:02.500 align:start position:10%
Welcome back

00:00:03.000 --> 00:00:04.000
everyone
"""

SAMPLE_JSON = """{
  "language": "en",
  "words": [
    {"word": "Sales", "start": 0.0, "end": 0.4, "confidence": 0.98},
    {"word": "grew", "start": 0.45, "end": 0.8},
    {"text": "100%", "start": 0.85, "end": 1.3}
  ]
}"""


def make_words(texts, start_ms=0.0, word_ms=400.0, gap_ms=100.0):
    """Evenly spaced TimedWord list for the given tokens."""
    words = []
    t = start_ms
    for text in texts:
        words.append(TimedWord(word=text, start_ms=t, end_ms=t + word_ms))
        t += word_ms + gap_ms
    return words


@pytest.fixture
def measurer():
    """Deterministic 0.5-em-per-character measurer."""
    return EstimatingMeasurer()


@pytest.fixture
def sample_srt():
    return SAMPLE_SRT


@pytest.fixture
def sample_vtt():
    return SAMPLE_VTT


@pytest.fixture
def sample_json():
    return SAMPLE_JSON


@pytest.fixture(autouse=True)
def _fresh_default_measurer():
    """Every test starts without a cached process-wide measurer."""
    reset_default_measurer()
    yield
    reset_default_measurer()
