"""Intermediate representation dataclasses for timed words and layout results.

WHY: Transcript formats, the phrase grouper, the box fitter and the two
renderers all pass the same records around. One set of well-typed records
is the stable contract between parsing, grouping, fitting and rendering.

HOW: Plain dataclasses form the hierarchy:
  TimedWord             - one word with a millisecond window
  Transcript            - the canonical word sequence of one source
  PhraseGroup           - one on-screen caption block
  FitResult             - a (lines, font size) decision for one caption
  CaptionSetMeasurement - shared scale decision for a set of captions

RULES:
- All times are float milliseconds
- TimedWord is frozen; parsers create it, nothing mutates it afterwards
- PhraseGroup.words is a contiguous, non-empty slice of the source words
- Layout records are produced per call and are never cached as state
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class TimedWord:
    """A single spoken word with its display window.

    RULES:
    - start_ms <= end_ms
    - confidence is None when the source carries no score
    """

    word: str
    start_ms: float
    end_ms: float
    confidence: float | None = None


@dataclass
class Transcript:
    """Canonical word sequence produced by the transcript normalizer.

    RULES:
    - words are ordered by start_ms, non-decreasing
    - duration_ms is the largest end_ms seen (or synthesized end time)
    - source_format names the parser that produced the transcript
    """

    words: list[TimedWord] = field(default_factory=list)
    duration_ms: float = 0.0
    language: str | None = None
    source_format: str | None = None


@dataclass
class PhraseGroup:
    """One caption block: a contiguous run of words shown together.

    RULES:
    - len(lines) <= GroupingConfig.max_lines_per_group
    - start_ms / end_ms start as first word start / last word end and are
      only changed by the padding pass
    """

    id: str
    lines: list[str]
    words: list[TimedWord]
    start_ms: float
    end_ms: float

    @property
    def text(self) -> str:
        return " ".join(w.word for w in self.words)

    @property
    def duration_ms(self) -> float:
        return self.end_ms - self.start_ms


@dataclass
class FitResult:
    """Outcome of fitting one caption into a container.

    RULES:
    - fitted=False means a best-effort plan at min_font_size; warning says why
    - available_width is the width every line was tested against
    - overflow_log is a human-readable diagnostic trail, one entry per step
    """

    lines: list[str]
    font_size: int
    line_count: int
    panel_width: float
    available_width: float
    fitted: bool
    warning: str | None = None
    overflow_log: list[str] = field(default_factory=list)


@dataclass
class CaptionSetMeasurement:
    """Shared scale for a caption set plus the per-caption fits."""

    global_scale_factor: float
    individual_results: list[FitResult]
    smallest_font_size: int
    base_font_size: int
