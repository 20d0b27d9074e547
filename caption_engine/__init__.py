"""Caption layout and timing engine.

WHY: Spoken-word transcripts have to become caption blocks that appear at
the right time and never clip, whether they are drawn by an interactive
preview or by a frame-accurate export renderer. Both must reach the same
layout decisions from the same inputs.

HOW: Four stages, each independently testable:
  parse   - transcript formats to timed words (core.parsers)
  group   - timed words to padded, non-overlapping phrase groups (core.grouping)
  fit     - text to a (lines, font size) plan for a container (layout)
  place   - canvas and safe-area geometry shared by both renderers (geometry)
CaptionEngine bundles them behind one object with an injected measurer.

RULES:
- Every operation is deterministic for identical inputs
- The measurer is the only shared resource; inject one for isolation
- Styling (colour, animation) and rendering are the caller's business
"""

from caption_engine.core.grouping import (
    add_display_padding,
    build_phrase_groups,
    group_words,
    merge_short_groups,
)
from caption_engine.core.ir import CaptionSetMeasurement, FitResult, PhraseGroup, TimedWord, Transcript
from caption_engine.core.parsers import TRANSCRIPT_FORMATS, detect_format, parse_transcript
from caption_engine.engine import CaptionEngine
from caption_engine.geometry import (
    CaptionGeometry,
    SafeZonePercents,
    compute_geometry,
    geometry_for_profile,
    resolve_safe_area,
)
from caption_engine.layout.batch import measure_caption_set
from caption_engine.layout.composer import compose_lines
from caption_engine.layout.fitter import fit_text_to_box
from caption_engine.layout.measurer import (
    BaseMeasurer,
    EstimatingMeasurer,
    MeasurementUnavailableError,
    PillowMeasurer,
    get_default_measurer,
)
from caption_engine.models import FitSettings, GroupingConfig, TimingPolicy

__version__ = "0.1.0"

__all__ = [
    "BaseMeasurer",
    "CaptionEngine",
    "CaptionGeometry",
    "CaptionSetMeasurement",
    "EstimatingMeasurer",
    "FitResult",
    "FitSettings",
    "GroupingConfig",
    "MeasurementUnavailableError",
    "PhraseGroup",
    "PillowMeasurer",
    "SafeZonePercents",
    "TRANSCRIPT_FORMATS",
    "TimedWord",
    "TimingPolicy",
    "Transcript",
    "add_display_padding",
    "build_phrase_groups",
    "compose_lines",
    "compute_geometry",
    "detect_format",
    "fit_text_to_box",
    "geometry_for_profile",
    "get_default_measurer",
    "group_words",
    "measure_caption_set",
    "merge_short_groups",
    "parse_transcript",
    "resolve_safe_area",
]
