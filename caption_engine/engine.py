"""CaptionEngine: one object wiring parsing, grouping and fitting together.

WHY: The live preview and the export renderer must make identical layout
decisions. Giving both the same engine object (same measurer, same
settings, same geometry) means they call exactly the same code path with
exactly the same inputs.

HOW: The engine holds an injected measurer plus frozen settings models and
a CaptionGeometry, and forwards to the pure module functions. Without an
explicit measurer it resolves the shared default lazily, on the first call
that actually measures text.

RULES:
- The engine keeps no per-call state; results are never cached
- Two engines with different measurers never share measurement state
- fit() / fit_set() default to geometry.available_caption_width
- The default geometry is compute_geometry(), the same canvas every renderer
  derives without arguments
"""

from __future__ import annotations

from typing import Sequence

from caption_engine.core.grouping import build_phrase_groups
from caption_engine.core.ir import CaptionSetMeasurement, FitResult, PhraseGroup, TimedWord, Transcript
from caption_engine.core.parsers import parse_transcript
from caption_engine.geometry.contract import CaptionGeometry, compute_geometry
from caption_engine.layout.batch import measure_caption_set
from caption_engine.layout.fitter import fit_text_to_box
from caption_engine.layout.measurer import BaseMeasurer
from caption_engine.models import FitSettings, GroupingConfig, TimingPolicy


class CaptionEngine:
    """Facade over the caption layout and timing pipeline."""

    def __init__(
        self,
        measurer: BaseMeasurer | None = None,
        fit_settings: FitSettings | None = None,
        grouping_config: GroupingConfig | None = None,
        timing_policy: TimingPolicy | None = None,
        geometry: CaptionGeometry | None = None,
    ) -> None:
        self.measurer = measurer
        self.fit_settings = fit_settings or FitSettings()
        self.grouping_config = grouping_config or GroupingConfig()
        self.timing_policy = timing_policy or TimingPolicy()
        self.geometry = geometry or compute_geometry()

    def parse(self, content: str, fmt: str = "auto") -> Transcript:
        return parse_transcript(content, fmt)

    def group(self, source: Transcript | Sequence[TimedWord]) -> list[PhraseGroup]:
        """Group, merge and pad words into display-ready phrase groups."""
        return build_phrase_groups(source, self.grouping_config, self.timing_policy)

    def fit(self, text: str, container_width: float | None = None) -> FitResult:
        """Fit one caption; the container defaults to the geometry's caption width."""
        width = self.geometry.available_caption_width if container_width is None else container_width
        return fit_text_to_box(text, width, self.fit_settings, self.measurer)

    def fit_set(self, captions: Sequence[str], container_width: float | None = None) -> CaptionSetMeasurement:
        width = self.geometry.available_caption_width if container_width is None else container_width
        return measure_caption_set(captions, width, self.fit_settings, self.measurer)
