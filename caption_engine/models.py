"""Pydantic settings models for grouping, timing and text fitting.

WHY: Every tunable of the engine (line budgets, pause thresholds, padding
policy, font bounds) is shared by the preview and the export path. Typed,
validated, immutable settings objects make it impossible for one side to
run with a half-edited or nonsensical configuration.

HOW: Each settings surface is a frozen pydantic model with documented
defaults. Cross-field constraints (min_font_size <= base_font_size) are
checked with model validators. Call ``model_copy(update=...)`` to derive a
variant.

RULES:
- All models use Field(description=...) for self-documentation
- Models are frozen; a grouping or fitting run never sees mutation
- Defaults match the documented configuration surface
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator

from caption_engine.config import (
    DEFAULT_FONT_FAMILY,
    DEFAULT_FONT_WEIGHT,
    DEFAULT_LETTER_SPACING_EM,
)

LayoutMode = Literal["title", "paragraph"]


class GroupingConfig(BaseModel):
    """Thresholds that decide where one phrase group ends and the next begins.

    RULES:
    - One instance per grouping run
    - max_chars_per_line drives the character-width line count
    """

    max_chars_per_line: int = Field(
        default=32, ge=1, description="Maximum characters on one caption line."
    )
    max_lines_per_group: int = Field(
        default=2, ge=1, description="Maximum lines a phrase group may occupy."
    )
    max_words_per_group: int = Field(
        default=8, ge=1, description="Maximum words in one phrase group."
    )
    min_pause_for_break_ms: float = Field(
        default=300, ge=0, description="Silence (ms) after a word that forces a break."
    )
    prefer_break_on_punctuation: bool = Field(
        default=True, description="Break after words ending a sentence (. ! ?)."
    )

    model_config = {"frozen": True}


class TimingPolicy(BaseModel):
    """Merge and padding thresholds applied after grouping.

    WHY: The exact padding ratios are a tunable policy; the non-overlap
    invariant (end + safety_margin_ms <= next start) is the contract.
    """

    min_display_ms: float = Field(
        default=800, ge=0, description="Groups shorter than this are merged or extended."
    )
    pad_ms: float = Field(
        default=100, ge=0, description="Maximum lead-in and trail-out padding per group."
    )
    safety_margin_ms: float = Field(
        default=30, ge=0, description="Minimum spacing kept between adjacent groups."
    )
    lead_in_gap_ratio: float = Field(
        default=1 / 3,
        ge=0,
        le=1,
        description="Share of the gap before a group that its lead-in may borrow.",
    )
    min_window_ms: float = Field(
        default=50, gt=0, description="Last-resort minimum visible window."
    )

    model_config = {"frozen": True}


class FitSettings(BaseModel):
    """Bounds for the font-size / line-count solver."""

    max_lines: int = Field(default=3, ge=1, le=5, description="Most lines a caption may use.")
    panel_max_width_percent: float = Field(
        default=92, gt=0, le=100, description="Panel width as a percentage of the container."
    )
    base_font_size: int = Field(default=56, gt=0, description="Starting (largest) font size in px.")
    min_font_size: int = Field(default=12, gt=0, description="Smallest font size tried in px.")
    padding: float = Field(default=16, ge=0, description="Horizontal panel padding per side in px.")
    line_height: float = Field(default=1.1, gt=0, description="Line height multiplier.")
    font_family: str = Field(default=DEFAULT_FONT_FAMILY, description="CSS-style font family list.")
    font_weight: int = Field(default=DEFAULT_FONT_WEIGHT, ge=100, le=1000, description="Font weight.")
    letter_spacing_em: float = Field(
        default=DEFAULT_LETTER_SPACING_EM, description="Letter spacing in em (sign ignored when measuring)."
    )
    layout_mode: LayoutMode = Field(default="title", description="Line composer preset.")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_font_bounds(self) -> "FitSettings":
        if self.min_font_size > self.base_font_size:
            raise ValueError(
                "min_font_size ({}) must not exceed base_font_size ({})".format(
                    self.min_font_size, self.base_font_size
                )
            )
        return self
