"""Layout-mode presets and tuning constants for caption composition.

WHY: Short "title" captions and longer "paragraph" captions need different
line targets. Keeping those targets and the composer's scoring weights as
plain importable dicts lets callers pick a mode by name and lets the
numbers be tuned without touching the search code.

HOW: Each layout-mode preset is a dict with hard limits (max_lines), a soft
target range (target_words_per_line), the numeric single-word rule, and a
nested 'weights' dict consumed by the line composer's penalty function.
LAYOUT_PRESETS maps mode names to presets. The remaining constants are the
fixed thresholds shared by the fitter, batch normalizer and grouper.

RULES:
- Presets are frozen constants; never mutate them at runtime.
- resolve_layout_preset() returns a deep copy, callers may modify that.
- Unknown layout modes raise ValueError.
"""

from __future__ import annotations

import copy
from typing import Any

COMPOSER_WEIGHTS: dict[str, float] = {
    "single_word_last_line": 1000.0,
    "words_over_max": 50.0,
    "words_under_min": 20.0,
    "imbalance_per_char": 2.0,
    "last_line_long": 30.0,
    "last_line_long_ratio": 1.5,
    "middle_line_short": 25.0,
    "middle_line_short_ratio": 0.4,
    "per_line": 0.5,
}

# Short, punchy text: few lines, 2-4 words each
PRESET_TITLE: dict[str, Any] = {
    "max_lines": 3,
    "target_words_per_line": (2, 4),
    "allow_single_word_numbers": True,
    "weights": COMPOSER_WEIGHTS,
}

# Longer running text: up to 5 lines, 3-6 words each
PRESET_PARAGRAPH: dict[str, Any] = {
    "max_lines": 5,
    "target_words_per_line": (3, 6),
    "allow_single_word_numbers": True,
    "weights": COMPOSER_WEIGHTS,
}

LAYOUT_PRESETS: dict[str, dict[str, Any]] = {
    "title": PRESET_TITLE,
    "paragraph": PRESET_PARAGRAPH,
}

# ---------------------------------------------------------------------------
# Fitting thresholds
# ---------------------------------------------------------------------------

FIT_SAFETY_MARGIN = 0.08
"""Fraction of the inner panel width held back before any measurement."""

FONT_SIZE_STEP = 2
"""Font size decrement (px) between fit attempts."""

LONG_TOKEN_CHARS = 25
"""Words longer than this are reported as unbreakable in fit warnings."""

RENDER_TOLERANCE_EM = 0.08
"""Fixed per-measurement buffer, as a fraction of the font size."""

BATCH_SCALE_THRESHOLD = 0.85
"""Below this shared scale, outliers shrink individually instead."""

# ---------------------------------------------------------------------------
# Grouping defaults
# ---------------------------------------------------------------------------

SENTENCE_END_CHARS = ".!?"


def resolve_layout_preset(layout_mode: str) -> dict[str, Any]:
    """Return a private copy of the preset for ``layout_mode``."""
    if layout_mode not in LAYOUT_PRESETS:
        raise ValueError(
            "Unknown layout mode '{}'. Available: {}".format(
                layout_mode, ", ".join(LAYOUT_PRESETS.keys())
            )
        )
    return copy.deepcopy(LAYOUT_PRESETS[layout_mode])
