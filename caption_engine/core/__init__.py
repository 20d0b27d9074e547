"""Timed-word pipeline: transcript normalization and phrase grouping."""
