"""Slide image intake."""

from .inference import build_slide_records, infer_time_from_filename, is_slide_image

__all__ = ["build_slide_records", "infer_time_from_filename", "is_slide_image"]
