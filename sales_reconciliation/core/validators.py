# Docstring for sales_reconciliation/core/validators module
"""
validators.py

Validation helpers for configuration objects, upload context and the
canonical sales frame produced during cleaning.

Public API
----------
- validate_matching_config(cfg) -> MatchingConfig
- validate_staff_match_config(cfg) -> StaffMatchConfig
- validate_batch_config(cfg) -> BatchConfig
- validate_upload_context(context) -> UploadContext
- validate_required_columns(df, required_cols, source_name) -> None
"""

from __future__ import annotations

from typing import Iterable

import pandas as pd

from ..config import BatchConfig, MatchingConfig, StaffMatchConfig
from .models import UploadContext


def validate_matching_config(cfg: MatchingConfig) -> MatchingConfig:
    weights = {
        "product_match_points": cfg.product_match_points,
        "premium_match_points": cfg.premium_match_points,
        "quote_date_points": cfg.quote_date_points,
        "sub_producer_points": cfg.sub_producer_points,
    }
    negative = [name for name, value in weights.items() if value < 0]
    if negative:
        raise ValueError(f"Scoring weights must be non-negative: {', '.join(negative)}")
    if not 0 <= cfg.premium_tolerance <= 1:
        raise ValueError(
            f"Invalid premium_tolerance: {cfg.premium_tolerance!r}. Expected a fraction between 0 and 1."
        )
    if cfg.min_auto_match_score > cfg.max_score:
        raise ValueError(
            f"min_auto_match_score {cfg.min_auto_match_score} can never be reached "
            f"(maximum possible score is {cfg.max_score})."
        )
    if cfg.min_score_gap < 0:
        raise ValueError(f"Invalid min_score_gap: {cfg.min_score_gap!r}. Expected >= 0.")
    if cfg.max_review_candidates < 1:
        raise ValueError(
            f"Invalid max_review_candidates: {cfg.max_review_candidates!r}. Expected >= 1."
        )
    return cfg


def validate_staff_match_config(cfg: StaffMatchConfig) -> StaffMatchConfig:
    if not 0 < cfg.min_token_ratio <= 1:
        raise ValueError(
            f"Invalid min_token_ratio: {cfg.min_token_ratio!r}. Expected a fraction in (0, 1]."
        )
    if cfg.min_matched_tokens < 1:
        raise ValueError(
            f"Invalid min_matched_tokens: {cfg.min_matched_tokens!r}. Expected >= 1."
        )
    return cfg


def validate_batch_config(cfg: BatchConfig) -> BatchConfig:
    if cfg.batch_size < 1:
        raise ValueError(f"Invalid batch_size: {cfg.batch_size!r}. Expected >= 1.")
    if cfg.progress_interval < 1:
        raise ValueError(
            f"Invalid progress_interval: {cfg.progress_interval!r}. Expected >= 1."
        )
    return cfg


def validate_upload_context(context: UploadContext) -> UploadContext:
    if not context.agency_id or not str(context.agency_id).strip():
        raise ValueError("Upload context requires an agency_id.")
    return context


def validate_required_columns(
    df: pd.DataFrame,
    required_cols: Iterable[str],
    source_name: str,
) -> None:
    """
    Ensure that the DataFrame has at least the required columns.

    Raises:
        ValueError: if any required column is missing.
    """
    missing = [col for col in required_cols if col not in df.columns]
    if missing:
        raise ValueError(
            f"{source_name}: missing required columns: {missing}. "
            f"Present columns: {list(df.columns)}"
        )
