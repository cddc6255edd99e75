"""Excel exports of upload results."""

from .export_utils import (
    pending_reviews_frame,
    upload_result_frames,
    write_df_excel,
    write_multi_sheet_excel,
    write_upload_report,
)

__all__ = [
    "pending_reviews_frame",
    "upload_result_frames",
    "write_df_excel",
    "write_multi_sheet_excel",
    "write_upload_report",
]
