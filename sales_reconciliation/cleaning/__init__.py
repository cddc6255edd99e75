"""Sales-report cleaning: raw report frame -> SaleRow records."""

from .clean_sales import clean_sales_report, resolve_sales_columns

__all__ = [
    "clean_sales_report",
    "resolve_sales_columns",
]
