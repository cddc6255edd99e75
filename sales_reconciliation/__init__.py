#Docstring for the package
"""
Sales Upload Reconciliation Pipeline

This package contains the modules for:

- Loading carrier sales-report exports (Excel / CSV)
- Cleaning and normalizing sale rows
- Attributing sales to staff (sub-producers)
- Matching sales to existing households, or creating new ones
- Recording sales in batches and reporting the outcome

Subpackages:
- core
- cleaning
- engines
- storage
- outputs

"""

#Import modules to be exposed at the package level
from . import core, cleaning, engines, storage, outputs
__all__ = [
    "core",
    "cleaning",
    "engines",
    "storage",
    "outputs",
]
