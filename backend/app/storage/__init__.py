"""Upload staging and retention module.

Photos posted to ``/upload`` are written to ``public/uploads`` as
``plant-<epoch_millis><ext>`` so the result page can link to them. A
background sweeper deletes anything older than the retention window (one
hour by default); the ``.gitkeep`` placeholder is always kept.
"""
from .schemas import SweepReport, UploadRecord
from .service import BootstrapFailure, UploadFailure, UploadStorage, bootstrap_directories
from .sweeper import RetentionSweeper, SweepEntryFailure

__all__ = [
    "UploadRecord",
    "SweepReport",
    "UploadStorage",
    "UploadFailure",
    "BootstrapFailure",
    "bootstrap_directories",
    "RetentionSweeper",
    "SweepEntryFailure",
]
