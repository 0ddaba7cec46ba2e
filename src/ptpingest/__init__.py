"""ptpingest - download photos from PTP cameras into a date-ordered tree."""

__version__ = "0.1.0"
