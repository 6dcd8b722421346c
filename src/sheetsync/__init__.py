"""SheetSync - incremental spreadsheet-to-API record synchronization."""

__version__ = "0.1.0"
