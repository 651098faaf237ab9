"""Budget realization ledger processing: spreadsheet cleaning, account hierarchy, overlay metrics."""

__version__ = "0.1.0"
