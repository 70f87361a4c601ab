class TabularParseError(Exception):
    """Raised when a CSV or spreadsheet cannot be turned into statement text."""
