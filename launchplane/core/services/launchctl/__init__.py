"""launchctl output parsing, classification and action execution."""
