"""CSV output for review verdicts (full report and unban-only report)."""
