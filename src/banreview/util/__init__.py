"""
Shared utilities.

- **logger.py**: Console and file logging for the run. Uses prompt_toolkit for
  console output so log lines do not corrupt the manual-login prompt, and
  mirrors everything to ``result/log.txt``.
"""
