"""
Configuration management for banreview.

- **app_configuration.py**: YAML configuration loader for the review run.
  Exposes the target community, policy phrase, language settings, pacing,
  concurrency, decision thresholds, output locations and browser options.
  Falls back gracefully on missing or malformed config files.
"""
