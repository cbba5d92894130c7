"""
Evidence sources for a banned user.

- **extractor.py**: Search-result and moderation-log sampling, plus the HTML
  parsers that turn captured pages into `EvidenceRecord` objects.
- **language.py**: Text to language-code classification with lenient handling
  of undetermined text.
"""
