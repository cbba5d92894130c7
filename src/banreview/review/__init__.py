"""
Review pipeline.

- **evaluator.py**: Per-user state machine that screens the ban reason,
  gathers and classifies evidence, deduplicates it and issues a `Verdict`.
- **pagination.py**: Walks the ban list pages, feeding new users through the
  concurrency pool and persisting verdicts page by page.
"""
