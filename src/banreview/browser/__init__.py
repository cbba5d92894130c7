"""
Browser plumbing for the review run.

- **renderer.py**: `Renderer`/`RenderedPage` protocols and the Playwright
  implementation (navigation, rendered HTML capture, structured field
  extraction, clicks through shadow roots).
- **session.py**: Cookie-based session reuse and manual login fallback.
"""
