"""
banreview - Language-Ban Review Tool

banreview walks the ban list of one subreddit and decides, for every user
banned under the language rule, whether the ban should be reconsidered based
on the language of their past activity in the community.

Core Components:

- **Evidence Extractor**: Samples the user's posts and comments through
  community-scoped search, plus content removals from the moderation log
- **Language Classifier**: Detects the language of each sample; undetermined
  text counts in the user's favour
- **Unban Evaluator**: Deduplicates evidence per thread, computes the
  target-language ratio and issues a verdict
- **Concurrency Pool**: Evaluates many users at once under a hard ceiling,
  with the visible browser tab guarded by a FIFO lock
- **Pagination Driver**: Pages through the ban list and writes CSV reports
  incrementally

Usage:
    from banreview.main import main
    main()  # Logs in, reviews the ban list, writes result/*.csv
"""
