"""
Pacing and concurrency primitives for the review run.

- **rate_limiter.py**: Randomised delay before each externally visible action.
- **front_lock.py**: FIFO mutex guarding the single visible browser tab.
- **concurrency_pool.py**: Bounded pool that admits evaluation tasks one at a
  time and keeps at most ``limit`` of them in flight.
"""
