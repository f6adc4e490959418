"""
Core Replay Model (FINAL / FROZEN)

Invariants:
- Time is represented as integer epoch seconds; None means "unknown".
- Ratings are immutable historical facts.
- Windows are bounds over the immutable history, never copies.
- Rebuild state and metric state evolve only forward.

Core explicitly does NOT:
- Perform IO or file parsing
- Know about CSV / parquet / JSON
- Contain recommendation algorithms
"""
