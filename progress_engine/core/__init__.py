"""Core Layer — pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - All functions are pure and deterministic (clocks are passed in, never read)

Design Decisions:
    - Functional core separated from imperative shell: rollup math, progress rules
      and ranking are testable without a database
"""
