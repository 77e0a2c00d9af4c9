"""Services Layer — the progress components and the orchestrating ProgressService.

Invariants:
    - Components depend on core/repository_protocols; only the build_* wiring
      functions name concrete SQL classes
    - One component per file (gate, aggregator, trigger, ranker, orchestration)

Design Decisions:
    - Constructor injection everywhere: tests swap in in-memory fakes
"""
