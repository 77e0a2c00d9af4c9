"""Infrastructure Layer — SQL repositories, session management and logging setup.

Invariants:
    - Every class here implements a Protocol from core/repository_protocols.py
    - All SQL lives in this package; services never build queries
"""
