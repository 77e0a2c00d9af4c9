"""Pydantic Schemas — request/response contracts for the HTTP shell.

Invariants:
    - Schemas validate shape at the system boundary; domain rules live in core/
    - Domain enums from core/ used for enum fields

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
