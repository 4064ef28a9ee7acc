"""Pydantic Schemas — request validation and model-output contracts.

Invariants:
    - Schemas validate at system boundaries (user input, model output)
"""
