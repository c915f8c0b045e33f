"""
Pydantic schema definitions for API payloads.

Schemas are separated from the SQL rows to decouple API representation
from persistence.
"""
