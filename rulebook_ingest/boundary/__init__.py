"""
Boundary layer for external system integrations.

Handles all interactions with external systems (database, vector store,
message broker).
"""
