"""Application layer: pipeline status services."""
