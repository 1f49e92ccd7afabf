"""
Task modules for the chunking stage.

Exports: ChunkingTask, extract_page_number
"""

from .chunking_task import ChunkingTask, extract_page_number

__all__ = [
    "ChunkingTask",
    "extract_page_number",
]
