"""Approximate nearest-neighbour indexes."""

from memoria.index.project_index import ProjectIndex

__all__ = ["ProjectIndex"]
