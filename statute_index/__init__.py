"""Statute segmentation, embedding, vector indexing and section retrieval."""
