"""Media acquisition pipeline.

This package resolves the retrieval tool, downloads one item at a time,
and coordinates upload and metadata persistence for submitted batches.
"""
