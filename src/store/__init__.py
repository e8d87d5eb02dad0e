"""Storage layer.

This module uploads media to object storage and writes metadata records
to the document store. It wraps boto3 handles built once at startup.
"""
