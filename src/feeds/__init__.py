"""Channel listing sources.

This package discovers recent uploads for channels so operators can
pick items to submit as an acquisition batch.
"""
