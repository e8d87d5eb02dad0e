"""HTTP API for batch acquisition and channel listing."""
