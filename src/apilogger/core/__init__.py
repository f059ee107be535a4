"""
Core interception pipeline components.

This package contains:
- Request identifier enrichment
- Sensitive data redaction
- Response recording and request body capture
- Route metadata extraction and skip rules
- Event emission to the configured sink
- Metrics collection
"""
