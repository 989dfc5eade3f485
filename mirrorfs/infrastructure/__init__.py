"""
Infrastructure layer - external service integrations.

- storage: Object storage (S3/R2 and in-memory)
"""
