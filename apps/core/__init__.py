"""
Core app - Shared abstractions and utilities.

This app provides platform-agnostic interfaces for:
- Task execution (TaskService)
- Queue draining and inspection for the Redis job queue

These abstractions allow switching between:
- Local development (sync execution)
- Redis list queue (serverless-friendly)
- AWS Lambda + SQS
- Celery + Redis
"""
