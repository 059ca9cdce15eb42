"""
Lambda Handlers - Entry points for AWS Lambda functions.

This module provides Lambda handlers for:
1. SQS Task Processing - Consumes messages from the task queue
2. Django API (via Mangum) - HTTP requests through API Gateway
3. Scheduled Events - EventBridge trigger draining the Redis queue

The handlers use Django's setup to access models and services.
"""

import os
import sys
import json
import logging

# Ensure the project root is in the path for Lambda
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Configure Django before importing any models
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

import django
django.setup()

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def sqs_task_handler(event, context):
    """
    AWS Lambda handler for SQS task messages.

    Event structure:
    {
        "Records": [
            {
                "body": "{\"task_id\": \"...\", \"task_name\": \"...\", \"payload\": {...}}"
            }
        ]
    }

    A failing record re-raises so SQS retries it and eventually moves it
    to the dead letter queue.
    """
    from apps.core.backends.local_backend import run_handler

    processed = 0

    for record in event.get('Records', []):
        try:
            message = json.loads(record['body'])
            task_id = message.get('task_id', 'unknown')
            task_name = message['task_name']

            logger.info(f"Processing task {task_name} (id={task_id})")
            result = run_handler(task_name, message.get('payload') or {})
            logger.info(f"Task {task_name} completed: {result}")
            processed += 1
        except Exception as e:
            logger.exception(f"Failed to process message: {e}")
            raise

    return {
        'statusCode': 200,
        'body': json.dumps({'processed': processed})
    }


def scheduled_process_queue(event, context):
    """
    EventBridge scheduled handler: drain one batch of the Redis task queue.

    Schedule: Every minute
    """
    from apps.core.task_service import get_backend_name
    from apps.core.backends.redis_backend import RedisTaskService

    if get_backend_name() != 'redis':
        logger.info("Skipping queue drain, TASK_BACKEND is not redis")
        return {'statusCode': 200, 'body': json.dumps({'skipped': True})}

    batch_size = int((event or {}).get('batch_size', 10))
    result = RedisTaskService().process_jobs(batch_size=batch_size)

    return {
        'statusCode': 200,
        'body': json.dumps(result)
    }


# =============================================================================
# Django API Handler (Mangum)
# =============================================================================

_asgi_handler = None

def api_handler(event, context):
    """
    AWS Lambda handler for HTTP requests via API Gateway.

    Uses Mangum to wrap Django's ASGI application.
    """
    global _asgi_handler

    if _asgi_handler is None:
        from mangum import Mangum
        from config.asgi import application
        _asgi_handler = Mangum(application, lifespan="off")

    return _asgi_handler(event, context)
