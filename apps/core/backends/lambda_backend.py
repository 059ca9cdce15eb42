"""
Lambda Task Backend - Async execution via AWS SQS + Lambda.

This backend sends messages to SQS, which triggers the
lambda_handlers.sqs_task_handler function.

Usage:
    Set TASK_BACKEND=lambda in your .env file.

Environment Variables:
    TASK_QUEUE_URL: SQS queue URL for task messages
    AWS_REGION: AWS region (default: ap-southeast-1)
"""

import os
import json
import uuid
import logging
from typing import Any, Dict
from apps.core.task_service import TaskServiceInterface, TaskQueueError

logger = logging.getLogger(__name__)

# SQS caps DelaySeconds at 15 minutes
MAX_SQS_DELAY = 900


class LambdaTaskService(TaskServiceInterface):
    """
    Execute tasks via AWS SQS + Lambda.

    Messages carry the task name and payload; the consumer Lambda
    dispatches them through the shared handler registry.
    """

    def __init__(self, sqs_client=None):
        self._sqs_client = sqs_client
        self._queue_url = os.getenv('TASK_QUEUE_URL')

        if not self._queue_url:
            logger.warning(
                "[LAMBDA] TASK_QUEUE_URL not set. "
                "Lambda backend will fail on send_task."
            )

    @property
    def sqs_client(self):
        """Lazy initialization of SQS client."""
        if self._sqs_client is None:
            import boto3
            self._sqs_client = boto3.client(
                'sqs',
                region_name=os.getenv('AWS_REGION', 'ap-southeast-1')
            )
        return self._sqs_client

    def send_task(
        self,
        task_name: str,
        payload: Dict[str, Any],
        delay_seconds: int = 0,
    ) -> str:
        """Queue task via SQS."""
        task_id = str(uuid.uuid4())

        if not self._queue_url:
            raise TaskQueueError(
                "TASK_QUEUE_URL environment variable not set. "
                "Cannot send tasks to Lambda backend."
            )

        message_body = json.dumps({
            "task_id": task_id,
            "task_name": task_name,
            "payload": payload,
        }, default=str)

        logger.info(f"[LAMBDA] Sending task {task_name} to SQS (id={task_id})")

        try:
            response = self.sqs_client.send_message(
                QueueUrl=self._queue_url,
                MessageBody=message_body,
                DelaySeconds=min(delay_seconds, MAX_SQS_DELAY),
                MessageAttributes={
                    'TaskName': {
                        'DataType': 'String',
                        'StringValue': task_name,
                    },
                    'TaskId': {
                        'DataType': 'String',
                        'StringValue': task_id,
                    },
                },
            )
        except Exception as e:
            logger.exception(f"[LAMBDA] Failed to send task {task_name}: {e}")
            raise TaskQueueError(str(e)) from e

        logger.info(
            f"[LAMBDA] Task {task_name} queued. "
            f"SQS MessageId: {response['MessageId']}"
        )
        return task_id
