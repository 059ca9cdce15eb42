"""
Tests for the task backends and the queue endpoints.

The Redis client is replaced with a small in-memory list store.
"""
import json
from io import StringIO
from unittest.mock import patch, MagicMock
from uuid import uuid4

from django.test import TestCase, Client, override_settings
from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import CommandError

from apps.core.backends import local_backend
from apps.core.backends.celery_backend import CeleryTaskService
from apps.core.backends.lambda_backend import LambdaTaskService
from apps.core.backends.local_backend import LocalTaskService, run_handler
from apps.core.backends.redis_backend import RedisTaskService
from apps.core.task_service import TaskService, TaskQueueError
from apps.identity.models import UserRole


User = get_user_model()


class FakeRedis:
    """Just enough of the redis-py list API for the queue backend."""

    def __init__(self):
        self.lists = {}

    def lpush(self, key, value):
        self.lists.setdefault(key, []).insert(0, value)
        return len(self.lists[key])

    def rpop(self, key):
        items = self.lists.get(key) or []
        return items.pop() if items else None

    def llen(self, key):
        return len(self.lists.get(key, []))

    def lrange(self, key, start, end):
        return self.lists.get(key, [])[start:end + 1]


class BrokenRedis(FakeRedis):

    def lpush(self, key, value):
        raise ConnectionError("Connection refused")


class LocalBackendTest(TestCase):

    def test_unknown_task(self):
        with self.assertRaises(LookupError):
            run_handler("no_such_task", {})

    def test_runs_handler_inline(self):
        calls = []
        with patch.dict(local_backend.TASK_HANDLERS, {"ping": lambda value: calls.append(value) or "pong"}):
            task_id = LocalTaskService().send_task("ping", {"value": 1})
        self.assertTrue(task_id)
        self.assertEqual(calls, [1])

    def test_handler_failure_propagates(self):
        def fail():
            raise RuntimeError("handler failed")
        with patch.dict(local_backend.TASK_HANDLERS, {"fail": fail}):
            with self.assertRaises(RuntimeError):
                LocalTaskService().send_task("fail", {})

    def test_local_backend_is_synchronous(self):
        with patch.dict('os.environ', {'TASK_BACKEND': 'local'}):
            self.assertTrue(TaskService.is_synchronous())


@override_settings(TASK_MAX_RETRIES=2)
class RedisBackendTest(TestCase):

    def setUp(self):
        self.redis = FakeRedis()
        self.service = RedisTaskService(client=self.redis, queue_name="test_tasks")

    def test_enqueue_job_shape(self):
        job_id = self.service.send_task("send_email", {"to": "buyer@test.com"})

        self.assertTrue(job_id.startswith("send_email-"))
        job = json.loads(self.redis.lists["test_tasks"][0])
        self.assertEqual(job["id"], job_id)
        self.assertEqual(job["payload"], {"to": "buyer@test.com"})
        self.assertEqual(job["retries"], 0)
        self.assertEqual(job["max_retries"], 2)

    def test_enqueue_failure_raises_queue_error(self):
        service = RedisTaskService(client=BrokenRedis(), queue_name="test_tasks")
        with self.assertRaises(TaskQueueError):
            service.send_task("send_email", {})

    def test_process_jobs_in_fifo_order(self):
        seen = []
        with patch.dict(local_backend.TASK_HANDLERS, {"record": lambda n: seen.append(n)}):
            for n in range(3):
                self.service.send_task("record", {"n": n})
            result = self.service.process_jobs(batch_size=2)

        self.assertEqual(seen, [0, 1])
        self.assertEqual(result, {"processed": 2, "failed": 0})
        self.assertEqual(self.redis.llen("test_tasks"), 1)

    def test_failed_job_is_requeued_then_parked(self):
        def fail():
            raise RuntimeError("smtp timeout")

        with patch.dict(local_backend.TASK_HANDLERS, {"fail": fail}):
            self.service.send_task("fail", {})
            # First run plus two retries
            for _ in range(3):
                self.service.process_jobs()

        self.assertEqual(self.redis.llen("test_tasks"), 0)
        parked = json.loads(self.redis.lists["test_tasks_failed"][0])
        self.assertEqual(parked["retries"], 3)
        self.assertEqual(parked["error"], "smtp timeout")
        self.assertIn("failed_at", parked)

    def test_requeued_job_keeps_retry_count(self):
        with patch.dict(local_backend.TASK_HANDLERS, {"fail": lambda: 1 / 0}):
            self.service.send_task("fail", {})
            result = self.service.process_jobs()

        self.assertEqual(result, {"processed": 0, "failed": 1})
        job = json.loads(self.redis.lists["test_tasks"][0])
        self.assertEqual(job["retries"], 1)

    def test_unparseable_job_is_parked(self):
        self.redis.lpush("test_tasks", "not json")
        result = self.service.process_jobs()

        self.assertEqual(result, {"processed": 0, "failed": 1})
        self.assertEqual(self.redis.llen("test_tasks_failed"), 1)

    def test_non_object_job_is_parked(self):
        self.redis.lpush("test_tasks", "123")
        with patch.dict(local_backend.TASK_HANDLERS, {"noop": lambda: None}):
            self.service.send_task("noop", {})
            result = self.service.process_jobs()

        self.assertEqual(result, {"processed": 1, "failed": 1})
        self.assertEqual(json.loads(self.redis.lists["test_tasks_failed"][0])["raw"], "123")

    def test_failing_job_runs_once_per_batch(self):
        attempts = []

        def fail():
            attempts.append(1)
            raise RuntimeError("smtp timeout")

        with patch.dict(local_backend.TASK_HANDLERS, {"fail": fail, "noop": lambda: None}):
            self.service.send_task("fail", {})
            self.service.send_task("noop", {})
            result = self.service.process_jobs(batch_size=10)

        self.assertEqual(len(attempts), 1)
        self.assertEqual(result, {"processed": 1, "failed": 1})
        self.assertEqual(self.redis.llen("test_tasks"), 1)
        self.assertEqual(self.redis.llen("test_tasks_failed"), 0)

    def test_queue_status(self):
        for n in range(7):
            self.service.send_task("send_email", {"n": n})

        status = self.service.queue_status()
        self.assertEqual(status["queue_length"], 7)
        self.assertEqual(status["failed_length"], 0)
        self.assertEqual(len(status["recent_jobs"]), 5)
        self.assertEqual(status["recent_jobs"][0]["index"], 1)


@override_settings(CRON_SECRET="s3cret")
class QueueAPITest(TestCase):

    def setUp(self):
        self.client = Client()
        self.redis = FakeRedis()

    def _service(self):
        return RedisTaskService(client=self.redis, queue_name="test_tasks")

    def test_process_requires_bearer_secret(self):
        response = self.client.post('/api/queue/process')
        self.assertEqual(response.status_code, 401)

        response = self.client.post('/api/queue/process', HTTP_AUTHORIZATION="Bearer wrong")
        self.assertEqual(response.status_code, 401)

    @override_settings(CRON_SECRET="")
    def test_process_disabled_without_secret(self):
        response = self.client.post('/api/queue/process', HTTP_AUTHORIZATION="Bearer ")
        self.assertEqual(response.status_code, 401)

    def test_process_requires_redis_backend(self):
        with patch.dict('os.environ', {'TASK_BACKEND': 'local'}):
            response = self.client.post('/api/queue/process', HTTP_AUTHORIZATION="Bearer s3cret")
        self.assertEqual(response.status_code, 400)

    def test_process_drains_queue(self):
        with patch.dict('os.environ', {'TASK_BACKEND': 'redis'}), \
                patch('apps.core.api._redis_service', side_effect=self._service), \
                patch.dict(local_backend.TASK_HANDLERS, {"noop": lambda: None}):
            self._service().send_task("noop", {})
            response = self.client.get('/api/queue/process', HTTP_AUTHORIZATION="Bearer s3cret")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": True, "processed": 1, "failed": 0})

    def test_status_requires_queue_permission(self):
        staff = User.objects.create_user(
            username=f"staff_{uuid4().hex[:6]}", password="x", role=UserRole.STAFF,
        )
        self.client.force_login(staff)
        self.assertEqual(self.client.get('/api/queue/status').status_code, 403)

    def test_status_reports_redis_queue(self):
        admin = User.objects.create_user(
            username=f"admin_{uuid4().hex[:6]}", password="x", role=UserRole.ADMIN,
        )
        self.client.force_login(admin)

        with patch.dict('os.environ', {'TASK_BACKEND': 'redis'}), \
                patch('apps.core.api._redis_service', side_effect=self._service):
            self._service().send_task("send_email", {})
            response = self.client.get('/api/queue/status')

        data = response.json()
        self.assertEqual(data["backend"], "redis")
        self.assertEqual(data["queue_length"], 1)

    def test_status_for_non_queue_backend(self):
        admin = User.objects.create_user(
            username=f"admin_{uuid4().hex[:6]}", password="x", role=UserRole.ADMIN,
        )
        self.client.force_login(admin)
        with patch.dict('os.environ', {'TASK_BACKEND': 'celery'}):
            response = self.client.get('/api/queue/status')
        self.assertEqual(response.json(), {"backend": "celery"})


class ProcessQueueCommandTest(TestCase):

    def test_requires_redis_backend(self):
        with patch.dict('os.environ', {'TASK_BACKEND': 'local'}):
            with self.assertRaises(CommandError):
                call_command('process_queue')

    def test_drains_queue(self):
        redis = FakeRedis()
        service = RedisTaskService(client=redis, queue_name="test_tasks")
        out = StringIO()

        with patch.dict('os.environ', {'TASK_BACKEND': 'redis'}), \
                patch('apps.core.backends.redis_backend.RedisTaskService', return_value=service), \
                patch.dict(local_backend.TASK_HANDLERS, {"noop": lambda: None}):
            service.send_task("noop", {})
            call_command('process_queue', '--batch-size', '5', stdout=out)

        self.assertIn("Processed 1 jobs, 0 failed", out.getvalue())
        self.assertEqual(redis.llen("test_tasks"), 0)


class LambdaBackendTest(TestCase):

    def test_send_task_posts_to_sqs(self):
        sqs = MagicMock()
        sqs.send_message.return_value = {"MessageId": "m-1"}

        with patch.dict('os.environ', {'TASK_QUEUE_URL': 'https://sqs.test/tasks'}):
            service = LambdaTaskService(sqs_client=sqs)
            task_id = service.send_task("send_email", {"to": "buyer@test.com"}, delay_seconds=3600)

        kwargs = sqs.send_message.call_args.kwargs
        self.assertEqual(kwargs["QueueUrl"], "https://sqs.test/tasks")
        self.assertEqual(kwargs["DelaySeconds"], 900)
        body = json.loads(kwargs["MessageBody"])
        self.assertEqual(body["task_id"], task_id)
        self.assertEqual(body["task_name"], "send_email")

    def test_missing_queue_url(self):
        with patch.dict('os.environ', {'TASK_QUEUE_URL': ''}):
            service = LambdaTaskService(sqs_client=MagicMock())
            with self.assertRaises(TaskQueueError):
                service.send_task("send_email", {})

    def test_sqs_failure_raises_queue_error(self):
        sqs = MagicMock()
        sqs.send_message.side_effect = RuntimeError("AccessDenied")
        with patch.dict('os.environ', {'TASK_QUEUE_URL': 'https://sqs.test/tasks'}):
            with self.assertRaises(TaskQueueError):
                LambdaTaskService(sqs_client=sqs).send_task("send_email", {})


class CeleryBackendTest(TestCase):

    @patch('apps.core.backends.celery_backend._get_celery_task')
    def test_payload_passed_as_kwargs(self, mock_get_task):
        task_id = CeleryTaskService().send_task("send_email", {"to": "buyer@test.com"}, delay_seconds=30)

        mock_get_task.return_value.apply_async.assert_called_once_with(
            kwargs={"to": "buyer@test.com"}, countdown=30, task_id=task_id,
        )

    def test_unmapped_task(self):
        with self.assertRaises(ValueError):
            CeleryTaskService().send_task("no_such_task", {})
