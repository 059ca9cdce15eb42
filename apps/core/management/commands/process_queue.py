from django.core.management.base import BaseCommand, CommandError

from apps.core.task_service import get_backend_name


class Command(BaseCommand):
    help = 'Drains the Redis task queue (TASK_BACKEND=redis)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--batch-size',
            type=int,
            default=10,
            help='Maximum number of jobs to process',
        )
        parser.add_argument(
            '--status',
            action='store_true',
            help='Print queue status instead of processing',
        )

    def handle(self, *args, **options):
        if get_backend_name() != 'redis':
            raise CommandError("process_queue requires TASK_BACKEND=redis")

        from apps.core.backends.redis_backend import RedisTaskService
        service = RedisTaskService()

        if options['status']:
            status = service.queue_status()
            self.stdout.write(
                f"{status['queue_name']}: {status['queue_length']} pending, "
                f"{status['failed_length']} failed"
            )
            for job in status['recent_jobs']:
                self.stdout.write(f"  {job['index']}. {job['id']} ({job['task_name']})")
            return

        result = service.process_jobs(batch_size=options['batch_size'])
        style = self.style.SUCCESS if not result['failed'] else self.style.WARNING
        self.stdout.write(style(
            f"Processed {result['processed']} jobs, {result['failed']} failed"
        ))
