from django.core.management.base import BaseCommand
from apps.identity.models import User, UserRole


class Command(BaseCommand):
    help = 'Seeds the database with RBAC test users'

    def add_arguments(self, parser):
        parser.add_argument('--password', default='password', help='Password for newly created users')

    def handle(self, *args, **options):
        users = [
            {'username': 'admin', 'role': UserRole.ADMIN},
            {'username': 'manager', 'role': UserRole.MANAGER},
            {'username': 'staff', 'role': UserRole.STAFF},
            {'username': 'customer', 'role': UserRole.CUSTOMER},
        ]

        for u in users:
            user, created = User.objects.get_or_create(username=u['username'])

            user.role = u['role']
            user.email = user.email or f"{u['username']}@example.com"
            if u['role'] == UserRole.ADMIN:
                user.is_staff = True
                user.is_superuser = True

            if created:
                user.set_password(options['password'])
                user.save()
                self.stdout.write(self.style.SUCCESS(f'Created user: {u["username"]} (Role: {u["role"]})'))
            else:
                user.save()
                self.stdout.write(self.style.WARNING(f'Updated user: {u["username"]}'))
