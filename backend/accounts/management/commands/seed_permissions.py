# accounts/management/commands/seed_permissions.py

from django.core.management.base import BaseCommand

from accounts.permission_defaults import all_permission_codes
from accounts.permissions import ensure_permissions


class Command(BaseCommand):
    help = "Seed default permissions to the database"

    def handle(self, *args, **options):
        perms = ensure_permissions(all_permission_codes())
        self.stdout.write(self.style.SUCCESS(f"Done! {len(perms)} permissions present."))
