from django.core.management.base import BaseCommand

from clinic.models import Department

DEPARTMENTS = [
    "administration",
    "laboratoire",
    "management",
    "maternity",
    "medecine",
    "nutrition",
    "pharmacie",
    "salle_operation",
    "vaccination",
]


class Command(BaseCommand):
    help = "Ensure the clinic's reference departments exist (idempotent)."

    def handle(self, *args, **opts):
        created_count = 0
        for name in DEPARTMENTS:
            _, created = Department.objects.get_or_create(departement_name=name)
            created_count += int(created)
            self.stdout.write(f"{'created' if created else 'exists'}: {name}")
        self.stdout.write(self.style.SUCCESS(f"Departments ensured ({created_count} created)."))
