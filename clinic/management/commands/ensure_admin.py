from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from clinic.models import Profile, User


class Command(BaseCommand):
    help = "Ensure an active admin account with a profile exists; resets its password (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--email", required=True)
        parser.add_argument("--password", required=True)
        parser.add_argument("--full-name", dest="full_name", default="Administrateur")

    def handle(self, *args, **opts):
        email = opts["email"].strip().lower()
        if len(opts["password"]) < 6:
            raise CommandError("Le mot de passe doit contenir au moins 6 caractères")
        with transaction.atomic():
            user = User.objects.filter(email__iexact=email).first()
            if user is None:
                user = User.objects.create_user(username=email, email=email, password=opts["password"])
            else:
                user.set_password(opts["password"])
                user.is_active = True
                user.save(update_fields=["password", "is_active"])
            profile, created = Profile.objects.update_or_create(
                user=user,
                defaults={
                    "full_name": opts["full_name"],
                    "email": email,
                    "role": Profile.ROLE_ADMIN,
                    "is_active": True,
                },
            )
        self.stdout.write(self.style.SUCCESS(f"{'created' if created else 'updated'}: {email} (admin)"))
