"""
Database models for the hospital management backend.

The authentication identity (:class:`User`) is kept separate from the
application-level :class:`Profile` which carries the role, branch and
activation flag checked on every protected request.  Departments scope
access to sections of the application through
:class:`DepartmentAssignment`.  The medical registers and the financial
ledger are plain rows owned by their creator.
"""
from __future__ import annotations

import uuid

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Authentication identity.

    The e-mail address doubles as the username so that credentials are
    always ``email`` + ``password``.
    """
    email = models.EmailField(unique=True)

    def __str__(self) -> str:
        return self.email or self.username


class Department(models.Model):
    """An organisational unit (maternity, pharmacy, ...) used to scope access."""
    department_id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    # Column name keeps the historical spelling used by the clinic's data.
    departement_name = models.CharField(max_length=100, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['departement_name']

    def __str__(self) -> str:
        return self.departement_name


class Profile(models.Model):
    """Application-level user record: role, branch and activation flag."""
    ROLE_ADMIN = 'admin'
    ROLE_DOCTOR = 'doctor'
    ROLE_CHOICES = [
        ('admin', 'Administrateur'),
        ('doctor', 'Docteur'),
        ('nurse', 'Infirmier'),
        ('pharmacist', 'Pharmacien'),
        ('lab_technician', 'Technicien de Laboratoire'),
        ('secretary', 'Secrétaire'),
        ('cashier', 'Caisse'),
        ('major', 'Major'),
        ('surgeon', 'Chirurgien'),
        ('accountant', 'Comptable'),
        ('manager', 'Gestionnaire'),
        ('anesthetist', 'Anesthésiste'),
        ('other', 'Autre'),
    ]

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL, primary_key=True, on_delete=models.CASCADE, related_name='profile'
    )
    full_name = models.CharField(max_length=100)
    email = models.EmailField(unique=True)
    phone_number = models.CharField(max_length=20, blank=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_DOCTOR, db_index=True)
    branch = models.CharField(max_length=100, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    @property
    def is_admin(self) -> bool:
        return self.role == self.ROLE_ADMIN

    def __str__(self) -> str:
        return f"{self.full_name} ({self.role})"


class DepartmentAssignment(models.Model):
    """Many-to-many join between users and departments, managed by admins."""
    assignment_id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='department_assignments'
    )
    department = models.ForeignKey(Department, on_delete=models.CASCADE, related_name='assignments')
    created_at = models.DateTimeField(auto_now_add=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )

    class Meta:
        ordering = ['created_at']
        constraints = [
            models.UniqueConstraint(fields=['user', 'department'], name='unique_user_department'),
        ]

    def __str__(self) -> str:
        return f"{self.user_id} -> {self.department}"


# ---------------------------------------------------------------------------
# Medical registers
# ---------------------------------------------------------------------------

SEX_CHOICES = [('M', 'Masculin'), ('F', 'Féminin')]
ORIGIN_CHOICES = [('HD', 'HD'), ('DS', 'DS')]


class Consultation(models.Model):
    """General consultation register (one row per patient visit)."""
    SEXE_CHOICES = [('male', 'Homme'), ('female', 'Femme')]

    consultation_id = models.BigAutoField(primary_key=True)
    patient_name = models.CharField(max_length=255)
    patient_address = models.CharField(max_length=255, blank=True)
    age = models.CharField(max_length=20, blank=True)
    sexe = models.CharField(max_length=10, choices=SEXE_CHOICES, blank=True)
    diagnostics = models.TextField(blank=True)
    dominant_signs = models.TextField(blank=True)
    treatment = models.TextField(blank=True)
    origin = models.CharField(max_length=50, blank=True)
    is_pregnant = models.BooleanField(default=False)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, on_delete=models.SET_NULL, related_name='consultations'
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"{self.patient_name} ({self.created_at:%F})"


class DepartmentConsultationBase(models.Model):
    """Consultation register kept by a department (internal medicine, maternity)."""
    consultation_id = models.BigAutoField(primary_key=True)
    name = models.CharField(max_length=255)
    age = models.CharField(max_length=20, blank=True)
    sex = models.CharField(max_length=1, choices=SEX_CHOICES, blank=True)
    origin = models.CharField(max_length=2, choices=ORIGIN_CHOICES, blank=True)
    address = models.CharField(max_length=255, blank=True)
    is_new_case = models.BooleanField(default=True)
    seen_by_doctor = models.BooleanField(default=False)
    dominant_sign = models.TextField(blank=True)
    diagnostic = models.TextField(blank=True)
    is_pregnant = models.BooleanField(default=False)
    treatment = models.TextField(blank=True)
    reference = models.CharField(max_length=255, blank=True)
    mitualist = models.CharField(max_length=100, default='undefined')
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        abstract = True
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"{self.name} ({self.created_at:%F})"


class MedecineConsultation(DepartmentConsultationBase):
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, on_delete=models.SET_NULL, related_name='medecine_consultations'
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )


class MaternityConsultation(DepartmentConsultationBase):
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, on_delete=models.SET_NULL, related_name='maternity_consultations'
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )


class HospitalizationBase(models.Model):
    """Fields shared by the hospitalization registers.

    A discharge is recorded through exactly one of the ``leave_*`` flags;
    :attr:`leave_status` exposes which one is set.
    """
    LEAVE_FLAGS = {
        'authorized': 'leave_authorized',
        'evaded': 'leave_evaded',
        'transfered': 'leave_transfered',
        'diedBefore48h': 'leave_died_before_48h',
        'diedAfter48h': 'leave_died_after_48h',
    }
    LEAVE_LABELS = {
        'authorized': 'Sortie autorisée',
        'evaded': 'Sortie par évasion',
        'transfered': 'Sortie par transfert',
        'diedBefore48h': 'Décès avant 48h',
        'diedAfter48h': 'Décès après 48h',
    }

    hospitalization_id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    full_name = models.CharField(max_length=255)
    age = models.CharField(max_length=20, blank=True)
    sex = models.CharField(max_length=1, choices=SEX_CHOICES, blank=True)
    origin = models.CharField(max_length=2, choices=ORIGIN_CHOICES, blank=True)
    is_emergency = models.BooleanField(default=False)
    entry_diagnostic = models.TextField(blank=True)
    leaving_diagnostic = models.TextField(blank=True)
    is_pregnant = models.BooleanField(default=False)
    leave_authorized = models.BooleanField(default=False)
    leave_evaded = models.BooleanField(default=False)
    leave_transfered = models.BooleanField(default=False)
    leave_died_before_48h = models.BooleanField(default=False)
    leave_died_after_48h = models.BooleanField(default=False)
    leaving_date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        abstract = True
        ordering = ['-created_at']

    @property
    def leave_status(self) -> str | None:
        for status, field in self.LEAVE_FLAGS.items():
            if getattr(self, field):
                return status
        return None

    def set_leave_status(self, status: str | None) -> None:
        for key, field in self.LEAVE_FLAGS.items():
            setattr(self, field, key == status)

    def __str__(self) -> str:
        return f"{self.full_name} ({self.created_at:%F})"


class MedecineHospitalization(HospitalizationBase):
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, on_delete=models.SET_NULL, related_name='medecine_hospitalizations'
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )


class MaternityHospitalization(HospitalizationBase):
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, on_delete=models.SET_NULL, related_name='maternity_hospitalizations'
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )


class PrenatalRecord(models.Model):
    """Antenatal follow-up (CPN visits, iron/folic acid and SP doses)."""
    ANEMIA_CHOICES = [('none', 'Aucune'), ('mild', 'Légère'), ('moderate', 'Modérée'), ('severe', 'Sévère')]
    IRON_FOLIC_CHOICES = [
        ('none', 'Aucun'),
        ('prescribed', 'Prescrit'),
        ('administered', 'Administré'),
        ('completed', 'Complété'),
    ]

    prenatal_id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    file_number = models.CharField(max_length=50, blank=True, db_index=True)
    full_name = models.CharField(max_length=255)
    patient_age = models.CharField(max_length=20, blank=True)
    pregnancy_age = models.CharField(max_length=50, blank=True)
    visit_cpn1 = models.DateField(null=True, blank=True)
    visit_cpn2 = models.DateField(null=True, blank=True)
    visit_cpn3 = models.DateField(null=True, blank=True)
    visit_cpn4 = models.DateField(null=True, blank=True)
    iron_folic_acid_dose1 = models.BooleanField(default=False)
    iron_folic_acid_dose2 = models.BooleanField(default=False)
    iron_folic_acid_dose3 = models.BooleanField(default=False)
    sp_dose1 = models.BooleanField(default=False)
    sp_dose2 = models.BooleanField(default=False)
    sp_dose3 = models.BooleanField(default=False)
    anemia = models.CharField(max_length=10, choices=ANEMIA_CHOICES, blank=True)
    iron_folic_acid = models.CharField(max_length=15, choices=IRON_FOLIC_CHOICES, blank=True)
    observations = models.TextField(blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, on_delete=models.SET_NULL, related_name='prenatal_records'
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    updated_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']

    @property
    def cpn_visits(self) -> int:
        return sum(1 for d in (self.visit_cpn1, self.visit_cpn2, self.visit_cpn3, self.visit_cpn4) if d)

    def __str__(self) -> str:
        return f"{self.full_name} ({self.file_number or '-'})"


class Delivery(models.Model):
    """Delivery register of the maternity ward."""
    DELIVERY_TYPES = {
        'eutocic': 'delivery_eutocic',
        'dystocic': 'delivery_dystocic',
        'transfert': 'delivery_transfert',
    }

    delivery_id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    file_number = models.CharField(max_length=50, blank=True, db_index=True)
    full_name = models.CharField(max_length=255)
    address = models.CharField(max_length=255, blank=True)
    origin = models.CharField(max_length=2, choices=ORIGIN_CHOICES, blank=True)
    work_time = models.DateTimeField(null=True, blank=True)
    delivery_datetime = models.DateTimeField(null=True, blank=True)
    # Free-text notes; a non-empty value marks the kind of delivery.
    delivery_eutocic = models.CharField(max_length=255, blank=True)
    delivery_dystocic = models.CharField(max_length=255, blank=True)
    delivery_transfert = models.CharField(max_length=255, blank=True)
    weight = models.FloatField(null=True, blank=True)
    newborn_living = models.PositiveSmallIntegerField(null=True, blank=True)
    newborn_under_2500g = models.PositiveSmallIntegerField(null=True, blank=True)
    number_of_deaths = models.PositiveSmallIntegerField(null=True, blank=True)
    deaths_before_24h = models.PositiveSmallIntegerField(null=True, blank=True)
    deaths_before_7_days = models.PositiveSmallIntegerField(null=True, blank=True)
    is_mother_dead = models.BooleanField(default=False)
    transfer = models.CharField(max_length=255, blank=True)
    leaving_date = models.DateTimeField(null=True, blank=True)
    observations = models.TextField(blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, on_delete=models.SET_NULL, related_name='deliveries'
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    updated_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name_plural = 'deliveries'

    def __str__(self) -> str:
        return f"{self.full_name} ({self.file_number or '-'})"


class FamilyPlanningRecord(models.Model):
    """Contraceptive methods handed out, split between new users and renewals."""
    NEW_METHODS = {
        'noristerat': 'new_noristerat',
        'microlut': 'new_microlut',
        'microgynon': 'new_microgynon',
        'emergencyPill': 'new_emergency_pill',
        'maleCondom': 'new_male_condom',
        'femaleCondom': 'new_female_condom',
        'iud': 'new_iud',
        'implant': 'new_implant',
    }
    RENEWAL_METHODS = {
        'noristerat': 'renewal_noristerat',
        'microgynon': 'renewal_microgynon',
        'lofemenal': 'renewal_lofemenal',
        'maleCondom': 'renewal_male_condom',
        'femaleCondom': 'renewal_female_condom',
        'iud': 'renewal_iud',
        'implant': 'renewal_implant',
    }

    planning_id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    file_number = models.CharField(max_length=50, blank=True, db_index=True)
    full_name = models.CharField(max_length=255)
    address = models.CharField(max_length=255, blank=True)
    origin = models.CharField(max_length=2, choices=ORIGIN_CHOICES, blank=True)
    age = models.CharField(max_length=20, blank=True)
    is_new = models.BooleanField(default=True)
    new_noristerat = models.PositiveSmallIntegerField(null=True, blank=True)
    new_microlut = models.PositiveSmallIntegerField(null=True, blank=True)
    new_microgynon = models.PositiveSmallIntegerField(null=True, blank=True)
    new_emergency_pill = models.PositiveSmallIntegerField(null=True, blank=True)
    new_male_condom = models.PositiveSmallIntegerField(null=True, blank=True)
    new_female_condom = models.PositiveSmallIntegerField(null=True, blank=True)
    new_iud = models.PositiveSmallIntegerField(null=True, blank=True)
    new_implant = models.PositiveSmallIntegerField(null=True, blank=True)
    renewal_noristerat = models.PositiveSmallIntegerField(null=True, blank=True)
    renewal_microgynon = models.PositiveSmallIntegerField(null=True, blank=True)
    renewal_lofemenal = models.PositiveSmallIntegerField(null=True, blank=True)
    renewal_male_condom = models.PositiveSmallIntegerField(null=True, blank=True)
    renewal_female_condom = models.PositiveSmallIntegerField(null=True, blank=True)
    renewal_iud = models.PositiveSmallIntegerField(null=True, blank=True)
    renewal_implant = models.PositiveSmallIntegerField(null=True, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, on_delete=models.SET_NULL, related_name='family_planning_records'
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    updated_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"{self.full_name} ({self.file_number or '-'})"


# ---------------------------------------------------------------------------
# Vaccination registers
# ---------------------------------------------------------------------------

STRATEGY_CHOICES = [('fixe', 'Poste fixe'), ('avance', 'Poste avancé'), ('mobile', 'Équipe mobile')]
VACCINE_STATUS_CHOICES = [('fait', 'Fait'), ('non_fait', 'Non fait'), ('contre_indication', 'Contre-indication')]


def vaccine_field():
    return models.CharField(max_length=20, choices=VACCINE_STATUS_CHOICES, blank=True)


class VaccinationBase(models.Model):
    # vaccine label -> model field; subclasses list their schedule
    VACCINES: dict[str, str] = {}

    vaccination_id = models.BigAutoField(primary_key=True)
    name = models.CharField(max_length=255)
    address = models.CharField(max_length=255, blank=True)
    origin = models.CharField(max_length=50, blank=True)
    strategy = models.CharField(max_length=10, choices=STRATEGY_CHOICES, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        abstract = True
        ordering = ['-created_at']

    def vaccine_statuses(self) -> dict[str, str]:
        return {label: getattr(self, field) for label, field in self.VACCINES.items()}

    @property
    def vaccines_done(self) -> int:
        return sum(1 for status in self.vaccine_statuses().values() if status == 'fait')

    def __str__(self) -> str:
        return f"{self.name} ({self.created_at:%F})"


class ChildVaccination(VaccinationBase):
    VACCINES = {
        'BCG': 'bcg', 'TD0': 'td0', 'TD1': 'td1', 'TD2': 'td2', 'TD3': 'td3', 'VP1': 'vp1',
        'Penta1': 'penta1', 'Penta2': 'penta2', 'Penta3': 'penta3', 'RR1': 'rr1', 'RR2': 'rr2', 'ECV': 'ecv',
    }

    age = models.PositiveSmallIntegerField(null=True, blank=True)
    sex = models.CharField(max_length=1, choices=SEX_CHOICES, blank=True)
    received_vitamin_a = models.BooleanField(default=False)
    received_albendazole = models.BooleanField(default=False)
    weight = models.FloatField(null=True, blank=True)
    height = models.FloatField(null=True, blank=True)
    bcg = vaccine_field()
    td0 = vaccine_field()
    td1 = vaccine_field()
    td2 = vaccine_field()
    td3 = vaccine_field()
    vp1 = vaccine_field()
    penta1 = vaccine_field()
    penta2 = vaccine_field()
    penta3 = vaccine_field()
    rr1 = vaccine_field()
    rr2 = vaccine_field()
    ecv = vaccine_field()
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, on_delete=models.SET_NULL, related_name='child_vaccinations'
    )


class PregnantVaccination(VaccinationBase):
    VACCINES = {'TD1': 'td1', 'TD2': 'td2', 'TD3': 'td3', 'TD4': 'td4', 'TD5': 'td5', 'FCV': 'fcv'}

    # Month of pregnancy, 1 to 9.
    month = models.PositiveSmallIntegerField(null=True, blank=True)
    td1 = vaccine_field()
    td2 = vaccine_field()
    td3 = vaccine_field()
    td4 = vaccine_field()
    td5 = vaccine_field()
    fcv = vaccine_field()
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, on_delete=models.SET_NULL, related_name='pregnant_vaccinations'
    )


# ---------------------------------------------------------------------------
# Finance
# ---------------------------------------------------------------------------

class Transaction(models.Model):
    """An income or expense line of the clinic's ledger."""
    TYPE_INCOME = 'income'
    TYPE_EXPENSE = 'expense'
    TYPE_CHOICES = [(TYPE_INCOME, 'Recette'), (TYPE_EXPENSE, 'Dépense')]

    transaction_id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    type = models.CharField(max_length=10, choices=TYPE_CHOICES, db_index=True)
    reason = models.CharField(max_length=255)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    # Department that must act on this transaction; a receipt is issued for it.
    department_to_see = models.ForeignKey(
        Department, null=True, blank=True, on_delete=models.SET_NULL, related_name='transactions'
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, on_delete=models.SET_NULL, related_name='transactions'
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"{self.type} {self.amount} ({self.reason})"


class Receipt(models.Model):
    """Pending order for a department, issued from a transaction."""
    receipt_id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    reason = models.CharField(max_length=255, blank=True)
    department = models.ForeignKey(Department, on_delete=models.CASCADE, related_name='receipts')
    transaction = models.OneToOneField(Transaction, on_delete=models.CASCADE, related_name='receipt')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"receipt {self.receipt_id} ({self.department})"


class AuditEvent(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=64, blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['action', 'created_at']),
            models.Index(fields=['object_type', 'object_id', 'created_at']),
        ]

    def __str__(self):
        return f"{self.action}:{self.user_id}@{self.created_at:%F %T}"
