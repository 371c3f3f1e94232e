"""
Serializers of the medical registers.

The API speaks camelCase; model fields stay snake_case and are mapped
with ``source``.  Free-text inputs are stripped of markup.
"""
from rest_framework import serializers

from clinic.models import (
    ORIGIN_CHOICES,
    SEX_CHOICES,
    STRATEGY_CHOICES,
    VACCINE_STATUS_CHOICES,
    ChildVaccination,
    Consultation,
    Delivery,
    FamilyPlanningRecord,
    HospitalizationBase,
    MaternityConsultation,
    MaternityHospitalization,
    MedecineConsultation,
    MedecineHospitalization,
    PregnantVaccination,
    PrenatalRecord,
)
from clinic.timeutils import clinic_today, to_clinic_time

from .common import CleanCharField, DateRangeQuerySerializer

PREGNANT_MALE = 'Un patient de sexe masculin ne peut pas être enceinte'


def user_name(user):
    profile = getattr(user, 'profile', None) if user is not None else None
    return profile.full_name if profile else None


class CreatedSerializer(serializers.ModelSerializer):
    createdBy = serializers.PrimaryKeyRelatedField(source='created_by', read_only=True)
    createdByName = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    def get_createdByName(self, obj):
        return user_name(obj.created_by)


class AuditedSerializer(CreatedSerializer):
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)


class ConsultationSerializer(AuditedSerializer):
    id = serializers.IntegerField(source='consultation_id', read_only=True)
    patientName = CleanCharField(source='patient_name', max_length=255, error_messages={
        'required': 'Le nom du patient est requis',
        'blank': 'Le nom du patient est requis',
    })
    patientAddress = CleanCharField(source='patient_address', max_length=255, required=False, allow_blank=True)
    age = CleanCharField(max_length=20, required=False, allow_blank=True)
    sexe = serializers.ChoiceField(choices=Consultation.SEXE_CHOICES, required=False, allow_blank=True)
    diagnostics = CleanCharField(required=False, allow_blank=True)
    dominantSigns = CleanCharField(source='dominant_signs', required=False, allow_blank=True)
    treatment = CleanCharField(required=False, allow_blank=True)
    origin = CleanCharField(max_length=50, required=False, allow_blank=True)
    isPregnant = serializers.BooleanField(source='is_pregnant', required=False)

    class Meta:
        model = Consultation
        fields = ['id', 'patientName', 'patientAddress', 'age', 'sexe', 'diagnostics', 'dominantSigns',
                  'treatment', 'origin', 'isPregnant', 'createdBy', 'createdByName', 'createdAt', 'updatedAt']

    def validate(self, attrs):
        sexe = attrs.get('sexe', getattr(self.instance, 'sexe', ''))
        pregnant = attrs.get('is_pregnant', getattr(self.instance, 'is_pregnant', False))
        if pregnant and sexe == 'male':
            raise serializers.ValidationError({'isPregnant': PREGNANT_MALE})
        return attrs


class DepartmentConsultationSerializer(AuditedSerializer):
    id = serializers.IntegerField(source='consultation_id', read_only=True)
    name = CleanCharField(max_length=255, error_messages={
        'required': 'Le nom est requis',
        'blank': 'Le nom est requis',
    })
    age = CleanCharField(max_length=20, required=False, allow_blank=True)
    sex = serializers.ChoiceField(choices=SEX_CHOICES, required=False, allow_blank=True)
    origin = serializers.ChoiceField(choices=ORIGIN_CHOICES, required=False, allow_blank=True)
    address = CleanCharField(max_length=255, required=False, allow_blank=True)
    isNewCase = serializers.BooleanField(source='is_new_case', required=False)
    seenByDoctor = serializers.BooleanField(source='seen_by_doctor', required=False)
    dominantSign = CleanCharField(source='dominant_sign', required=False, allow_blank=True)
    diagnostic = CleanCharField(required=False, allow_blank=True)
    isPregnant = serializers.BooleanField(source='is_pregnant', required=False)
    treatment = CleanCharField(required=False, allow_blank=True)
    reference = CleanCharField(max_length=255, required=False, allow_blank=True)
    mitualist = CleanCharField(max_length=100, required=False, allow_blank=True)
    updatedBy = serializers.PrimaryKeyRelatedField(source='updated_by', read_only=True)
    updatedByName = serializers.SerializerMethodField()

    class Meta:
        fields = ['id', 'name', 'age', 'sex', 'origin', 'address', 'isNewCase', 'seenByDoctor', 'dominantSign',
                  'diagnostic', 'isPregnant', 'treatment', 'reference', 'mitualist', 'createdBy', 'createdByName',
                  'createdAt', 'updatedBy', 'updatedByName', 'updatedAt']

    def get_updatedByName(self, obj):
        return user_name(obj.updated_by)

    def validate_mitualist(self, v):
        return v or 'undefined'

    def validate(self, attrs):
        sex = attrs.get('sex', getattr(self.instance, 'sex', ''))
        pregnant = attrs.get('is_pregnant', getattr(self.instance, 'is_pregnant', False))
        if pregnant and sex == 'M':
            raise serializers.ValidationError({'isPregnant': PREGNANT_MALE})
        return attrs


class MedecineConsultationSerializer(DepartmentConsultationSerializer):
    class Meta(DepartmentConsultationSerializer.Meta):
        model = MedecineConsultation


class MaternityConsultationSerializer(DepartmentConsultationSerializer):
    class Meta(DepartmentConsultationSerializer.Meta):
        model = MaternityConsultation


class HospitalizationSerializer(AuditedSerializer):
    id = serializers.UUIDField(source='hospitalization_id', read_only=True)
    fullName = CleanCharField(source='full_name', max_length=255, error_messages={
        'required': 'Le nom complet est requis',
        'blank': 'Le nom complet est requis',
    })
    age = CleanCharField(max_length=20, required=False, allow_blank=True)
    sex = serializers.ChoiceField(choices=SEX_CHOICES, required=False, allow_blank=True)
    origin = serializers.ChoiceField(choices=ORIGIN_CHOICES, required=False, allow_blank=True)
    isEmergency = serializers.BooleanField(source='is_emergency', required=False)
    entryDiagnostic = CleanCharField(source='entry_diagnostic', required=False, allow_blank=True)
    leavingDiagnostic = CleanCharField(source='leaving_diagnostic', required=False, allow_blank=True)
    isPregnant = serializers.BooleanField(source='is_pregnant', required=False)
    leaveStatus = serializers.ChoiceField(
        source='leave_status', choices=list(HospitalizationBase.LEAVE_FLAGS), required=False, allow_null=True, allow_blank=True,
        error_messages={'invalid_choice': 'Type de sortie invalide'},
    )
    leaveLabel = serializers.SerializerMethodField()
    leavingDate = serializers.DateField(source='leaving_date', required=False, allow_null=True)
    updatedBy = serializers.PrimaryKeyRelatedField(source='updated_by', read_only=True)

    class Meta:
        fields = ['id', 'fullName', 'age', 'sex', 'origin', 'isEmergency', 'entryDiagnostic', 'leavingDiagnostic',
                  'isPregnant', 'leaveStatus', 'leaveLabel', 'leavingDate', 'createdBy', 'createdByName',
                  'createdAt', 'updatedBy', 'updatedAt']

    def get_leaveLabel(self, obj):
        status = obj.leave_status
        return obj.LEAVE_LABELS[status] if status else None

    def validate(self, attrs):
        leaving_date = attrs.get('leaving_date')
        if leaving_date:
            entered = to_clinic_time(self.instance.created_at).date() if self.instance else clinic_today()
            if leaving_date < entered:
                raise serializers.ValidationError(
                    {'leavingDate': "La date de sortie ne peut pas précéder la date d'entrée"}
                )
        sex = attrs.get('sex', getattr(self.instance, 'sex', ''))
        pregnant = attrs.get('is_pregnant', getattr(self.instance, 'is_pregnant', False))
        if pregnant and sex == 'M':
            raise serializers.ValidationError({'isPregnant': PREGNANT_MALE})
        return attrs

    def model_data(self) -> dict:
        """validated_data with ``leaveStatus`` expanded into the leave flags."""
        data = dict(self.validated_data)
        if 'leave_status' in data:
            status = data.pop('leave_status') or None
            for key, flag in HospitalizationBase.LEAVE_FLAGS.items():
                data[flag] = key == status
        return data


class MedecineHospitalizationSerializer(HospitalizationSerializer):
    class Meta(HospitalizationSerializer.Meta):
        model = MedecineHospitalization


class MaternityHospitalizationSerializer(HospitalizationSerializer):
    class Meta(HospitalizationSerializer.Meta):
        model = MaternityHospitalization


class PrenatalSerializer(AuditedSerializer):
    id = serializers.UUIDField(source='prenatal_id', read_only=True)
    fileNumber = CleanCharField(source='file_number', max_length=50, required=False, allow_blank=True)
    fullName = CleanCharField(source='full_name', max_length=255, error_messages={
        'required': 'Le nom est requis',
        'blank': 'Le nom est requis',
    })
    patientAge = CleanCharField(source='patient_age', max_length=20, required=False, allow_blank=True)
    pregnancyAge = CleanCharField(source='pregnancy_age', max_length=50, required=False, allow_blank=True)
    visitCPN1 = serializers.DateField(source='visit_cpn1', required=False, allow_null=True)
    visitCPN2 = serializers.DateField(source='visit_cpn2', required=False, allow_null=True)
    visitCPN3 = serializers.DateField(source='visit_cpn3', required=False, allow_null=True)
    visitCPN4 = serializers.DateField(source='visit_cpn4', required=False, allow_null=True)
    ironFolicAcidDose1 = serializers.BooleanField(source='iron_folic_acid_dose1', required=False)
    ironFolicAcidDose2 = serializers.BooleanField(source='iron_folic_acid_dose2', required=False)
    ironFolicAcidDose3 = serializers.BooleanField(source='iron_folic_acid_dose3', required=False)
    spDose1 = serializers.BooleanField(source='sp_dose1', required=False)
    spDose2 = serializers.BooleanField(source='sp_dose2', required=False)
    spDose3 = serializers.BooleanField(source='sp_dose3', required=False)
    anemia = serializers.ChoiceField(choices=PrenatalRecord.ANEMIA_CHOICES, required=False, allow_blank=True)
    ironFolicAcid = serializers.ChoiceField(source='iron_folic_acid', choices=PrenatalRecord.IRON_FOLIC_CHOICES,
                                            required=False, allow_blank=True)
    observations = CleanCharField(required=False, allow_blank=True)
    cpnVisits = serializers.IntegerField(source='cpn_visits', read_only=True)
    updatedBy = serializers.PrimaryKeyRelatedField(source='updated_by', read_only=True)

    class Meta:
        model = PrenatalRecord
        fields = ['id', 'fileNumber', 'fullName', 'patientAge', 'pregnancyAge', 'visitCPN1', 'visitCPN2',
                  'visitCPN3', 'visitCPN4', 'ironFolicAcidDose1', 'ironFolicAcidDose2', 'ironFolicAcidDose3',
                  'spDose1', 'spDose2', 'spDose3', 'anemia', 'ironFolicAcid', 'observations', 'cpnVisits',
                  'createdBy', 'createdByName', 'createdAt', 'updatedBy', 'updatedAt']

    def validate(self, attrs):
        # CPN visits happen in order; a later visit cannot predate an earlier one.
        visits = [attrs.get(f'visit_cpn{i}', getattr(self.instance, f'visit_cpn{i}', None)) for i in range(1, 5)]
        previous = None
        for i, visit in enumerate(visits, start=1):
            if visit is None:
                continue
            if previous is not None and visit < previous:
                raise serializers.ValidationError(
                    {f'visitCPN{i}': "Les visites CPN doivent suivre l'ordre chronologique"}
                )
            previous = visit
        return attrs


def count_field(source: str):
    return serializers.IntegerField(source=source, min_value=0, required=False, allow_null=True)


class DeliverySerializer(AuditedSerializer):
    id = serializers.UUIDField(source='delivery_id', read_only=True)
    fileNumber = CleanCharField(source='file_number', max_length=50, required=False, allow_blank=True)
    fullName = CleanCharField(source='full_name', max_length=255, error_messages={
        'required': 'Le nom complet est requis',
        'blank': 'Le nom complet est requis',
    })
    address = CleanCharField(max_length=255, required=False, allow_blank=True)
    origin = serializers.ChoiceField(choices=ORIGIN_CHOICES, required=False, allow_blank=True)
    workTime = serializers.DateTimeField(source='work_time', required=False, allow_null=True)
    deliveryDateTime = serializers.DateTimeField(source='delivery_datetime', required=False, allow_null=True)
    deliveryEutocic = CleanCharField(source='delivery_eutocic', max_length=255, required=False, allow_blank=True)
    deliveryDystocic = CleanCharField(source='delivery_dystocic', max_length=255, required=False, allow_blank=True)
    deliveryTransfert = CleanCharField(source='delivery_transfert', max_length=255, required=False,
                                       allow_blank=True)
    weight = serializers.FloatField(min_value=0, required=False, allow_null=True)
    newBornLiving = count_field('newborn_living')
    newBornUnder2500g = count_field('newborn_under_2500g')
    numberOfDeaths = count_field('number_of_deaths')
    deathsBefore24h = count_field('deaths_before_24h')
    deathsBefore7Days = count_field('deaths_before_7_days')
    isMotherDead = serializers.BooleanField(source='is_mother_dead', required=False)
    transfer = CleanCharField(max_length=255, required=False, allow_blank=True)
    leavingDate = serializers.DateTimeField(source='leaving_date', required=False, allow_null=True)
    observations = CleanCharField(required=False, allow_blank=True)
    updatedBy = serializers.PrimaryKeyRelatedField(source='updated_by', read_only=True)

    class Meta:
        model = Delivery
        fields = ['id', 'fileNumber', 'fullName', 'address', 'origin', 'workTime', 'deliveryDateTime',
                  'deliveryEutocic', 'deliveryDystocic', 'deliveryTransfert', 'weight', 'newBornLiving',
                  'newBornUnder2500g', 'numberOfDeaths', 'deathsBefore24h', 'deathsBefore7Days', 'isMotherDead',
                  'transfer', 'leavingDate', 'observations', 'createdBy', 'createdByName', 'createdAt',
                  'updatedBy', 'updatedAt']

    def validate(self, attrs):
        delivered = attrs.get('delivery_datetime', getattr(self.instance, 'delivery_datetime', None))
        leaving = attrs.get('leaving_date', getattr(self.instance, 'leaving_date', None))
        if delivered and leaving and leaving < delivered:
            raise serializers.ValidationError(
                {'leavingDate': "La date de sortie ne peut pas précéder l'accouchement"}
            )
        return attrs


class FamilyPlanningSerializer(AuditedSerializer):
    id = serializers.UUIDField(source='planning_id', read_only=True)
    fileNumber = CleanCharField(source='file_number', max_length=50, required=False, allow_blank=True)
    fullName = CleanCharField(source='full_name', max_length=255, error_messages={
        'required': 'Le nom est requis',
        'blank': 'Le nom est requis',
    })
    address = CleanCharField(max_length=255, required=False, allow_blank=True)
    origin = serializers.ChoiceField(choices=ORIGIN_CHOICES, required=False, allow_blank=True)
    age = CleanCharField(max_length=20, required=False, allow_blank=True)
    isNew = serializers.BooleanField(source='is_new', required=False)
    newNoristerat = count_field('new_noristerat')
    newMicrolut = count_field('new_microlut')
    newMicrogynon = count_field('new_microgynon')
    newEmergencyPill = count_field('new_emergency_pill')
    newMaleCondom = count_field('new_male_condom')
    newFemaleCondom = count_field('new_female_condom')
    newIud = count_field('new_iud')
    newImplant = count_field('new_implant')
    renewalNoristerat = count_field('renewal_noristerat')
    renewalMicrogynon = count_field('renewal_microgynon')
    renewalLofemenal = count_field('renewal_lofemenal')
    renewalMaleCondom = count_field('renewal_male_condom')
    renewalFemaleCondom = count_field('renewal_female_condom')
    renewalIud = count_field('renewal_iud')
    renewalImplant = count_field('renewal_implant')
    updatedBy = serializers.PrimaryKeyRelatedField(source='updated_by', read_only=True)

    class Meta:
        model = FamilyPlanningRecord
        fields = ['id', 'fileNumber', 'fullName', 'address', 'origin', 'age', 'isNew', 'newNoristerat',
                  'newMicrolut', 'newMicrogynon', 'newEmergencyPill', 'newMaleCondom', 'newFemaleCondom', 'newIud',
                  'newImplant', 'renewalNoristerat', 'renewalMicrogynon', 'renewalLofemenal', 'renewalMaleCondom',
                  'renewalFemaleCondom', 'renewalIud', 'renewalImplant', 'createdBy', 'createdByName',
                  'createdAt', 'updatedBy', 'updatedAt']


def vaccine_status_field(source: str):
    return serializers.ChoiceField(source=source, choices=VACCINE_STATUS_CHOICES, required=False,
                                   allow_blank=True, error_messages={'invalid_choice': 'Statut de vaccin invalide'})


class VaccinationSerializer(CreatedSerializer):
    id = serializers.IntegerField(source='vaccination_id', read_only=True)
    name = CleanCharField(max_length=255, error_messages={
        'required': 'Le nom est requis',
        'blank': 'Le nom est requis',
    })
    address = CleanCharField(max_length=255, required=False, allow_blank=True)
    origin = CleanCharField(max_length=50, required=False, allow_blank=True)
    strategy = serializers.ChoiceField(choices=STRATEGY_CHOICES, required=False, allow_blank=True)
    vaccinesDone = serializers.IntegerField(source='vaccines_done', read_only=True)


class ChildVaccinationSerializer(VaccinationSerializer):
    age = serializers.IntegerField(min_value=0, max_value=18, required=False, allow_null=True)
    sex = serializers.ChoiceField(choices=SEX_CHOICES, required=False, allow_blank=True)
    receivedVitaminA = serializers.BooleanField(source='received_vitamin_a', required=False)
    receivedAlbendazole = serializers.BooleanField(source='received_albendazole', required=False)
    weight = serializers.FloatField(min_value=0, max_value=50, required=False, allow_null=True)
    height = serializers.FloatField(min_value=0, max_value=150, required=False, allow_null=True)
    BCG = vaccine_status_field('bcg')
    TD0 = vaccine_status_field('td0')
    TD1 = vaccine_status_field('td1')
    TD2 = vaccine_status_field('td2')
    TD3 = vaccine_status_field('td3')
    VP1 = vaccine_status_field('vp1')
    Penta1 = vaccine_status_field('penta1')
    Penta2 = vaccine_status_field('penta2')
    Penta3 = vaccine_status_field('penta3')
    RR1 = vaccine_status_field('rr1')
    RR2 = vaccine_status_field('rr2')
    ECV = vaccine_status_field('ecv')

    class Meta:
        model = ChildVaccination
        fields = ['id', 'name', 'address', 'age', 'sex', 'origin', 'receivedVitaminA', 'receivedAlbendazole',
                  'weight', 'height', 'strategy', *ChildVaccination.VACCINES, 'vaccinesDone', 'createdBy',
                  'createdByName', 'createdAt']


class PregnantVaccinationSerializer(VaccinationSerializer):
    month = serializers.IntegerField(min_value=1, max_value=9, required=False, allow_null=True, error_messages={
        'min_value': 'Le mois de grossesse doit être compris entre 1 et 9',
        'max_value': 'Le mois de grossesse doit être compris entre 1 et 9',
    })
    TD1 = vaccine_status_field('td1')
    TD2 = vaccine_status_field('td2')
    TD3 = vaccine_status_field('td3')
    TD4 = vaccine_status_field('td4')
    TD5 = vaccine_status_field('td5')
    FCV = vaccine_status_field('fcv')

    class Meta:
        model = PregnantVaccination
        fields = ['id', 'month', 'name', 'address', 'origin', 'strategy', *PregnantVaccination.VACCINES,
                  'vaccinesDone', 'createdBy', 'createdByName', 'createdAt']


class RecordListQuerySerializer(DateRangeQuerySerializer):
    sexe = serializers.ChoiceField(required=False, choices=['all', 'male', 'female'])
    sex = serializers.ChoiceField(required=False, choices=['all', 'M', 'F'])
    origin = serializers.CharField(required=False, allow_blank=True, max_length=50)
    isNewCase = serializers.BooleanField(required=False, allow_null=True, default=None)
    seenByDoctor = serializers.BooleanField(required=False, allow_null=True, default=None)
    isEmergency = serializers.BooleanField(required=False, allow_null=True, default=None)
    leaveStatus = serializers.ChoiceField(required=False, choices=['active'] + list(HospitalizationBase.LEAVE_FLAGS))
    isNew = serializers.BooleanField(required=False, allow_null=True, default=None)
    fileNumber = serializers.CharField(required=False, allow_blank=True, max_length=50)
    anemia = serializers.ChoiceField(required=False, choices=['all'] + [c for c, _ in PrenatalRecord.ANEMIA_CHOICES])
    deliveryType = serializers.ChoiceField(required=False, choices=['all'] + list(Delivery.DELIVERY_TYPES))
    motherStatus = serializers.ChoiceField(required=False, choices=['all', 'alive', 'dead'])
    strategy = serializers.ChoiceField(required=False, choices=['all'] + [c for c, _ in STRATEGY_CHOICES])
    month = serializers.IntegerField(required=False, min_value=1, max_value=9)
