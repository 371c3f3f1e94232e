"""
Integration tests for the maternity follow-up registers: department
consultations, antenatal (CPN) follow-up, deliveries and family
planning.
"""
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from clinic.models import (
    AuditEvent,
    Delivery,
    Department,
    DepartmentAssignment,
    FamilyPlanningRecord,
    PrenatalRecord,
    Profile,
    User,
)


class MaternityRegisterTests(APITestCase):
    def setUp(self) -> None:
        """A midwife of the maternity ward, a doctor of medecine and an admin."""
        self.maternity = Department.objects.create(departement_name='Maternite')
        self.medecine = Department.objects.create(departement_name='medecine')
        self.midwife = self.make_user('sage@clinique.km', 'Sage Femme', 'nurse', self.maternity)
        self.doctor = self.make_user('doc@clinique.km', 'Dr Ali', 'doctor', self.medecine)
        self.admin_user = self.make_user('admin@clinique.km', 'Admin Principal', 'admin')

    def make_user(self, email, full_name, role, department=None) -> User:
        user = User.objects.create_user(username=email, email=email, password='secret123')
        Profile.objects.create(user=user, full_name=full_name, email=email, phone_number='0123456789',
                               role=role, branch='Clinique principale')
        if department is not None:
            DepartmentAssignment.objects.create(user=user, department=department)
        return user

    def authenticate(self, user: User) -> APIClient:
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    def test_maternity_consultations_are_guarded_by_the_section(self):
        client = self.authenticate(self.midwife)
        response = client.post('/api/maternity/consultations', {
            'name': 'Fatima Said', 'sex': 'F', 'isPregnant': True, 'isNewCase': True,
            'diagnostic': 'Menace d’accouchement prématuré',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.content)
        self.assertEqual(response.data['record']['createdByName'], 'Sage Femme')

        response = client.get('/api/maternity/consultations')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pagination']['total'], 1)
        self.assertEqual(response.data['stats']['female'], 1)
        self.assertEqual(response.data['stats']['newCases'], 1)

        response = self.authenticate(self.doctor).get('/api/maternity/consultations')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_prenatal_visits_must_be_chronological(self):
        client = self.authenticate(self.midwife)
        response = client.post('/api/maternity/prenatal', {
            'fullName': 'Amina Ahmed', 'visitCPN1': '2024-03-10', 'visitCPN2': '2024-02-01',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('visitCPN2', response.data['error']['fields'])
        self.assertFalse(PrenatalRecord.objects.exists())

        # A skipped visit does not break the order of the later ones.
        response = client.post('/api/maternity/prenatal', {
            'fullName': 'Amina Ahmed', 'visitCPN1': '2024-01-10', 'visitCPN3': '2024-04-02',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.content)
        self.assertEqual(response.data['record']['cpnVisits'], 2)

        pk = response.data['record']['id']
        response = client.patch(f'/api/maternity/prenatal/{pk}', {'visitCPN2': '2024-05-01'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_prenatal_stats_and_file_number_filter(self):
        client = self.authenticate(self.midwife)
        client.post('/api/maternity/prenatal', {
            'fileNumber': 'CPN-001', 'fullName': 'Amina Ahmed', 'anemia': 'severe',
            'visitCPN1': '2024-01-10', 'visitCPN2': '2024-02-10', 'visitCPN3': '2024-03-10',
            'visitCPN4': '2024-04-10', 'ironFolicAcidDose1': True, 'ironFolicAcidDose2': True,
            'ironFolicAcidDose3': True, 'spDose1': True,
        }, format='json')
        client.post('/api/maternity/prenatal', {'fileNumber': 'CPN-002', 'fullName': 'Zaina Mohamed'},
                    format='json')

        response = client.get('/api/maternity/prenatal')
        stats = response.data['stats']
        self.assertEqual(stats['total'], 2)
        self.assertEqual(stats['fourVisits'], 1)
        self.assertEqual(stats['ironCompleted'], 1)
        self.assertEqual(stats['spCompleted'], 0)
        self.assertEqual(stats['severeAnemia'], 1)
        self.assertEqual(stats['today'], 2)

        response = client.get('/api/maternity/prenatal', {'fileNumber': 'cpn-002'})
        self.assertEqual([r['fullName'] for r in response.data['results']], ['Zaina Mohamed'])

        response = client.get('/api/maternity/prenatal', {'anemia': 'severe'})
        self.assertEqual([r['fileNumber'] for r in response.data['results']], ['CPN-001'])

    def test_delivery_leaving_date_cannot_precede_delivery(self):
        client = self.authenticate(self.midwife)
        response = client.post('/api/maternity/deliveries', {
            'fullName': 'Hadidja Ali',
            'deliveryDateTime': '2024-06-02T10:00:00+03:00',
            'leavingDate': '2024-06-01T09:00:00+03:00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['message'], "La date de sortie ne peut pas précéder l'accouchement")
        self.assertFalse(Delivery.objects.exists())

    def test_delivery_filters_ordering_and_stats(self):
        client = self.authenticate(self.midwife)
        client.post('/api/maternity/deliveries', {
            'fullName': 'Hadidja Ali', 'deliveryDateTime': '2024-06-01T10:00:00+03:00',
            'deliveryEutocic': 'Voie basse', 'newBornLiving': 2, 'newBornUnder2500g': 1,
        }, format='json')
        client.post('/api/maternity/deliveries', {
            'fullName': 'Mariama Said', 'deliveryDateTime': '2024-06-03T22:30:00+03:00',
            'deliveryDystocic': 'Césarienne', 'isMotherDead': True, 'numberOfDeaths': 1,
        }, format='json')
        client.post('/api/maternity/deliveries', {'fullName': 'Sans date'}, format='json')

        response = client.get('/api/maternity/deliveries')
        self.assertEqual([r['fullName'] for r in response.data['results']],
                         ['Mariama Said', 'Hadidja Ali', 'Sans date'])
        stats = response.data['stats']
        self.assertEqual(stats['total'], 3)
        self.assertEqual(stats['eutocic'], 1)
        self.assertEqual(stats['dystocic'], 1)
        self.assertEqual(stats['transfert'], 0)
        self.assertEqual(stats['motherDeaths'], 1)
        self.assertEqual(stats['livingNewborns'], 2)
        self.assertEqual(stats['lowWeightNewborns'], 1)
        self.assertEqual(stats['newbornDeaths'], 1)

        response = client.get('/api/maternity/deliveries', {'deliveryType': 'dystocic'})
        self.assertEqual([r['fullName'] for r in response.data['results']], ['Mariama Said'])
        response = client.get('/api/maternity/deliveries', {'motherStatus': 'alive'})
        self.assertEqual(response.data['pagination']['total'], 2)

    def test_delivery_sheet_and_export(self):
        client = self.authenticate(self.midwife)
        pk = client.post('/api/maternity/deliveries', {'fullName': 'Hadidja Ali', 'fileNumber': 'ACC-7'},
                         format='json').data['record']['id']
        response = client.get(f'/api/maternity/deliveries/{pk}/pdf')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.content.startswith(b'%PDF'))

        response = client.get('/api/maternity/deliveries/export/csv')
        header, row = response.content.decode('utf-8-sig').splitlines()[:2]
        self.assertTrue(header.startswith('N° dossier,Nom complet'))
        self.assertTrue(row.startswith('ACC-7,Hadidja Ali'))

    def test_family_planning_method_totals(self):
        client = self.authenticate(self.midwife)
        response = client.post('/api/maternity/family-planning', {
            'fullName': 'Nouvelle Utilisatrice', 'isNew': True, 'newMicrolut': 2, 'newImplant': 1,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.content)
        client.post('/api/maternity/family-planning', {
            'fullName': 'Ancienne Utilisatrice', 'isNew': False, 'renewalMaleCondom': 3,
        }, format='json')
        response = client.post('/api/maternity/family-planning', {'fullName': 'X', 'newIud': -1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = client.get('/api/maternity/family-planning')
        stats = response.data['stats']
        self.assertEqual(stats['total'], 2)
        self.assertEqual(stats['newUsers'], 1)
        self.assertEqual(stats['renewals'], 1)
        self.assertEqual(stats['newMethods']['microlut'], 2)
        self.assertEqual(stats['newMethods']['implant'], 1)
        self.assertEqual(stats['newMethods']['iud'], 0)
        self.assertEqual(stats['renewalMethods']['maleCondom'], 3)

        response = client.get('/api/maternity/family-planning', {'isNew': 'false'})
        self.assertEqual([r['fullName'] for r in response.data['results']], ['Ancienne Utilisatrice'])

    def test_only_the_author_or_an_admin_edits_a_record(self):
        pk = self.authenticate(self.midwife).post(
            '/api/maternity/family-planning', {'fullName': 'Nouvelle Utilisatrice'}, format='json',
        ).data['record']['id']
        colleague = self.make_user('sage2@clinique.km', 'Autre Sage', 'nurse', self.maternity)

        response = self.authenticate(colleague).patch(f'/api/maternity/family-planning/{pk}',
                                                      {'age': '25'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.authenticate(self.admin_user).patch(f'/api/maternity/family-planning/{pk}',
                                                            {'age': '25'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['record']['updatedBy'], self.admin_user.pk)
        self.assertIsNotNone(FamilyPlanningRecord.objects.get(pk=pk).updated_at)

        response = self.authenticate(self.midwife).delete(f'/api/maternity/family-planning/{pk}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(AuditEvent.objects.filter(action='delete', object_type='family_planning').exists())
