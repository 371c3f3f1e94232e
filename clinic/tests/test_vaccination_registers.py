"""
Integration tests for the vaccination registers (children and pregnant
women).
"""
import io

from openpyxl import load_workbook
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from clinic.models import ChildVaccination, Department, DepartmentAssignment, PregnantVaccination, Profile, User

ALL_CHILD_DOSES = {label: 'fait' for label in ChildVaccination.VACCINES}


class VaccinationRegisterTests(APITestCase):
    def setUp(self) -> None:
        vaccination = Department.objects.create(departement_name='vaccination')
        maternity = Department.objects.create(departement_name='maternity')
        self.vaccinator = User.objects.create_user(username='vac@clinique.km', email='vac@clinique.km',
                                                   password='secret123')
        Profile.objects.create(user=self.vaccinator, full_name='Agent Vaccinateur', email='vac@clinique.km',
                               phone_number='0123456789', role='nurse', branch='Clinique principale')
        DepartmentAssignment.objects.create(user=self.vaccinator, department=vaccination)
        self.midwife = User.objects.create_user(username='sage@clinique.km', email='sage@clinique.km',
                                                password='secret123')
        Profile.objects.create(user=self.midwife, full_name='Sage Femme', email='sage@clinique.km',
                               phone_number='0123456789', role='nurse', branch='Clinique principale')
        DepartmentAssignment.objects.create(user=self.midwife, department=maternity)
        self.client = APIClient()
        self.client.force_authenticate(user=self.vaccinator)

    def test_section_requires_the_vaccination_department(self):
        client = APIClient()
        client.force_authenticate(user=self.midwife)
        self.assertEqual(client.get('/api/vaccination/children').status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(client.post('/api/vaccination/pregnant', {'name': 'Amina'}, format='json').status_code,
                         status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.client.get('/api/vaccination/children').status_code, status.HTTP_200_OK)

    def test_child_vaccination_counts_doses(self):
        response = self.client.post('/api/vaccination/children', {
            'name': 'Bébé Said', 'age': 9, 'sex': 'M', 'strategy': 'fixe', 'receivedVitaminA': True,
            'BCG': 'fait', 'VP1': 'fait', 'Penta1': 'non_fait', 'RR1': 'contre_indication',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.content)
        record = response.data['record']
        self.assertEqual(record['vaccinesDone'], 2)
        self.assertEqual(record['Penta1'], 'non_fait')
        self.assertEqual(record['createdByName'], 'Agent Vaccinateur')

        self.client.post('/api/vaccination/children', dict(ALL_CHILD_DOSES, name='Bébé Ali', sex='F',
                                                           strategy='mobile', receivedAlbendazole=True),
                         format='json')

        response = self.client.get('/api/vaccination/children')
        stats = response.data['stats']
        self.assertEqual(stats['total'], 2)
        self.assertEqual(stats['fullyVaccinated'], 1)
        self.assertEqual(stats['dosesGiven']['BCG'], 2)
        self.assertEqual(stats['dosesGiven']['Penta1'], 1)
        self.assertEqual(stats['dosesGiven']['RR1'], 1)
        self.assertEqual(stats['vitaminA'], 1)
        self.assertEqual(stats['albendazole'], 1)

        response = self.client.get('/api/vaccination/children', {'strategy': 'mobile'})
        self.assertEqual([r['name'] for r in response.data['results']], ['Bébé Ali'])
        response = self.client.get('/api/vaccination/children', {'sex': 'M'})
        self.assertEqual([r['name'] for r in response.data['results']], ['Bébé Said'])

    def test_child_vaccination_rejects_unknown_status_and_ranges(self):
        response = self.client.post('/api/vaccination/children', {'name': 'Bébé', 'BCG': 'peut-être'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['message'], 'Statut de vaccin invalide')

        response = self.client.post('/api/vaccination/children', {'name': 'Bébé', 'weight': 80}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('weight', response.data['error']['fields'])
        self.assertFalse(ChildVaccination.objects.exists())

    def test_pregnant_month_must_be_within_pregnancy(self):
        response = self.client.post('/api/vaccination/pregnant', {'name': 'Amina', 'month': 10}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['message'], 'Le mois de grossesse doit être compris entre 1 et 9')

        for month, td1 in ((3, 'fait'), (7, 'non_fait')):
            response = self.client.post('/api/vaccination/pregnant', {'name': f'Mère {month}', 'month': month,
                                                                      'TD1': td1}, format='json')
            self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.content)

        response = self.client.get('/api/vaccination/pregnant', {'month': 7})
        self.assertEqual([r['name'] for r in response.data['results']], ['Mère 7'])
        response = self.client.get('/api/vaccination/pregnant')
        self.assertEqual(response.data['stats']['dosesGiven']['TD1'], 1)
        self.assertNotIn('vitaminA', response.data['stats'])

    def test_pregnant_vaccination_export(self):
        PregnantVaccination.objects.create(name='Amina & Zaina', month=5, td1='fait', created_by=self.vaccinator)
        response = self.client.get('/api/vaccination/pregnant/export/xlsx')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        sheet = load_workbook(io.BytesIO(response.content)).active
        header = [c.value for c in sheet[1]]
        row = dict(zip(header, [c.value for c in sheet[2]]))
        self.assertEqual(row['Nom'], 'Amina & Zaina')
        self.assertEqual(row['TD1'], 'Fait')
