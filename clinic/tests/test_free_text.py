"""
Free text typed into the registers is stored as plain text: markup is
removed, while characters such as ``&`` and ``>`` are kept as typed and
only escaped by the renderers that need it.
"""
import io

from openpyxl import load_workbook
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from clinic.models import Consultation, Delivery, Department, DepartmentAssignment, Profile, User


class FreeTextTests(APITestCase):
    def setUp(self) -> None:
        self.doctor = User.objects.create_user(username='doc@clinique.km', email='doc@clinique.km',
                                               password='secret123')
        Profile.objects.create(user=self.doctor, full_name='Dr Ali', email='doc@clinique.km',
                               phone_number='0123456789', role='doctor', branch='Clinique principale')
        maternity = Department.objects.create(departement_name='maternity')
        DepartmentAssignment.objects.create(user=self.doctor, department=maternity)
        self.client = APIClient()
        self.client.force_authenticate(user=self.doctor)

    def create_consultation(self, **fields):
        payload = {'patientName': 'Moussa Ali', 'sexe': 'male'}
        payload.update(fields)
        return self.client.post('/api/consultations', payload, format='json')

    def test_ampersand_and_comparison_are_stored_verbatim(self):
        response = self.create_consultation(patientName='Ali & Fils', diagnostics='TA > 14',
                                            treatment='<i>Repos</i> & hydratation')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.content)
        record = response.data['record']
        self.assertEqual(record['patientName'], 'Ali & Fils')
        self.assertEqual(record['diagnostics'], 'TA > 14')
        self.assertEqual(record['treatment'], 'Repos & hydratation')

        stored = Consultation.objects.get(pk=record['id'])
        self.assertEqual(stored.patient_name, 'Ali & Fils')
        self.assertEqual(stored.diagnostics, 'TA > 14')

    def test_update_keeps_text_verbatim(self):
        pk = self.create_consultation().data['record']['id']
        response = self.client.patch(f'/api/consultations/{pk}', {'patientName': 'Said & Mariama'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Consultation.objects.get(pk=pk).patient_name, 'Said & Mariama')

    def test_exports_carry_the_typed_characters(self):
        self.create_consultation(patientName='Ali & Fils', diagnostics='TA > 14')

        response = self.client.get('/api/consultations/export/csv')
        text = response.content.decode('utf-8-sig')
        self.assertIn('Ali & Fils', text)
        self.assertIn('TA > 14', text)
        self.assertNotIn('&amp;', text)
        self.assertNotIn('&gt;', text)

        response = self.client.get('/api/consultations/export/xlsx')
        sheet = load_workbook(io.BytesIO(response.content)).active
        row = [c.value for c in sheet[2]]
        self.assertIn('Ali & Fils', row)
        self.assertIn('TA > 14', row)

        # The print view is HTML, escaped exactly once.
        response = self.client.get('/api/consultations/export/html')
        page = response.content.decode()
        self.assertIn('Ali &amp; Fils', page)
        self.assertNotIn('&amp;amp;', page)

    def test_markup_only_patient_name_is_rejected(self):
        response = self.create_consultation(patientName='<b></b>')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['message'], 'Le nom du patient est requis')
        self.assertIn('patientName', response.data['error']['fields'])
        self.assertFalse(Consultation.objects.exists())

    def test_markup_only_delivery_name_is_rejected(self):
        response = self.client.post('/api/maternity/deliveries', {'fullName': '  <p> </p> '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['message'], 'Le nom complet est requis')
        self.assertFalse(Delivery.objects.exists())

    def test_optional_text_may_clean_to_blank(self):
        response = self.create_consultation(treatment='<br>')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['record']['treatment'], '')
