"""
Downloads of registers and lists.

Rows are flattened through column definitions (header, accessor) and
rendered as CSV, XLSX (openpyxl), PDF (reportlab) or a print-ready HTML
page.  Single records are rendered as a two-column PDF sheet.
"""
from __future__ import annotations

import csv
import io
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Iterable, Sequence

from django.conf import settings
from django.http import HttpResponse
from django.template.loader import render_to_string
from django.utils.html import escape
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from clinic.models import ChildVaccination, PregnantVaccination
from clinic.timeutils import clinic_now, clinic_today, format_clinic

Column = tuple[str, Callable[[Any], Any]]

CONTENT_TYPES = {
    'csv': 'text/csv; charset=utf-8',
    'xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'pdf': 'application/pdf',
    'html': 'text/html; charset=utf-8',
}

HEADER_COLOR = '#1F4E79'


def display(value) -> str:
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'Oui' if value else 'Non'
    if isinstance(value, datetime):
        return format_clinic(value)
    if isinstance(value, date):
        return value.strftime('%d/%m/%Y')
    if isinstance(value, Decimal):
        return f'{value:.2f}'
    return str(value)


def table(rows: Iterable, columns: Sequence[Column]) -> list[list[str]]:
    return [[display(getter(row)) for _, getter in columns] for row in rows]


def export_filename(resource: str, ext: str) -> str:
    return f'{resource}_{clinic_today():%Y-%m-%d}.{ext}'


# ---------------------------------------------------------------------
# Renderers
# ---------------------------------------------------------------------
def to_csv(rows: Iterable, columns: Sequence[Column]) -> bytes:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow([h for h, _ in columns])
    writer.writerows(table(rows, columns))
    # BOM so spreadsheet software detects UTF-8 accents.
    return buf.getvalue().encode('utf-8-sig')


def to_xlsx(rows: Iterable, columns: Sequence[Column], title: str = 'Export') -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = title[:31]
    headers = [h for h, _ in columns]
    ws.append(headers)
    for cell in ws[1]:
        cell.font = Font(bold=True, color='FFFFFF')
        cell.fill = PatternFill('solid', fgColor=HEADER_COLOR.lstrip('#'))
    data = table(rows, columns)
    for line in data:
        ws.append(line)
    for idx, header in enumerate(headers, start=1):
        width = max([len(header)] + [len(line[idx - 1]) for line in data])
        ws.column_dimensions[get_column_letter(idx)].width = min(max(width + 2, 10), 60)
    ws.freeze_panes = 'A2'
    out = io.BytesIO()
    wb.save(out)
    return out.getvalue()


def _styles():
    styles = getSampleStyleSheet()
    title = ParagraphStyle('ExportTitle', parent=styles['Heading1'], fontSize=15,
                           textColor=colors.HexColor(HEADER_COLOR), spaceAfter=6)
    meta = ParagraphStyle('ExportMeta', parent=styles['Normal'], fontSize=8, textColor=colors.grey)
    cell = ParagraphStyle('ExportCell', parent=styles['Normal'], fontSize=7.5, leading=9)
    return title, meta, cell


def _header_block(title: str) -> list:
    title_style, meta_style, _ = _styles()
    return [
        Paragraph(settings.CLINIC_NAME, meta_style),
        Paragraph(title, title_style),
        Paragraph(f'Généré le {clinic_now():%d/%m/%Y %H:%M}', meta_style),
        Spacer(1, 0.4 * cm),
    ]


def _table_style() -> TableStyle:
    return TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor(HEADER_COLOR)),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 8),
        ('GRID', (0, 0), (-1, -1), 0.25, colors.grey),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#F2F2F2')]),
    ])


def to_pdf(rows: Iterable, columns: Sequence[Column], title: str = 'Export') -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=landscape(A4), leftMargin=1.2 * cm, rightMargin=1.2 * cm,
                            topMargin=1.2 * cm, bottomMargin=1.2 * cm, title=title)
    _, _, cell_style = _styles()
    data = [[h for h, _ in columns]]
    data += [[Paragraph(escape(v), cell_style) for v in line] for line in table(rows, columns)]
    if len(data) == 1:
        data.append(['Aucune donnée'] + [''] * (len(columns) - 1))
    grid = Table(data, repeatRows=1, colWidths=[doc.width / len(columns)] * len(columns))
    grid.setStyle(_table_style())
    doc.build(_header_block(title) + [grid])
    return buffer.getvalue()


def record_pdf(title: str, fields: Sequence[tuple[str, Any]]) -> bytes:
    """One record as a label/value sheet."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, leftMargin=2 * cm, rightMargin=2 * cm,
                            topMargin=1.5 * cm, bottomMargin=1.5 * cm, title=title)
    _, _, cell_style = _styles()
    data = [[Paragraph(f'<b>{escape(label)}</b>', cell_style), Paragraph(escape(display(value)), cell_style)]
            for label, value in fields]
    sheet = Table(data, colWidths=[doc.width * 0.35, doc.width * 0.65])
    sheet.setStyle(TableStyle([
        ('GRID', (0, 0), (-1, -1), 0.25, colors.grey),
        ('BACKGROUND', (0, 0), (0, -1), colors.HexColor('#E8EEF4')),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
    ]))
    doc.build(_header_block(title) + [sheet])
    return buffer.getvalue()


def to_print_html(rows: Iterable, columns: Sequence[Column], title: str = 'Export') -> str:
    return render_to_string('clinic/export_print.html', {
        'clinic_name': settings.CLINIC_NAME,
        'title': title,
        'generated_at': clinic_now().strftime('%d/%m/%Y %H:%M'),
        'headers': [h for h, _ in columns],
        'rows': table(rows, columns),
    })


RENDERERS = {
    'csv': lambda rows, columns, title: to_csv(rows, columns),
    'xlsx': to_xlsx,
    'pdf': to_pdf,
    'html': to_print_html,
}


def export_response(rows: Iterable, columns: Sequence[Column], *, resource: str, title: str,
                    fmt: str = 'csv') -> HttpResponse:
    if fmt not in RENDERERS:
        raise ValueError(f'unsupported export format: {fmt}')
    body = RENDERERS[fmt](list(rows), columns, title)
    response = HttpResponse(body, content_type=CONTENT_TYPES[fmt])
    if fmt != 'html':
        response['Content-Disposition'] = f'attachment; filename="{export_filename(resource, fmt)}"'
    return response


def record_pdf_response(fields: Sequence[tuple[str, Any]], *, title: str, filename: str) -> HttpResponse:
    response = HttpResponse(record_pdf(title, fields), content_type=CONTENT_TYPES['pdf'])
    response['Content-Disposition'] = f'attachment; filename="{filename}.pdf"'
    return response


# ---------------------------------------------------------------------
# Column definitions
# ---------------------------------------------------------------------
def creator_name(obj) -> str:
    profile = getattr(getattr(obj, 'created_by', None), 'profile', None)
    return profile.full_name if profile else ''


def leave_label(obj) -> str:
    status = obj.leave_status
    return obj.LEAVE_LABELS[status] if status else 'En cours'


USER_COLUMNS: list[Column] = [
    ('Nom complet', lambda p: p.full_name),
    ('Email', lambda p: p.email),
    ('Téléphone', lambda p: p.phone_number),
    ('Rôle', lambda p: p.get_role_display()),
    ('Branche', lambda p: p.branch),
    ('Statut', lambda p: 'Actif' if p.is_active else 'Inactif'),
    ('Créé le', lambda p: p.created_at),
]

CONSULTATION_COLUMNS: list[Column] = [
    ('N°', lambda c: c.consultation_id),
    ('Patient', lambda c: c.patient_name),
    ('Âge', lambda c: c.age),
    ('Sexe', lambda c: c.get_sexe_display()),
    ('Adresse', lambda c: c.patient_address),
    ('Origine', lambda c: c.origin),
    ('Signes dominants', lambda c: c.dominant_signs),
    ('Diagnostic', lambda c: c.diagnostics),
    ('Traitement', lambda c: c.treatment),
    ('Enceinte', lambda c: c.is_pregnant),
    ('Médecin', creator_name),
    ('Date', lambda c: c.created_at),
]

MEDECINE_CONSULTATION_COLUMNS: list[Column] = [
    ('N°', lambda c: c.consultation_id),
    ('Nom', lambda c: c.name),
    ('Âge', lambda c: c.age),
    ('Sexe', lambda c: c.sex),
    ('Origine', lambda c: c.origin),
    ('Adresse', lambda c: c.address),
    ('Nouveau cas', lambda c: c.is_new_case),
    ('Vu par médecin', lambda c: c.seen_by_doctor),
    ('Signe dominant', lambda c: c.dominant_sign),
    ('Diagnostic', lambda c: c.diagnostic),
    ('Enceinte', lambda c: c.is_pregnant),
    ('Traitement', lambda c: c.treatment),
    ('Référence', lambda c: c.reference),
    ('Mutualiste', lambda c: c.mitualist),
    ('Date', lambda c: c.created_at),
]

HOSPITALIZATION_COLUMNS: list[Column] = [
    ('Nom complet', lambda h: h.full_name),
    ('Âge', lambda h: h.age),
    ('Sexe', lambda h: h.sex),
    ('Origine', lambda h: h.origin),
    ('Urgence', lambda h: h.is_emergency),
    ("Diagnostic d'entrée", lambda h: h.entry_diagnostic),
    ('Diagnostic de sortie', lambda h: h.leaving_diagnostic),
    ('Enceinte', lambda h: h.is_pregnant),
    ('Sortie', leave_label),
    ('Date de sortie', lambda h: h.leaving_date),
    ("Date d'entrée", lambda h: h.created_at),
]

TRANSACTION_COLUMNS: list[Column] = [
    ('Type', lambda t: t.get_type_display()),
    ('Motif', lambda t: t.reason),
    ('Montant', lambda t: t.amount),
    ('Département', lambda t: t.department_to_see.departement_name if t.department_to_see else ''),
    ('Créé par', creator_name),
    ('Date', lambda t: t.created_at),
]

RECEIPT_COLUMNS: list[Column] = [
    ('Reçu', lambda r: str(r.receipt_id)[:8].upper()),
    ('Motif', lambda r: r.reason),
    ('Département', lambda r: r.department.departement_name),
    ('Montant', lambda r: r.transaction.amount),
    ('Type', lambda r: r.transaction.get_type_display()),
    ('Date', lambda r: r.created_at),
]

PRENATAL_COLUMNS: list[Column] = [
    ('N° dossier', lambda p: p.file_number),
    ('Nom complet', lambda p: p.full_name),
    ('Âge', lambda p: p.patient_age),
    ('Âge de la grossesse', lambda p: p.pregnancy_age),
    ('CPN1', lambda p: p.visit_cpn1),
    ('CPN2', lambda p: p.visit_cpn2),
    ('CPN3', lambda p: p.visit_cpn3),
    ('CPN4', lambda p: p.visit_cpn4),
    ('Fer/acide folique (doses)',
     lambda p: f'{sum([p.iron_folic_acid_dose1, p.iron_folic_acid_dose2, p.iron_folic_acid_dose3])}/3'),
    ('Sulfadoxine-pyriméthamine (doses)', lambda p: f'{sum([p.sp_dose1, p.sp_dose2, p.sp_dose3])}/3'),
    ('Anémie', lambda p: p.get_anemia_display()),
    ('Fer/acide folique', lambda p: p.get_iron_folic_acid_display()),
    ('Observations', lambda p: p.observations),
    ('Date', lambda p: p.created_at),
]

DELIVERY_COLUMNS: list[Column] = [
    ('N° dossier', lambda d: d.file_number),
    ('Nom complet', lambda d: d.full_name),
    ('Adresse', lambda d: d.address),
    ('Origine', lambda d: d.origin),
    ('Début du travail', lambda d: d.work_time),
    ('Accouchement', lambda d: d.delivery_datetime),
    ('Eutocique', lambda d: d.delivery_eutocic),
    ('Dystocique', lambda d: d.delivery_dystocic),
    ('Transfert', lambda d: d.delivery_transfert),
    ('Poids (kg)', lambda d: d.weight),
    ('Nés vivants', lambda d: d.newborn_living),
    ('Moins de 2,5 kg', lambda d: d.newborn_under_2500g),
    ('Décès', lambda d: d.number_of_deaths),
    ('Décès avant 24h', lambda d: d.deaths_before_24h),
    ('Décès avant 7 jours', lambda d: d.deaths_before_7_days),
    ('Mère décédée', lambda d: d.is_mother_dead),
    ('Évacuation', lambda d: d.transfer),
    ('Date de sortie', lambda d: d.leaving_date),
    ('Observations', lambda d: d.observations),
]

FAMILY_PLANNING_COLUMNS: list[Column] = [
    ('N° dossier', lambda f: f.file_number),
    ('Nom complet', lambda f: f.full_name),
    ('Âge', lambda f: f.age),
    ('Origine', lambda f: f.origin),
    ('Adresse', lambda f: f.address),
    ('Nouvelle utilisatrice', lambda f: f.is_new),
    ('Noristérat (nouveau)', lambda f: f.new_noristerat),
    ('Microlut (nouveau)', lambda f: f.new_microlut),
    ('Microgynon (nouveau)', lambda f: f.new_microgynon),
    ('Pilule du lendemain (nouveau)', lambda f: f.new_emergency_pill),
    ('Préservatif masculin (nouveau)', lambda f: f.new_male_condom),
    ('Préservatif féminin (nouveau)', lambda f: f.new_female_condom),
    ('DIU (nouveau)', lambda f: f.new_iud),
    ('Implanon/Explanon (nouveau)', lambda f: f.new_implant),
    ('Noristérat (renouvellement)', lambda f: f.renewal_noristerat),
    ('Microgynon (renouvellement)', lambda f: f.renewal_microgynon),
    ('Loféménal (renouvellement)', lambda f: f.renewal_lofemenal),
    ('Préservatif masculin (renouvellement)', lambda f: f.renewal_male_condom),
    ('Préservatif féminin (renouvellement)', lambda f: f.renewal_female_condom),
    ('DIU (renouvellement)', lambda f: f.renewal_iud),
    ('Implants (renouvellement)', lambda f: f.renewal_implant),
    ('Date', lambda f: f.created_at),
]


def vaccine_columns(vaccines: dict) -> list[Column]:
    return [(label, lambda v, name=name: getattr(v, f'get_{name}_display')()) for label, name in vaccines.items()]


CHILD_VACCINATION_COLUMNS: list[Column] = [
    ('N°', lambda v: v.vaccination_id),
    ('Date', lambda v: v.created_at),
    ('Nom', lambda v: v.name),
    ('Âge (mois)', lambda v: v.age),
    ('Sexe', lambda v: v.get_sex_display()),
    ('Origine', lambda v: v.origin),
    ('Adresse', lambda v: v.address),
    ('Poids (kg)', lambda v: v.weight),
    ('Taille (cm)', lambda v: v.height),
    ('Stratégie', lambda v: v.get_strategy_display()),
    ('Vitamine A', lambda v: v.received_vitamin_a),
    ('Albendazole', lambda v: v.received_albendazole),
] + vaccine_columns(ChildVaccination.VACCINES) + [
    ('Vaccins faits', lambda v: f'{v.vaccines_done}/{len(v.VACCINES)}'),
]

PREGNANT_VACCINATION_COLUMNS: list[Column] = [
    ('N°', lambda v: v.vaccination_id),
    ('Date', lambda v: v.created_at),
    ('Mois de grossesse', lambda v: v.month),
    ('Nom', lambda v: v.name),
    ('Adresse', lambda v: v.address),
    ('Origine', lambda v: v.origin),
    ('Stratégie', lambda v: v.get_strategy_display()),
] + vaccine_columns(PregnantVaccination.VACCINES) + [
    ('Vaccins faits', lambda v: f'{v.vaccines_done}/{len(v.VACCINES)}'),
]
