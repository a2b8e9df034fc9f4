"""
PDF reports.

ProcedureReportGenerator renders the day's injection batch: one summary page
followed by three form pages per patient, collated by form so each form type
prints as one run. PatientReportGenerator renders the admission form filled
in when a patient joins the injection programme.
"""
import io
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence

from reportlab.lib.pagesizes import A4, landscape
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from ..core.config import settings

FORMS_PER_PATIENT = 3


@dataclass
class ProcedureEntry:
    ref_id: str
    patient_name: str
    procedure_date: str
    treatment_type: str
    status: str = "N/A"
    remaining_od: Optional[int] = None
    remaining_os: Optional[int] = None


@dataclass
class AdmissionData:
    ref_id: str
    name: str
    indication: str
    medication: str
    swalis_classification: str
    start_eye: str
    remaining_od: int = 0
    remaining_os: int = 0
    observations: Optional[str] = None


def collate_pages(page_count: int, pages_per_patient: int = FORMS_PER_PATIENT) -> List[int]:
    """
    Order patient pages so every copy of form 1 comes first, then form 2, ...

    Input pages are grouped per patient: [p1f1, p1f2, p1f3, p2f1, ...].
    """
    order: List[int] = []
    for form in range(pages_per_patient):
        order.extend(range(form, page_count, pages_per_patient))
    return order


def wrap_text(text: str, font_name: str, font_size: float, max_width: float) -> List[str]:
    """Greedy word wrap measured with the PDF font metrics."""
    lines: List[str] = []
    line = ""
    for word in (text or "").split(" "):
        candidate = f"{line}{word} "
        if line and stringWidth(candidate, font_name, font_size) > max_width:
            lines.append(line.strip())
            line = f"{word} "
        else:
            line = candidate
    lines.append(line.strip())
    return lines


def _date_part(value: str) -> str:
    return (value or "").split(" ")[0]


class ProcedureReportGenerator:
    """Batch report for a list of scheduled injections."""

    def __init__(self, font_name: Optional[str] = None, font_size: Optional[int] = None):
        self.font_name = font_name or settings.REPORT_FONT
        self.font_size = font_size or settings.REPORT_FONT_SIZE

    def generate(self, entries: Sequence[ProcedureEntry], staff_name: str) -> bytes:
        buffer = io.BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=A4)
        pdf.setTitle("Relatório de Injeções Intravítreas")

        self._draw_summary(pdf, entries)

        forms = [
            (self._draw_procedure_form, A4),
            (self._draw_nursing_form, A4),
            (self._draw_label_sheet, landscape(A4)),
        ]
        printable = [e for e in entries if e.patient_name]
        pages = [(entry, form) for entry in printable for form in forms]
        for index in collate_pages(len(pages)):
            entry, (draw, pagesize) = pages[index]
            pdf.setPageSize(pagesize)
            pdf.setFont(self.font_name, self.font_size)
            draw(pdf, entry, staff_name)
            pdf.showPage()

        pdf.save()
        return buffer.getvalue()

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    def _draw_summary(self, pdf: canvas.Canvas, entries: Sequence[ProcedureEntry]) -> None:
        _, height = A4
        y = height - 50
        pdf.setFont(self.font_name, 12)
        pdf.drawString(50, y, "Patient Summary")
        y -= 20
        columns = (("Patient ID", 50), ("Name", 130), ("Next Eye", 360), ("Remaining OD", 430), ("Remaining OS", 510))
        for title, x in columns:
            pdf.drawString(x, y, title)
        y -= 20

        pdf.setFont(self.font_name, self.font_size)
        for entry in entries:
            if y < 50:
                pdf.showPage()
                pdf.setFont(self.font_name, self.font_size)
                y = height - 50
            values = (
                entry.ref_id,
                entry.patient_name,
                entry.status,
                "-" if entry.remaining_od is None else str(entry.remaining_od),
                "-" if entry.remaining_os is None else str(entry.remaining_os),
            )
            for (_, x), value in zip(columns, values):
                pdf.drawString(x, y, value)
            y -= 15
        pdf.showPage()

    def _draw_procedure_form(self, pdf: canvas.Canvas, entry: ProcedureEntry, staff_name: str) -> None:
        procedure_date = _date_part(entry.procedure_date)
        pdf.drawString(50, 633, "Paciente:")
        pdf.drawString(100, 633, entry.patient_name.upper())
        pdf.drawString(420, 633, "Prontuário:")
        pdf.drawString(475, 633, entry.ref_id)
        pdf.drawString(53, 483, procedure_date)
        pdf.drawString(215, 483, procedure_date)
        pdf.drawString(50, 315, "Procedimento:")
        pdf.drawString(50, 300, entry.treatment_type)
        pdf.drawString(60, 110, procedure_date)

    def _draw_nursing_form(self, pdf: canvas.Canvas, entry: ProcedureEntry, staff_name: str) -> None:
        pdf.drawString(50, 705, "Paciente:")
        pdf.drawString(100, 705, entry.patient_name.upper())
        pdf.drawString(385, 705, "Prontuário:")
        pdf.drawString(440, 705, entry.ref_id)
        pdf.drawString(45, 670, _date_part(entry.procedure_date))
        pdf.drawString(75, 640, (staff_name or "").upper())

    def _draw_label_sheet(self, pdf: canvas.Canvas, entry: ProcedureEntry, staff_name: str) -> None:
        procedure_date = _date_part(entry.procedure_date)
        name = entry.patient_name.upper()
        pdf.drawString(75, 330, name)
        pdf.drawString(345, 330, procedure_date)
        pdf.drawString(485, 330, name)
        pdf.drawString(760, 330, procedure_date)


class PatientReportGenerator:
    """Admission form for the intravitreal injection programme."""

    LINE = 20
    OBSERVATIONS_WIDTH = 450

    def __init__(self, font_name: Optional[str] = None):
        self.font_name = font_name or settings.REPORT_FONT

    def generate(self, data: AdmissionData, issued_on: Optional[date] = None) -> bytes:
        buffer = io.BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=A4)
        pdf.setTitle(f"Solicitação de Injeção Intravítrea - {data.ref_id}")

        y = 675 - 0.5 * self.LINE
        pdf.setFont(self.font_name, 12)
        pdf.drawString(50, y, "Data:")
        pdf.drawString(102, y, (issued_on or date.today()).strftime("%d/%m/%Y"))

        pdf.setFont(self.font_name, 10)
        y -= 2.5 * self.LINE
        pdf.drawString(50, y, "Paciente:")
        pdf.drawString(115, y, data.name)
        pdf.drawString(360, y, "Prontuário:")
        pdf.drawString(425, y, data.ref_id)

        y -= 5.5 * self.LINE
        pdf.drawString(50, y, "Diagnóstico:")
        pdf.drawString(140, y, data.indication)

        y -= 9.5 * self.LINE
        pdf.drawString(250, y, "Medicação indicada:")
        pdf.drawString(380, y, data.medication)

        y -= 1.4 * self.LINE
        pdf.drawString(250, y, "Doses indicadas OD:")
        pdf.drawString(470, y, str(data.remaining_od or 0))

        y -= 1.2 * self.LINE
        pdf.drawString(250, y, "Doses indicadas OS:")
        pdf.drawString(470, y, str(data.remaining_os or 0))

        y -= 4.6 * self.LINE
        pdf.drawString(140, y, f"Swalis: {data.swalis_classification}")
        start_has_doses = (data.start_eye == "OD" and (data.remaining_od or 0) > 0) or (
            data.start_eye == "OS" and (data.remaining_os or 0) > 0
        )
        if start_has_doses:
            pdf.drawString(195, y, f"Começar por: {data.start_eye}")

        y -= 0.8 * self.LINE
        for line in wrap_text(data.observations or "", self.font_name, 10, self.OBSERVATIONS_WIDTH):
            pdf.drawString(85, y, line)
            y -= 0.8 * self.LINE

        pdf.showPage()
        pdf.save()
        return buffer.getvalue()


procedure_report_generator = ProcedureReportGenerator()
patient_report_generator = PatientReportGenerator()
