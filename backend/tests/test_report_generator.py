"""Tests for the PDF report generators."""
import re
from datetime import date

import pytest
from reportlab import rl_config

from app.services.report_generator import (
    AdmissionData,
    PatientReportGenerator,
    ProcedureEntry,
    ProcedureReportGenerator,
    collate_pages,
    wrap_text,
)


def _page_count(pdf: bytes) -> int:
    return len(re.findall(rb"/Type /Page[^s]", pdf))


@pytest.fixture()
def plain_streams(monkeypatch):
    """Leave page content streams uncompressed so the drawn text can be matched."""
    monkeypatch.setattr(rl_config, "pageCompression", 0)


def _entry(ref_id, name, status="OD"):
    return ProcedureEntry(
        ref_id=ref_id,
        patient_name=name,
        procedure_date="14/10/2026 08:30",
        treatment_type="INJEÇÃO INTRAVÍTREA DE AVASTIN",
        status=status,
        remaining_od=1,
        remaining_os=2,
    )


class TestCollatePages:
    def test_groups_pages_by_form(self):
        assert collate_pages(6) == [0, 3, 1, 4, 2, 5]

    def test_single_patient_keeps_order(self):
        assert collate_pages(3) == [0, 1, 2]

    def test_empty(self):
        assert collate_pages(0) == []


class TestWrapText:
    def test_short_text_is_one_line(self):
        assert wrap_text("olho seco", "Times-Roman", 10, 450) == ["olho seco"]

    def test_long_text_wraps_within_width(self):
        text = " ".join(["observacao"] * 40)
        lines = wrap_text(text, "Times-Roman", 10, 150)
        assert len(lines) > 1
        assert " ".join(lines) == text

    def test_empty_text(self):
        assert wrap_text("", "Times-Roman", 10, 450) == [""]


class TestProcedureReport:
    def test_summary_plus_three_pages_per_patient(self):
        pdf = ProcedureReportGenerator().generate(
            [_entry("1", "MARIA"), _entry("2", "JOSE", status="Finalizou")],
            staff_name="Dr. Souza",
        )
        assert pdf.startswith(b"%PDF-")
        assert _page_count(pdf) == 7

    def test_unnamed_rows_only_reach_the_summary(self):
        pdf = ProcedureReportGenerator().generate([_entry("3", "", status="N/A")], staff_name="")
        assert _page_count(pdf) == 1

    def test_summary_and_forms_carry_patient_data(self, plain_streams):
        pdf = ProcedureReportGenerator().generate(
            [_entry("1", "maria"), _entry("2", "JOSE", status="Finalizou")],
            staff_name="Dr. Souza",
        )
        assert b"(Patient Summary) Tj" in pdf
        assert b"(Finalizou) Tj" in pdf
        assert b"(OD) Tj" in pdf
        assert b"(MARIA) Tj" in pdf
        assert b"(DR. SOUZA) Tj" in pdf
        assert b"(14/10/2026) Tj" in pdf
        assert b"08:30" not in pdf


def _admission(**overrides):
    fields = dict(
        ref_id="1234",
        name="MARIA DA SILVA",
        indication="RD/EMD",
        medication="Avastin",
        swalis_classification="A2",
        start_eye="OD",
        remaining_od=2,
        remaining_os=2,
        observations="Paciente com catarata. " * 20,
    )
    fields.update(overrides)
    return AdmissionData(**fields)


class TestPatientReport:
    def test_admission_form(self):
        pdf = PatientReportGenerator().generate(_admission(), issued_on=date(2026, 10, 19))
        assert pdf.startswith(b"%PDF-")
        assert _page_count(pdf) == 1

    def test_stamped_fields(self, plain_streams):
        pdf = PatientReportGenerator().generate(_admission(), issued_on=date(2026, 10, 19))
        assert b"(19/10/2026) Tj" in pdf
        assert b"(MARIA DA SILVA) Tj" in pdf
        assert b"(1234) Tj" in pdf
        assert b"(Swalis: A2) Tj" in pdf
        # "Começar por: OD"; the cedilla is written as an octal escape
        assert b"ar por: OD) Tj" in pdf

    def test_start_eye_hidden_without_doses(self, plain_streams):
        pdf = PatientReportGenerator().generate(
            _admission(start_eye="OD", remaining_od=0, remaining_os=3),
            issued_on=date(2026, 10, 19),
        )
        assert b"ar por:" not in pdf
        assert b"(Swalis: A2) Tj" in pdf

    def test_long_observations_wrap_onto_several_lines(self, plain_streams):
        pdf = PatientReportGenerator().generate(_admission(), issued_on=date(2026, 10, 19))
        drawn = re.findall(rb"\([^)]*catarata[^)]*\) Tj", pdf)
        assert len(drawn) >= 2
