import pytest
from app.services.eye_scheduler import (
    EyeScheduler,
    Eye,
    STATUS_ERROR,
    STATUS_FINISHED,
    STATUS_NO_RECORD,
)


class TestNextEye:
    def setup_method(self):
        self.scheduler = EyeScheduler()

    def test_finished_course_has_no_next_eye(self):
        assert self.scheduler.next_eye(0, 0, start_od=True) is None
        assert self.scheduler.next_eye(0, 0, start_od=False, last_done_eye=Eye.OS) is None

    def test_negative_counts_count_as_finished(self):
        assert self.scheduler.next_eye(-1, 0, start_od=True) is None

    def test_alternates_after_od(self):
        """Last completed OD with OS still open goes to OS."""
        assert self.scheduler.next_eye(3, 2, start_od=True, last_done_eye=Eye.OD) is Eye.OS

    def test_alternates_after_os(self):
        assert self.scheduler.next_eye(1, 1, start_od=True, last_done_eye=Eye.OS) is Eye.OD

    def test_falls_back_to_same_eye(self):
        """Other eye exhausted: keep dosing the eye that was injected last."""
        assert self.scheduler.next_eye(2, 0, start_od=False, last_done_eye=Eye.OD) is Eye.OD

    def test_last_eye_exhausted_and_other_open(self):
        assert self.scheduler.next_eye(0, 2, start_od=True, last_done_eye=Eye.OD) is Eye.OS

    def test_no_history_starts_with_designated_eye(self):
        assert self.scheduler.next_eye(2, 2, start_od=True) is Eye.OD
        assert self.scheduler.next_eye(2, 2, start_od=False) is Eye.OS

    def test_no_history_designated_eye_without_doses(self):
        assert self.scheduler.next_eye(0, 3, start_od=True) is Eye.OS
        assert self.scheduler.next_eye(1, 0, start_od=False) is Eye.OD

    def test_accepts_plain_string_eye(self):
        assert self.scheduler.next_eye(1, 1, start_od=True, last_done_eye="OD") is Eye.OS


class TestStatusLabel:
    def setup_method(self):
        self.scheduler = EyeScheduler()

    def test_missing_patient(self):
        assert self.scheduler.status_label(patient_exists=False) == STATUS_NO_RECORD

    def test_finished(self):
        schedule = self.scheduler.schedule(True, 0, 0, start_od=True)
        assert schedule.status == STATUS_FINISHED
        assert schedule.next_eye is None

    @pytest.mark.parametrize("od,os", [(-1, 0), (0, -1), (3, -1), (-2, 5)])
    def test_negative_is_error(self, od, os):
        schedule = self.scheduler.schedule(True, od, os, start_od=True)
        assert schedule.status == STATUS_ERROR
        assert schedule.next_eye is None

    def test_last_dose_names_the_eye(self):
        assert self.scheduler.status_label(True, 1, 0, start_od=False) == "Última (OD)"
        assert self.scheduler.status_label(True, 0, 1, start_od=True, last_done_eye=Eye.OS) == "Última (OS)"

    def test_otherwise_reports_next_eye(self):
        assert self.scheduler.status_label(True, 2, 2, start_od=True) == "OD"
        assert self.scheduler.status_label(True, 2, 2, start_od=True, last_done_eye=Eye.OD) == "OS"

    def test_opposite(self):
        assert Eye.OD.opposite is Eye.OS
        assert Eye.OS.opposite is Eye.OD
