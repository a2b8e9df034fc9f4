"""
Alternating-eye scheduler.
Decides which eye receives the next intravitreal dose and derives the
presentation status shown on reports and patient lookups.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Eye(str, Enum):
    OD = "OD"  # right eye
    OS = "OS"  # left eye

    @property
    def opposite(self) -> "Eye":
        return Eye.OS if self is Eye.OD else Eye.OD


STATUS_FINISHED = "Finalizou"
STATUS_ERROR = "Erro"
STATUS_NO_RECORD = "N/A"
STATUS_LAST_TEMPLATE = "Última ({eye})"


@dataclass
class Schedule:
    next_eye: Optional[Eye]
    status: str


class EyeScheduler:
    """
    Alternates eyes between sessions while one course is still open on each side,
    and falls back to dosing the same eye once the other side has no doses left.
    """

    @staticmethod
    def _remaining(eye: Eye, remaining_od: int, remaining_os: int) -> int:
        return remaining_od if eye is Eye.OD else remaining_os

    def next_eye(
        self,
        remaining_od: int,
        remaining_os: int,
        start_od: bool,
        last_done_eye: Optional[Eye] = None,
    ) -> Optional[Eye]:
        """
        Return the eye for the next dose, or None when no eye has doses left.

        ``last_done_eye`` is the eye of the most recent injection marked done.
        """
        if remaining_od <= 0 and remaining_os <= 0:
            return None

        if last_done_eye is not None:
            last_done_eye = Eye(last_done_eye)
            candidates = (last_done_eye.opposite, last_done_eye)
        else:
            first = Eye.OD if start_od else Eye.OS
            candidates = (first, first.opposite)

        for eye in candidates:
            if self._remaining(eye, remaining_od, remaining_os) > 0:
                return eye
        return None

    def status_label(
        self,
        patient_exists: bool,
        remaining_od: int = 0,
        remaining_os: int = 0,
        start_od: bool = True,
        last_done_eye: Optional[Eye] = None,
    ) -> str:
        return self.schedule(patient_exists, remaining_od, remaining_os, start_od, last_done_eye).status

    def schedule(
        self,
        patient_exists: bool,
        remaining_od: int = 0,
        remaining_os: int = 0,
        start_od: bool = True,
        last_done_eye: Optional[Eye] = None,
    ) -> Schedule:
        """Next eye together with its presentation status."""
        if not patient_exists:
            return Schedule(next_eye=None, status=STATUS_NO_RECORD)

        next_eye = self.next_eye(remaining_od, remaining_os, start_od, last_done_eye)

        if remaining_od < 0 or remaining_os < 0:
            # Corrupt counts are never dosed against
            next_eye = None
            status = STATUS_ERROR
        elif remaining_od == 0 and remaining_os == 0:
            status = STATUS_FINISHED
        elif remaining_od + remaining_os == 1:
            last_eye = Eye.OD if remaining_od == 1 else Eye.OS
            status = STATUS_LAST_TEMPLATE.format(eye=last_eye.value)
        else:
            status = next_eye.value if next_eye else STATUS_NO_RECORD

        return Schedule(next_eye=next_eye, status=status)


eye_scheduler = EyeScheduler()
