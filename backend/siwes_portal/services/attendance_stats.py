"""Attendance aggregates computed from already-loaded records"""
from typing import Dict, Iterable, Union


def compute_attendance_statistics(records: Iterable) -> Dict[str, Union[int, float]]:
    """
    Count present/absent marks and the attendance rate (percent, 2 dp).

    ``records`` is any iterable of objects with a boolean ``present``.
    """
    total = 0
    present = 0
    for record in records:
        total += 1
        if record.present:
            present += 1

    rate = round(present / total * 100, 2) if total else 0.0
    return {
        "total_days": total,
        "present_days": present,
        "absent_days": total - present,
        "attendance_rate": rate,
    }
