"""Employee selection helpers."""

from __future__ import annotations

from typing import Iterable, Sequence

from payroll_adjustments.schemas import EmployeeOption

ALL = "all"


def _is_unfiltered(value: str | None) -> bool:
    return value is None or value == "" or value == ALL


def filter_employees(
    options: Iterable[EmployeeOption],
    department_id: str | None = ALL,
    sub_department_id: str | None = ALL,
) -> list[EmployeeOption]:
    """Restrict dropdown options to a department and sub-department.

    None, "" and "all" mean no restriction.
    """
    result: list[EmployeeOption] = []
    for option in options:
        if not _is_unfiltered(department_id) and option.department_id != department_id:
            continue
        if (
            not _is_unfiltered(sub_department_id)
            and option.sub_department_id != sub_department_id
        ):
            continue
        result.append(option)
    return result


def diff_selection(
    previous: Sequence[str], current: Sequence[str]
) -> tuple[list[str], list[str]]:
    """Return (added, removed) employee ids, keeping selection order."""
    before = set(previous)
    after = set(current)
    added = [emp_id for emp_id in dict.fromkeys(current) if emp_id not in before]
    removed = [emp_id for emp_id in previous if emp_id not in after]
    return added, removed
