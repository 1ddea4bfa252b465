"""Tests for selection helpers."""

from payroll_adjustments.schemas import EmployeeOption
from payroll_adjustments.services.selection import diff_selection, filter_employees

OPTIONS = [
    EmployeeOption(id="emp-1", department_id="dep-eng", sub_department_id="sub-backend"),
    EmployeeOption(id="emp-2", department_id="dep-eng", sub_department_id="sub-frontend"),
    EmployeeOption(id="emp-3", department_id="dep-hr"),
]


class TestFilterEmployees:
    def test_all_means_unfiltered(self):
        for value in ("all", "", None):
            assert len(filter_employees(OPTIONS, value, value)) == 3

    def test_department_and_sub_department(self):
        assert [o.id for o in filter_employees(OPTIONS, "dep-hr")] == ["emp-3"]
        assert [
            o.id for o in filter_employees(OPTIONS, "dep-eng", "sub-frontend")
        ] == ["emp-2"]

    def test_sub_department_alone(self):
        assert [o.id for o in filter_employees(OPTIONS, "all", "sub-backend")] == ["emp-1"]


class TestDiffSelection:
    def test_added_and_removed(self):
        added, removed = diff_selection(["emp-1", "emp-2"], ["emp-2", "emp-3", "emp-3"])
        assert added == ["emp-3"]
        assert removed == ["emp-1"]

    def test_no_change(self):
        assert diff_selection(["emp-1"], ["emp-1"]) == ([], [])
