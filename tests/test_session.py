"""Tests for the adjustment workflow session."""

from datetime import date
from decimal import Decimal

import pytest

from payroll_adjustments.calculators.types import (
    AdjustmentKind,
    AdjustmentValidationError,
    LineItemFlag,
)
from payroll_adjustments.services.session import AdjustmentSession
from payroll_adjustments.services.submission import SubmissionOutcome

TODAY = date(2024, 3, 15)


@pytest.fixture
def session(gateway):
    return AdjustmentSession(gateway, AdjustmentKind.INCREMENT, today=TODAY)


class TestSelection:
    """Test employee selection and baseline resolution."""

    @pytest.mark.asyncio
    async def test_select_resolves_new_employees(self, session, gateway):
        states = await session.select_employees(["emp-1", "emp-2"])

        assert states["emp-1"].value == Decimal("50000")
        assert states["emp-2"].value == Decimal("80000")
        assert gateway.employee_lookups == ["emp-1", "emp-2"]

    @pytest.mark.asyncio
    async def test_reselect_does_not_refetch(self, session, gateway):
        await session.select_employees(["emp-1"])
        await session.select_employees(["emp-1", "emp-3"])

        assert gateway.employee_lookups == ["emp-1", "emp-3"]

    @pytest.mark.asyncio
    async def test_deselect_prunes_staging(self, session, increment_rule):
        await session.select_employees(["emp-1", "emp-2"])
        session.generate(increment_rule, ["2024-01", "2024-02"])

        await session.select_employees(["emp-2"])

        assert {i.employee_id for i in session.staging} == {"emp-2"}
        assert len(session.staging) == 2
        assert "emp-1" not in session.resolver.snapshot()

    @pytest.mark.asyncio
    async def test_employee_options_filtering(self, session):
        everyone = await session.employee_options()
        engineering = await session.employee_options("dep-eng")
        backend = await session.employee_options("dep-eng", "sub-backend")

        assert len(everyone) == 3
        assert [o.id for o in engineering] == ["emp-1", "emp-2"]
        assert [o.id for o in backend] == ["emp-1"]

    @pytest.mark.asyncio
    async def test_sub_departments(self, session):
        assert await session.sub_departments("all") == []
        assert await session.sub_departments(None) == []
        names = [s.name for s in await session.sub_departments("dep-eng")]
        assert names == ["Backend", "Frontend"]

    @pytest.mark.asyncio
    async def test_catalog_for_session_kind(self, gateway):
        session = AdjustmentSession(gateway, AdjustmentKind.BONUS)
        entries = await session.catalog()
        assert [e.id for e in entries] == ["bon-eid"]


class TestGenerate:
    """Test staging through the session."""

    @pytest.mark.asyncio
    async def test_generate_stages_items(self, session, increment_rule):
        await session.select_employees(["emp-1", "emp-2"])

        result = session.generate(increment_rule, ["2024-01", "2024-02"])

        assert result.added == 4
        assert len(session.staging) == 4
        amounts = {(i.employee_id, i.period.key): i.computed_amount for i in session.staging}
        assert amounts[("emp-1", "2024-01")] == Decimal("55000.00")
        assert amounts[("emp-2", "2024-02")] == Decimal("88000.00")

    @pytest.mark.asyncio
    async def test_generate_twice_adds_nothing(self, session, increment_rule):
        await session.select_employees(["emp-1", "emp-2"])
        session.generate(increment_rule, ["2024-01", "2024-02"])

        again = session.generate(increment_rule, ["2024-01", "2024-02"])

        assert again.added == 0
        assert again.skipped == 4
        assert len(session.staging) == 4

    @pytest.mark.asyncio
    async def test_kind_mismatch_rejected(self, session, deduction_rule):
        await session.select_employees(["emp-1"])
        with pytest.raises(AdjustmentValidationError, match="does not match"):
            session.generate(deduction_rule, ["2024-01"])

    def test_generate_without_selection(self, session, increment_rule):
        with pytest.raises(AdjustmentValidationError, match="at least one employee"):
            session.generate(increment_rule, ["2024-01"])

    @pytest.mark.asyncio
    async def test_edit_and_remove(self, session, increment_rule):
        await session.select_employees(["emp-1"])
        session.generate(increment_rule, ["2024-01", "2024-02"])
        first, second = session.staging.items

        session.edit_item(first.id, amount="56000")
        session.remove_item(second.id)

        assert [i.computed_amount for i in session.staging] == [Decimal("56000.00")]


class TestFailureAndRefresh:
    """Test failed lookups and the refresh path."""

    @pytest.mark.asyncio
    async def test_failed_lookup_then_refresh(self, session, gateway, increment_rule):
        gateway.failing_employees.add("emp-2")
        await session.select_employees(["emp-1", "emp-2"])
        session.generate(increment_rule, ["2024-01"])

        pending = session.staging.unresolved()
        assert [i.employee_id for i in pending] == ["emp-2"]
        assert LineItemFlag.UNRESOLVED in pending[0].flags

        with pytest.raises(AdjustmentValidationError):
            await session.submit()
        assert gateway.batch_calls == []

        gateway.failing_employees.clear()
        remaining = await session.refresh()

        assert remaining == 0
        amounts = {i.employee_id: i.computed_amount for i in session.staging}
        assert amounts == {"emp-1": Decimal("55000.00"), "emp-2": Decimal("88000.00")}


class TestSessionSubmit:
    """Test submission through the session."""

    @pytest.mark.asyncio
    async def test_success_clears_staging(self, session, gateway, increment_rule):
        await session.select_employees(["emp-1", "emp-2"])
        session.generate(increment_rule, ["2024-01", "2024-02"])
        generation = session.staging.generation

        result = await session.submit()

        assert result.success
        assert len(session.staging) == 0
        assert session.staging.generation == generation
        assert len(gateway.batches) == 2

    @pytest.mark.asyncio
    async def test_partial_failure_keeps_staging_for_retry(
        self, session, gateway, increment_rule
    ):
        gateway.rejected_periods["2024-02"] = "Locked"
        await session.select_employees(["emp-1"])
        session.generate(increment_rule, ["2024-01", "2024-02"])

        result = await session.submit()
        assert result.outcome is SubmissionOutcome.PARTIAL_FAILURE
        assert len(session.staging) == 2

        gateway.rejected_periods.clear()
        retry = await session.submit()

        assert retry.success
        assert len(session.staging) == 0
        assert len(gateway.batches) == 2
