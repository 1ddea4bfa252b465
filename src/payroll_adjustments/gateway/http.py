"""HTTP adapter for the payroll backend REST API."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from payroll_adjustments.calculators.types import AdjustmentKind
from payroll_adjustments.config import Settings, get_settings
from payroll_adjustments.gateway.base import GatewayError
from payroll_adjustments.schemas import (
    BatchCreateRequest,
    BatchCreateResult,
    EmployeeDetail,
    EmployeeOption,
    RuleTypeEntry,
    SubDepartment,
)

logger = logging.getLogger(__name__)

CATALOG_PATHS: dict[AdjustmentKind, str] = {
    AdjustmentKind.INCREMENT: "/employee-grades",
    AdjustmentKind.ALLOWANCE: "/allowance-heads",
    AdjustmentKind.DEDUCTION: "/deduction-heads",
    AdjustmentKind.BONUS: "/bonus-types",
}

BATCH_PATHS: dict[AdjustmentKind, str] = {
    AdjustmentKind.INCREMENT: "/increments/bulk",
    AdjustmentKind.ALLOWANCE: "/allowances/bulk",
    AdjustmentKind.DEDUCTION: "/deductions/bulk",
    AdjustmentKind.BONUS: "/bonuses/bulk",
}


class HttpPayrollGateway:
    """PayrollGateway over the backend's JSON API.

    Every endpoint answers with an envelope {status, data?, message?}.

    Usage:
        async with HttpPayrollGateway() as gateway:
            employee = await gateway.get_employee_by_id("emp-1")
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings or get_settings()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=self.settings.api_base_url,
            timeout=self.settings.request_timeout_seconds,
            headers=self._headers(),
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.settings.api_token:
            headers["Authorization"] = f"Bearer {self.settings.api_token}"
        return headers

    async def __aenter__(self) -> HttpPayrollGateway:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send a request and return the decoded envelope."""
        try:
            response = await self.client.request(method, path, json=json)
        except httpx.HTTPError as e:
            raise GatewayError(operation, str(e) or type(e).__name__) from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_error:
            message = body.get("message") if isinstance(body, dict) else None
            raise GatewayError(
                operation,
                message or f"HTTP error! status: {response.status_code}",
                status_code=response.status_code,
            )
        if not isinstance(body, dict):
            raise GatewayError(operation, "Malformed response envelope")
        return body

    async def _fetch_data(self, operation: str, path: str) -> Any:
        body = await self._request(operation, "GET", path)
        if not body.get("status"):
            raise GatewayError(operation, body.get("message") or "Request rejected")
        return body.get("data")

    async def get_employee_by_id(self, employee_id: str) -> EmployeeDetail:
        operation = f"get_employee_by_id({employee_id})"
        data = await self._fetch_data(operation, f"/employees/{employee_id}")
        if data is None:
            raise GatewayError(operation, "Employee not found")
        try:
            return EmployeeDetail.model_validate(data)
        except ValidationError as e:
            raise GatewayError(operation, f"Invalid employee payload: {e}") from e

    async def get_employees_for_dropdown(self) -> list[EmployeeOption]:
        data = await self._fetch_data("get_employees_for_dropdown", "/employees/dropdown")
        return [EmployeeOption.model_validate(row) for row in data or []]

    async def get_sub_departments_by_department(
        self, department_id: str
    ) -> list[SubDepartment]:
        data = await self._fetch_data(
            f"get_sub_departments_by_department({department_id})",
            f"/sub-departments/department/{department_id}",
        )
        return [SubDepartment.model_validate(row) for row in data or []]

    async def get_rule_types(self, kind: AdjustmentKind) -> list[RuleTypeEntry]:
        data = await self._fetch_data(f"get_rule_types({kind.value})", CATALOG_PATHS[kind])
        return [RuleTypeEntry.model_validate(row) for row in data or []]

    async def create_batch(
        self, kind: AdjustmentKind, request: BatchCreateRequest
    ) -> BatchCreateResult:
        operation = f"create_batch({kind.value}, {request.period.year}-{request.period.month})"
        try:
            body = await self._request(
                operation, "POST", BATCH_PATHS[kind], json=request.to_wire()
            )
        except GatewayError as e:
            # A 4xx/5xx with an envelope is a server-side rejection, not a
            # transport failure
            if e.status_code is None:
                raise
            logger.warning("%s", e)
            return BatchCreateResult(succeeded=False, message=e.message)

        data = body.get("data")
        return BatchCreateResult(
            succeeded=bool(body.get("status")),
            message=body.get("message"),
            created_items=data if isinstance(data, list) else None,
        )
