"""Backend collaborators: protocol and adapters."""

from payroll_adjustments.gateway.base import GatewayError, PayrollGateway
from payroll_adjustments.gateway.http import HttpPayrollGateway
from payroll_adjustments.gateway.memory import InMemoryPayrollGateway

__all__ = [
    "GatewayError",
    "PayrollGateway",
    "HttpPayrollGateway",
    "InMemoryPayrollGateway",
]
