# fleet_settlement/services/errors.py
"""
Error taxonomy shared by the settlement services, plus the BatchResult
returned by every multi-vehicle run.
"""

from dataclasses import dataclass, field


class PriceNotFoundError(LookupError):
    """No price row effective on or before the requested date."""

    def __init__(self, category: str, as_of, key=None):
        self.category = category
        self.as_of = as_of
        self.key = key
        label = f"{category}[{key}]" if key is not None else category
        super().__init__(f"No {label} price effective on or before {as_of}")


class SettlementNotFoundError(LookupError):
    """A daily settlement required as input has not been generated yet."""


class PersonnelNotFoundError(LookupError):
    pass


class NoActiveVehiclesError(RuntimeError):
    """Batch run aborted: the roster returned no active vehicles."""


@dataclass
class VehicleFailure:
    machinery_type: str
    vehicle_no: str
    message: str


@dataclass
class BatchResult:
    total: int = 0
    success: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[VehicleFailure] = field(default_factory=list)

    def record_failure(self, vehicle, exc: Exception):
        self.failed += 1
        self.errors.append(VehicleFailure(vehicle.machinery_type, vehicle.vehicle_no, str(exc)))

    def summary(self) -> str:
        return (f"{self.success}/{self.total} ok, {self.failed} failed, "
                f"{self.skipped} skipped")
