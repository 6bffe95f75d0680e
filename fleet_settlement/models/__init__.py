# Fleet settlement: Database Models
# Import all models here for SQLAlchemy discovery

from fleet_settlement.models.machinery import Machinery, Personnel, DriverAssignment   # noqa
from fleet_settlement.models.records import (                                          # noqa
    TruckRecord, OilRecord, ShiftHours, Deduction, MiscFee, RepairRecord,
)
from fleet_settlement.models.prices import (                                           # noqa
    ExcavatorCoefficient, ShiftPrice, MealPrice, OilPrice, DistancePrice,
)
from fleet_settlement.models.attendance import AttendanceMaster, AttendanceDetail      # noqa
from fleet_settlement.models.settlement import DailySettlement, MonthlySettlement      # noqa
from fleet_settlement.models.alert import Alert                                        # noqa
from fleet_settlement.models.fuel_balance import FuelBalance                           # noqa
from fleet_settlement.models.baseline import AnalysisBaseline                          # noqa
from fleet_settlement.models.task_lease import TaskLease                               # noqa
