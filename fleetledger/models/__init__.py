"""Models package - Import all models for SQLAlchemy registration."""
from fleetledger.models.tenant import Tenant
from fleetledger.models.counter import Counter
from fleetledger.models.customer import Customer
from fleetledger.models.transporter import Transporter
from fleetledger.models.driver import Driver
from fleetledger.models.vehicle import Vehicle
from fleetledger.models.route import Route, RouteVehicleConfig
from fleetledger.models.trip import Trip, TripStatus
from fleetledger.models.subtrip import Subtrip, SubtripStatus
from fleetledger.models.expense import Expense, ExpenseType, ExpenseCategory
from fleetledger.models.subtrip_event import SubtripEvent, SubtripEventType
from fleetledger.models.invoice import Invoice, InvoicePayment, InvoiceStatus
from fleetledger.models.transporter_payment import TransporterPayment, PayoutStatus
from fleetledger.models.driver_salary import DriverSalary
from fleetledger.models.loan import Loan, LoanRepayment, LoanStatus

__all__ = [
    "Tenant",
    "Counter",
    "Customer",
    "Transporter",
    "Driver",
    "Vehicle",
    "Route",
    "RouteVehicleConfig",
    "Trip",
    "TripStatus",
    "Subtrip",
    "SubtripStatus",
    "Expense",
    "ExpenseType",
    "ExpenseCategory",
    "SubtripEvent",
    "SubtripEventType",
    "Invoice",
    "InvoicePayment",
    "InvoiceStatus",
    "TransporterPayment",
    "PayoutStatus",
    "DriverSalary",
    "Loan",
    "LoanRepayment",
    "LoanStatus",
]
