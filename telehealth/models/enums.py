import enum


class UserRole(str, enum.Enum):
    UNASSIGNED = "UNASSIGNED"
    PATIENT = "PATIENT"
    DOCTOR = "DOCTOR"
    ADMIN = "ADMIN"


class VerificationStatus(str, enum.Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class AvailabilityStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    BOOKED = "BOOKED"
    BLOCKED = "BLOCKED"


class TransactionType(str, enum.Enum):
    CREDIT_PURCHASE = "CREDIT_PURCHASE"
    APPOINTMENT_DEDUCTION = "APPOINTMENT_DEDUCTION"
