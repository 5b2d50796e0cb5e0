"""
SSOT (Single Source of Truth) schemas for housing records.

These canonical records are the ONLY models used to move backend rows
between the client, the state store and the services.
"""

from .records import (
    EmployeeRecord,
    Gender,
    RoommatePairingRecord,
    SleepSchedule,
    UnitRecord,
    UnitStatus,
    normalize_gender,
    normalize_hobbies,
    normalize_sleep_schedule,
)

__all__ = [
    "EmployeeRecord",
    "Gender",
    "RoommatePairingRecord",
    "SleepSchedule",
    "UnitRecord",
    "UnitStatus",
    "normalize_gender",
    "normalize_hobbies",
    "normalize_sleep_schedule",
]
