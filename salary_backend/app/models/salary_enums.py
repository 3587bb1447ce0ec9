"""
Salary ledger enumerations.
"""

import enum


class SalaryChangeType(str, enum.Enum):
    """Classification of a salary history record, decided when it is appended."""
    SALARY_CHANGE = "SALARY_CHANGE"  # Local amount or currency changed
    COMMISSION_CHANGE = "COMMISSION_CHANGE"  # Only the commission changed
    GENERAL_UPDATE = "GENERAL_UPDATE"  # Nothing monetary changed
