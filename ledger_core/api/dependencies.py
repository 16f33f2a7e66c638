"""
Service wiring and request helpers shared by the routers
"""

from datetime import datetime
from typing import Optional

from ..storage import InMemoryLedgerStorage, LedgerStorage
from ..ledger import LedgerService
from ..exceptions import ValidationError


class LedgerSystem:
    """Ledger storage and engine wired together"""

    def __init__(self, storage: Optional[LedgerStorage] = None):
        self.storage = storage or InMemoryLedgerStorage()
        self.ledger_service = LedgerService(self.storage)


# Global ledger system instance
ledger_system = LedgerSystem()


# Dependency to get the ledger service
def get_ledger_service() -> LedgerService:
    return ledger_system.ledger_service


def parse_timestamp(value: Optional[str], field_name: str = "timestamp") -> Optional[datetime]:
    """
    Parse an ISO-8601 date-time with offset

    Blank or missing values mean "not supplied" and return None.

    Raises:
        ValidationError: If the value is not a valid offset date-time
    """
    if value is None or not value.strip():
        return None

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"{field_name} is not a valid ISO-8601 date-time: {value}")

    if parsed.tzinfo is None:
        raise ValidationError(f"{field_name} must include a UTC offset: {value}")
    return parsed
