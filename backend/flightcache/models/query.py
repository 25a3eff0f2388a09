"""
Query filter model for the flight cache.

Filter values are trimmed and upper-cased on construction; blank values
become None, which means the dimension is not filtered.
"""

import re
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator

_CODE_PATTERN = re.compile(r"^[A-Z0-9]{1,8}$")


class FlightQuery(BaseModel):
    """
    Airline and airport filter for a cache search.

    When both values are present a record matches if EITHER the airline
    matches or the airport matches at departure or arrival.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    airline_iata: Optional[str] = Field(None, description="Airline IATA code")
    airport_iata: Optional[str] = Field(None, description="Airport IATA code, either endpoint")

    @field_validator("airline_iata", "airport_iata", mode="before")
    @classmethod
    def normalize_code(cls, v: Any) -> Optional[str]:
        """Trim and upper-case, treating blank input as absent."""
        if v is None:
            return None
        code = str(v).strip().upper()
        if not code:
            return None
        if not _CODE_PATTERN.match(code):
            raise ValueError(f"Invalid IATA code: {v!r}")
        return code

    @property
    def is_unfiltered(self) -> bool:
        return self.airline_iata is None and self.airport_iata is None

    def matches(self, record: Dict[str, Any]) -> bool:
        """
        Evaluate the filter against a raw record dict.

        Record codes are compared exactly, as the structured path compares
        them; missing sections never match.
        """
        if self.is_unfiltered:
            return True

        if self.airline_iata is not None and _code(record, "airline") == self.airline_iata:
            return True

        if self.airport_iata is not None:
            if _code(record, "departure") == self.airport_iata:
                return True
            if _code(record, "arrival") == self.airport_iata:
                return True

        return False

    def to_json_path(self) -> str:
        """
        Structured-path expression selecting the matching records.

        Example:
            FlightQuery(airline_iata="MU", airport_iata="OTP").to_json_path()
            # $.data[?(@.airline.iata=="MU" || @.departure.iata=="OTP" || @.arrival.iata=="OTP")]
        """
        clauses = []
        if self.airline_iata is not None:
            clauses.append(f'@.airline.iata=="{self.airline_iata}"')
        if self.airport_iata is not None:
            clauses.append(f'@.departure.iata=="{self.airport_iata}"')
            clauses.append(f'@.arrival.iata=="{self.airport_iata}"')

        if not clauses:
            return "$.data[*]"
        return f"$.data[?({' || '.join(clauses)})]"


def _code(record: Dict[str, Any], section: str) -> Optional[str]:
    part = record.get(section) if isinstance(record, dict) else None
    if not isinstance(part, dict):
        return None
    value = part.get("iata")
    if not isinstance(value, str):
        return None
    return value
