"""
Status History

Reads a day's log written by the recorder back into status records for
chart visualization.
"""

import logging
import os
import re
from datetime import date
from pathlib import Path

from .exceptions import CorruptDataError, InvalidRequestError, NotFoundError
from .models import StatusRecord
from .recorder import file_lock

logger = logging.getLogger(__name__)

DAY_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")


class HistoryReader:
    """Parses daily logs into status records."""

    def __init__(self, log_dir: str | os.PathLike):
        self.log_dir = Path(log_dir)

    def read_day(self, day: str) -> list[StatusRecord]:
        """Get all records logged on one calendar day.

        Args:
            day: Date in YYYY-MM-DD format

        Returns:
            Records in the order they were written

        Raises:
            InvalidRequestError: If day is not a valid date
            NotFoundError: If no log exists for that day
            CorruptDataError: If any line cannot be parsed
        """
        path = self.log_dir / f"{_validate_day(day)}.log"

        try:
            with file_lock(path):
                with open(path, encoding="utf-8") as f:
                    lines = f.readlines()
        except FileNotFoundError:
            raise NotFoundError(f"No log for {day}")
        except UnicodeDecodeError as e:
            raise CorruptDataError(f"{path.name} is not valid UTF-8: {e}")

        records = []
        for number, line in enumerate(lines, start=1):
            # Older logs start each record with a newline instead of ending with one
            if not line.strip():
                continue
            try:
                records.append(StatusRecord.from_csv_line(line))
            except CorruptDataError as e:
                raise CorruptDataError(f"{path.name} line {number}: {e}")

        logger.debug(f"Read {len(records)} records for {day}")
        return records

    def available_days(self) -> list[str]:
        """Days that currently have a log, oldest first."""
        if not self.log_dir.is_dir():
            return []

        days = []
        for path in self.log_dir.glob("*.log"):
            try:
                days.append(_validate_day(path.stem))
            except InvalidRequestError:
                continue
        return sorted(days)


def _validate_day(day: str) -> str:
    if not DAY_PATTERN.fullmatch(day):
        raise InvalidRequestError("day", f"Invalid day, expected YYYY-MM-DD: {day!r}")
    try:
        date.fromisoformat(day)
    except ValueError:
        raise InvalidRequestError("day", f"Invalid day: {day!r}")
    return day
