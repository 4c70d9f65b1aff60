"""UK tax year identifiers ("2025/26")."""

from __future__ import annotations

import datetime
import typing


class TaxYear(typing.NamedTuple):
    """A UK tax year, running 6 April of ``year1`` to 5 April of ``year2``."""

    year1: int
    year2: int

    def __str__(self) -> str:
        return f"{self.year1}/{self.year2 % 100:02d}"

    def start_date(self) -> datetime.date:
        return datetime.date(self.year1, 4, 6)

    def end_date(self) -> datetime.date:
        return datetime.date(self.year2, 4, 5)

    @classmethod
    def from_date(cls, date: datetime.date) -> TaxYear:
        if date < date.replace(date.year, 4, 6):
            year1, year2 = date.year - 1, date.year
        else:
            year1, year2 = date.year, date.year + 1
        return cls(year1, year2)

    @staticmethod
    def _str_to_year(s: str) -> int:
        if not s.isdigit():
            raise ValueError(s)
        y = int(s)
        if len(s) == 2:
            y += 2000
        if y < datetime.MINYEAR or y > datetime.MAXYEAR:
            raise ValueError(f"{s} out of range")
        return y

    @classmethod
    def from_string(cls, s: str) -> TaxYear:
        """Parse "2025/26", "2025/2026", "25/26", "2025-26" or "2026".

        A single year names the year the tax year ends in.

        Raises:
            ValueError: If the text is not a tax year.
        """
        s = s.strip().replace("-", "/")
        try:
            s1, s2 = s.split("/", maxsplit=1)
        except ValueError:
            y2 = cls._str_to_year(s)
            y1 = y2 - 1
        else:
            y1 = cls._str_to_year(s1)
            y2 = cls._str_to_year(s2)
            if len(s2) == 2 and len(s1) == 4:
                # "2099/00" rolls over the century
                y2 = (y1 // 100) * 100 + int(s2)
                if y2 <= y1:
                    y2 += 100
            if y1 + 1 != y2:
                raise ValueError(f"{s1} and {s2} are not consecutive years")
        return cls(y1, y2)

    @classmethod
    def coerce(cls, value: TaxYear | str) -> TaxYear:
        """Accept a TaxYear or any string ``from_string`` understands."""
        if isinstance(value, TaxYear):
            return value
        if isinstance(value, str):
            return cls.from_string(value)
        raise TypeError(f"Expected TaxYear or str, got {type(value).__name__}")
