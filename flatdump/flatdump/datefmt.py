"""
Oracle-style date format models.

A format string such as ``DD-MON-YYYY HH24:MI:SS`` is compiled once into a
``DateFormat`` and then applied to every DATE value written during an export.
Compilation is strict: an element the renderer does not know is rejected up
front rather than copied through, so a typo surfaces before any file is
opened.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import List, Tuple, Union

DEFAULT_DATE_FORMAT = "DD-MON-YYYY HH24:MI:SS"

MONTH_NAMES = (
    "JANUARY", "FEBRUARY", "MARCH", "APRIL", "MAY", "JUNE",
    "JULY", "AUGUST", "SEPTEMBER", "OCTOBER", "NOVEMBER", "DECEMBER",
)
# Monday first, matching date.weekday().
DAY_NAMES = ("MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY", "SUNDAY")
ROMAN_MONTHS = ("I", "II", "III", "IV", "V", "VI", "VII", "VIII", "IX", "X", "XI", "XII")

PUNCTUATION = frozenset("-/,.;: ")

# Longest first so that e.g. SSSSS wins over SS and HH24 over HH.
ELEMENTS: Tuple[str, ...] = (
    "SSSSS", "SYYYY", "MONTH",
    "YYYY", "RRRR", "HH24", "HH12", "A.M.", "P.M.",
    "YYY", "MON", "DDD", "DAY",
    "FF1", "FF2", "FF3", "FF4", "FF5", "FF6", "FF7", "FF8", "FF9",
    "YY", "RR", "MM", "RM", "DD", "DY", "HH", "MI", "SS", "FF", "AM", "PM", "FM", "WW",
    "Y", "D", "Q", "W", "J",
)

_ALPHA_ELEMENTS = frozenset({"MONTH", "MON", "DAY", "DY", "RM", "AM", "PM", "A.M.", "P.M."})

# Julian day number of 0001-01-01 minus one (date.toordinal() starts at 1).
_JULIAN_OFFSET = 1721425


@dataclass(frozen=True)
class Element:
    name: str
    case: str  # "upper" | "title" | "lower"
    fill: bool


Part = Union[str, Element]


def _case_of(token: str) -> str:
    first = token[0]
    if first.islower():
        return "lower"
    letters = [c for c in token if c.isalpha()]
    if len(letters) > 1 and letters[1].islower():
        return "title"
    return "upper"


def _apply_case(text: str, case: str) -> str:
    if case == "lower":
        return text.lower()
    if case == "title":
        return text.capitalize()
    return text


def _tokenize(fmt: str) -> List[Part]:
    parts: List[Part] = []
    fill = False
    i = 0
    n = len(fmt)
    while i < n:
        ch = fmt[i]
        if ch == '"':
            end = fmt.find('"', i + 1)
            if end < 0:
                raise ValueError("date format not recognized: unterminated quoted text")
            parts.append(fmt[i + 1:end])
            i = end + 1
            continue
        if ch in PUNCTUATION:
            parts.append(ch)
            i += 1
            continue
        upper = fmt[i:].upper()
        for name in ELEMENTS:
            if upper.startswith(name):
                token = fmt[i:i + len(name)]
                if name == "FM":
                    fill = not fill
                else:
                    parts.append(Element(name=name, case=_case_of(token), fill=fill))
                i += len(name)
                break
        else:
            raise ValueError(f"date format not recognized: {fmt[i:]!r}")
    return parts


def _pad(value: int, width: int, fill: bool) -> str:
    return str(value) if fill else str(value).zfill(width)


def _pad_name(name: str, width: int, fill: bool) -> str:
    return name if fill else name.ljust(width)


def _render_element(el: Element, dt: datetime) -> str:
    name = el.name
    fill = el.fill
    if name == "SYYYY":
        # Signed year; Python dates are never BC so the sign is always blank.
        return _pad(dt.year, 4, fill) if fill else " " + _pad(dt.year, 4, fill)
    if name in ("YYYY", "RRRR"):
        return _pad(dt.year, 4, fill)
    if name == "YYY":
        return _pad(dt.year % 1000, 3, fill)
    if name in ("YY", "RR"):
        return _pad(dt.year % 100, 2, fill)
    if name == "Y":
        return str(dt.year % 10)
    if name == "MM":
        return _pad(dt.month, 2, fill)
    if name == "MON":
        return _apply_case(MONTH_NAMES[dt.month - 1][:3], el.case)
    if name == "MONTH":
        return _apply_case(_pad_name(MONTH_NAMES[dt.month - 1], 9, fill), el.case)
    if name == "RM":
        return _apply_case(_pad_name(ROMAN_MONTHS[dt.month - 1], 4, fill), el.case)
    if name == "DD":
        return _pad(dt.day, 2, fill)
    if name == "DDD":
        return _pad(dt.timetuple().tm_yday, 3, fill)
    if name == "D":
        # Sunday is day 1.
        return str((dt.weekday() + 1) % 7 + 1)
    if name == "DY":
        return _apply_case(DAY_NAMES[dt.weekday()][:3], el.case)
    if name == "DAY":
        return _apply_case(_pad_name(DAY_NAMES[dt.weekday()], 9, fill), el.case)
    if name in ("HH", "HH12"):
        hour = dt.hour % 12 or 12
        return _pad(hour, 2, fill)
    if name == "HH24":
        return _pad(dt.hour, 2, fill)
    if name == "MI":
        return _pad(dt.minute, 2, fill)
    if name == "SS":
        return _pad(dt.second, 2, fill)
    if name == "SSSSS":
        return _pad(dt.hour * 3600 + dt.minute * 60 + dt.second, 5, fill)
    if name.startswith("FF"):
        digits = int(name[2:]) if len(name) > 2 else 6
        return str(dt.microsecond * 1000).zfill(9)[:digits]
    if name in ("AM", "PM"):
        return _apply_case("AM" if dt.hour < 12 else "PM", el.case)
    if name in ("A.M.", "P.M."):
        return _apply_case("A.M." if dt.hour < 12 else "P.M.", el.case)
    if name == "Q":
        return str((dt.month - 1) // 3 + 1)
    if name == "WW":
        return _pad((dt.timetuple().tm_yday - 1) // 7 + 1, 2, fill)
    if name == "W":
        return str((dt.day - 1) // 7 + 1)
    if name == "J":
        return _pad(dt.toordinal() + _JULIAN_OFFSET, 7, fill)
    raise ValueError(f"date format not recognized: {name}")


@dataclass(frozen=True)
class DateFormat:
    """A compiled date format model."""

    text: str
    parts: Tuple[Part, ...]

    def render(self, value: date) -> str:
        if isinstance(value, datetime):
            dt = value
        else:
            dt = datetime.combine(value, time())
        out: List[str] = []
        for part in self.parts:
            if isinstance(part, Element):
                out.append(_render_element(part, dt))
            else:
                out.append(part)
        return "".join(out)


def compile_date_format(fmt: str) -> DateFormat:
    if fmt is None or not str(fmt).strip():
        raise ValueError("date format not recognized: empty format")
    return DateFormat(text=fmt, parts=tuple(_tokenize(fmt)))
