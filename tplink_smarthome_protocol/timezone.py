#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Timezone support for device clocks.

A device reports its timezone as an integer index plus a POSIX TZ string such as
"PST8PDT,M3.2.0,M11.1.0". parse_posix_tz() converts the string into a tzinfo, and
TimezoneCache memoizes the result per index, since a given index always describes
the same zone.
"""

from __future__ import annotations

import re
import threading
from datetime import datetime, timedelta, tzinfo

from .internal_types import *
from .exceptions import DataError

ZERO = timedelta(0)
HOUR = timedelta(hours=1)
DEFAULT_TRANSITION_TIME = timedelta(hours=2)

DEFAULT_DST_RULES = "M3.2.0,M11.1.0"
"""Transition rules used when a TZ string names a DST zone without giving rules."""

_OFFSET = r'[+-]?\d{1,3}(?::\d{1,2}(?::\d{1,2})?)?'
_RULE = rf'(?:M\d{{1,2}}\.\d\.\d|J\d{{1,3}}|\d{{1,3}})(?:/{_OFFSET})?'

_tz_re = re.compile(
    rf'^(?:<(?P<std_qname>[A-Za-z0-9+-]{{3,}})>|(?P<std_name>[A-Za-z]{{3,}}))'
    rf'(?P<std_offset>{_OFFSET})'
    rf'(?:(?:<(?P<dst_qname>[A-Za-z0-9+-]{{3,}})>|(?P<dst_name>[A-Za-z]{{3,}}))'
    rf'(?P<dst_offset>{_OFFSET})?'
    rf'(?:,(?P<start>{_RULE}),(?P<end>{_RULE}))?)?$'
  )

_offset_re = re.compile(r'^(?P<sign>[+-]?)(?P<hours>\d{1,3})(?::(?P<minutes>\d{1,2})(?::(?P<seconds>\d{1,2}))?)?$')
_rule_re = re.compile(
    r'^(?:M(?P<month>\d{1,2})\.(?P<week>\d)\.(?P<weekday>\d)|J(?P<julian>\d{1,3})|(?P<yday>\d{1,3}))'
    rf'(?:/(?P<time>{_OFFSET}))?$'
  )

def _parse_duration(text: str, max_hours: int) -> timedelta:
    m = _offset_re.match(text)
    if m is None:
        raise DataError(f"Invalid time offset in TZ string: {text!r}")
    hours = int(m.group('hours'))
    minutes = int(m.group('minutes') or 0)
    seconds = int(m.group('seconds') or 0)
    if hours > max_hours or minutes > 59 or seconds > 59:
        raise DataError(f"Time offset out of range in TZ string: {text!r}")
    result = timedelta(hours=hours, minutes=minutes, seconds=seconds)
    return -result if m.group('sign') == '-' else result

class TransitionRule:
    """A yearly DST transition: Mm.w.d, Jn or n, with an optional local time (default 02:00)."""

    text: str
    month: int = 0
    week: int = 0
    weekday: int = 0
    """0 is Sunday"""
    julian_day: int = 0
    """1..365, February 29 is never counted"""
    year_day: int = -1
    """0..365, February 29 is counted in leap years"""
    time: timedelta

    def __init__(self, text: str) -> None:
        m = _rule_re.match(text)
        if m is None:
            raise DataError(f"Invalid DST transition rule in TZ string: {text!r}")
        self.text = text
        self.time = DEFAULT_TRANSITION_TIME if m.group('time') is None else _parse_duration(m.group('time'), 167)
        if m.group('month') is not None:
            self.month = int(m.group('month'))
            self.week = int(m.group('week'))
            self.weekday = int(m.group('weekday'))
            if not (1 <= self.month <= 12 and 1 <= self.week <= 5 and 0 <= self.weekday <= 6):
                raise DataError(f"DST transition rule out of range in TZ string: {text!r}")
        elif m.group('julian') is not None:
            self.julian_day = int(m.group('julian'))
            if not 1 <= self.julian_day <= 365:
                raise DataError(f"DST transition rule out of range in TZ string: {text!r}")
        else:
            self.year_day = int(m.group('yday'))
            if not 0 <= self.year_day <= 365:
                raise DataError(f"DST transition rule out of range in TZ string: {text!r}")

    def transition_time(self, year: int) -> datetime:
        """Returns the naive local wall-clock time of the transition in `year`."""
        if self.month > 0:
            first = datetime(year, self.month, 1)
            first_weekday = (first.weekday() + 1) % 7
            day = 1 + (self.weekday - first_weekday) % 7 + (self.week - 1) * 7
            next_month = datetime(year + 1, 1, 1) if self.month == 12 else datetime(year, self.month + 1, 1)
            days_in_month = (next_month - first).days
            while day > days_in_month:
                day -= 7
            date = datetime(year, self.month, day)
        elif self.julian_day > 0:
            date = datetime(year, 1, 1) + timedelta(days=self.julian_day - 1)
            if self.julian_day >= 60 and _is_leap_year(year):
                date += timedelta(days=1)
        else:
            date = datetime(year, 1, 1) + timedelta(days=self.year_day)
        return date + self.time

    def __repr__(self) -> str:
        return f"TransitionRule({self.text!r})"

def _is_leap_year(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)

class PosixTimezone(tzinfo):
    """A tzinfo described by a POSIX TZ string."""

    tz_str: str
    std_name: str
    std_offset: timedelta
    """The standard-time offset east of UTC (the negation of the POSIX offset)"""
    dst_name: Optional[str]
    dst_offset: timedelta
    start_rule: Optional[TransitionRule]
    end_rule: Optional[TransitionRule]

    def __init__(
            self,
            tz_str: str,
            std_name: str,
            std_offset: timedelta,
            dst_name: Optional[str]=None,
            dst_offset: Optional[timedelta]=None,
            start_rule: Optional[TransitionRule]=None,
            end_rule: Optional[TransitionRule]=None,
          ) -> None:
        super().__init__()
        self.tz_str = tz_str
        self.std_name = std_name
        self.std_offset = std_offset
        self.dst_name = dst_name
        self.dst_offset = std_offset + HOUR if dst_offset is None else dst_offset
        self.start_rule = start_rule
        self.end_rule = end_rule

    @property
    def has_dst(self) -> bool:
        return self.dst_name is not None and self.start_rule is not None and self.end_rule is not None

    @property
    def dst_delta(self) -> timedelta:
        return self.dst_offset - self.std_offset

    def _transitions(self, year: int) -> Optional[Tuple[datetime, datetime]]:
        """The local start and end of daylight saving time in `year`, or None without DST rules."""
        if self.dst_name is None or self.start_rule is None or self.end_rule is None:
            return None
        return self.start_rule.transition_time(year), self.end_rule.transition_time(year)

    def _is_dst(self, dt: datetime) -> bool:
        transitions = self._transitions(dt.year)
        if transitions is None:
            return False
        start, end = transitions
        delta = self.dst_delta
        naive = dt.replace(tzinfo=None)
        if start <= naive < start + delta:
            # nonexistent local time
            return bool(dt.fold)
        if end - delta <= naive < end:
            # ambiguous local time
            return not dt.fold
        if start < end:
            return start + delta <= naive < end - delta
        return naive >= start + delta or naive < end - delta

    def utcoffset(self, dt: Optional[datetime]) -> timedelta:
        if dt is None:
            return self.std_offset
        return self.dst_offset if self._is_dst(dt) else self.std_offset

    def dst(self, dt: Optional[datetime]) -> timedelta:
        if dt is None or not self._is_dst(dt):
            return ZERO
        return self.dst_delta

    def tzname(self, dt: Optional[datetime]) -> str:
        if dt is not None and self.dst_name is not None and self._is_dst(dt):
            return self.dst_name
        return self.std_name

    def fromutc(self, dt: datetime) -> datetime:
        if dt.tzinfo is not self:
            raise ValueError("fromutc: dt.tzinfo is not self")
        std_time = dt.replace(tzinfo=None) + self.std_offset
        transitions = self._transitions(std_time.year)
        if transitions is None:
            return std_time.replace(tzinfo=self)
        start, end = transitions
        dst_time = std_time + self.dst_delta
        if start < end:
            in_dst = start <= std_time and dst_time < end
        else:
            in_dst = start <= std_time or dst_time < end
        if in_dst:
            return dst_time.replace(tzinfo=self)
        if end <= dst_time < end + self.dst_delta:
            # the second occurrence of a repeated hour
            return std_time.replace(tzinfo=self, fold=1)
        return std_time.replace(tzinfo=self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PosixTimezone):
            return NotImplemented
        return self.tz_str == other.tz_str

    def __hash__(self) -> int:
        return hash(self.tz_str)

    def __str__(self) -> str:
        return self.tz_str

    def __repr__(self) -> str:
        return f"PosixTimezone({self.tz_str!r})"

def parse_posix_tz(tz_str: str) -> PosixTimezone:
    """Parses a POSIX TZ string: std offset [dst [offset] [,start[/time],end[/time]]].

    Offsets follow the POSIX convention of hours west of UTC, so "EST5" is UTC-5.
    The DST offset defaults to one hour ahead of standard time, and transition
    times default to 02:00 local time.

    Raises DataError if the string is not a valid TZ string.
    """
    if not isinstance(tz_str, str):
        raise DataError(f"TZ string is not a string: {tz_str!r}")
    m = _tz_re.match(tz_str.strip())
    if m is None:
        raise DataError(f"Invalid TZ string: {tz_str!r}")
    std_name = m.group('std_qname') or m.group('std_name')
    std_offset = -_parse_duration(m.group('std_offset'), 24)
    dst_name = m.group('dst_qname') or m.group('dst_name')
    if dst_name is None:
        return PosixTimezone(tz_str, std_name, std_offset)
    dst_offset: Optional[timedelta] = None
    if m.group('dst_offset') is not None:
        dst_offset = -_parse_duration(m.group('dst_offset'), 24)
    if m.group('start') is not None:
        start_text, end_text = m.group('start'), m.group('end')
    else:
        start_text, end_text = DEFAULT_DST_RULES.split(',')
    return PosixTimezone(
        tz_str,
        std_name,
        std_offset,
        dst_name=dst_name,
        dst_offset=dst_offset,
        start_rule=TransitionRule(start_text),
        end_rule=TransitionRule(end_text),
      )

class TimezoneCache:
    """A thread-safe map from device timezone index to resolved tzinfo.

    Entries are never replaced once inserted.
    """

    _lock: threading.Lock
    _entries: Dict[int, tzinfo]

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries = {}

    def get(self, index: int) -> Optional[tzinfo]:
        with self._lock:
            return self._entries.get(index)

    def get_or_add(self, index: int, factory: Callable[[], tzinfo]) -> tzinfo:
        """Returns the entry for `index`, calling factory() to create it if absent."""
        with self._lock:
            result = self._entries.get(index)
            if result is None:
                result = factory()
                self._entries[index] = result
            return result

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

default_timezone_cache = TimezoneCache()
"""The process-wide cache used by capabilities that are not given one explicitly."""
