"""
Timetable grid construction.

Schedule records arrive as a flat list from the backend. For display and
export they are bucketed into a day x time-slot grid:
{day: {TimeSlot: [TimetableEntry, ...]}}. A slot is a distinct
(start, end) pair, so lectures of different lengths get their own columns.
"""
import re
from collections import namedtuple

import pandas as pd

from core.choices import ClassType, DayOfWeek, WEEKDAYS

TIME_PATTERN = re.compile(r'^\s*(\d{1,2}):(\d{2})(?::\d{2}(?:\.\d+)?)?\s*$')

DAY_ORDER = {day: index for index, day in enumerate(DayOfWeek.values)}


def normalize_time(value):
    """
    Normalize "8:00", "08:00" or "08:00:00" to "08:00".

    Returns None for anything that is not a valid 24h clock time.
    """
    if not value:
        return None
    match = TIME_PATTERN.match(str(value))
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return f"{hour:02d}:{minute:02d}"


class TimeSlot(namedtuple('TimeSlot', ['start', 'end'])):
    """A column of the grid. Sorts by start, then end; a missing end sorts last."""

    __slots__ = ()

    @property
    def label(self):
        if self.end:
            return f"{self.start} - {self.end}"
        return self.start

    def sort_key(self):
        return (self.start, self.end or '99:99')


class TimetableEntry:
    """One class meeting as shown in a grid cell."""

    def __init__(self, course_code, course_name='', class_type='', venue='', start=None, end=None, day=None):
        self.course_code = course_code or ''
        self.course_name = course_name or ''
        self.class_type = class_type or ''
        self.venue = venue or ''
        self.start = start
        self.end = end
        self.day = day

    def __repr__(self):
        return f"<TimetableEntry {self.course_code} {self.day} {self.start}-{self.end}>"

    @property
    def class_type_display(self):
        try:
            return str(ClassType(self.class_type).label)
        except ValueError:
            return self.class_type.title()

    def lines(self):
        """Cell lines: course code, class type, venue (empty parts skipped)."""
        return [part for part in (self.course_code, self.class_type_display, self.venue) if part]

    @classmethod
    def from_schedule(cls, schedule, course_names=None):
        course = schedule.get('course') or {}
        code = schedule.get('courseCode') or course.get('code') or ''
        name = course.get('name') or (course_names or {}).get(code, '')
        return cls(
            course_code=code,
            course_name=name,
            class_type=schedule.get('type') or '',
            venue=_venue_name(schedule.get('venue')),
            start=normalize_time(schedule.get('startTime')),
            end=normalize_time(schedule.get('endTime')),
            day=(schedule.get('dayOfWeek') or '').upper(),
        )


def _venue_name(venue):
    # Newer backends embed the venue record instead of a plain name
    if isinstance(venue, dict):
        return venue.get('name') or ''
    return venue or ''


class TimetableGrid:
    """
    Day x time-slot grid of timetable entries.

    Attributes:
        days: DayOfWeek values in week order (rows)
        slots: TimeSlot list in time order (columns)
        skipped: number of records dropped for a bad day or start time
    """

    def __init__(self, days, slots, cells, skipped=0):
        self.days = days
        self.slots = slots
        self._cells = cells
        self.skipped = skipped

    def cell(self, day, slot):
        return self._cells.get(day, {}).get(slot, [])

    @staticmethod
    def day_label(day):
        return str(DayOfWeek(day).label)

    def rows(self):
        """Yield (day_label, [cell, ...]) in grid order."""
        for day in self.days:
            yield self.day_label(day), [self.cell(day, slot) for slot in self.slots]

    @staticmethod
    def cell_text(cell):
        """Entries in a cell as text, one block per entry."""
        return '\n\n'.join('\n'.join(entry.lines()) for entry in cell)

    @property
    def slot_labels(self):
        return [slot.label for slot in self.slots]

    @property
    def entry_count(self):
        return sum(len(entries) for slots in self._cells.values() for entries in slots.values())

    @property
    def is_empty(self):
        return self.entry_count == 0

    def entries(self):
        """All entries in grid order (day, then slot, then course code)."""
        for day in self.days:
            for slot in self.slots:
                yield from self.cell(day, slot)

    def to_dataframe(self):
        """One row per day, one column per slot, cells as text."""
        data = {
            label: [self.cell_text(cells[index]) for _, cells in self.rows()]
            for index, label in enumerate(self.slot_labels)
        }
        df = pd.DataFrame(data, index=[self.day_label(day) for day in self.days], columns=self.slot_labels)
        df.index.name = 'Day'
        return df


def build_timetable_grid(schedules, courses=None, days=None):
    """
    Bucket schedule records into a TimetableGrid.

    Args:
        schedules: schedule dicts as returned by /schedules
        courses: optional course dicts used to fill in names for records
            that came back without an embedded course
        days: optional DayOfWeek values to use as rows; by default Monday
            to Friday plus any weekend day that has classes

    Returns:
        TimetableGrid
    """
    course_names = {c.get('code'): c.get('name', '') for c in (courses or []) if c.get('code')}

    cells = {}
    slots = set()
    skipped = 0

    for schedule in schedules:
        entry = TimetableEntry.from_schedule(schedule, course_names)
        if entry.day not in DAY_ORDER or entry.start is None:
            skipped += 1
            continue

        slot = TimeSlot(entry.start, entry.end)
        slots.add(slot)
        cells.setdefault(entry.day, {}).setdefault(slot, []).append(entry)

    for day_cells in cells.values():
        for entries in day_cells.values():
            entries.sort(key=lambda e: (e.course_code, e.class_type))

    if days is None:
        row_days = set(WEEKDAYS) | set(cells)
    else:
        row_days = {str(day).upper() for day in days if str(day).upper() in DAY_ORDER}

    return TimetableGrid(
        days=sorted(row_days, key=DAY_ORDER.__getitem__),
        slots=sorted(slots, key=TimeSlot.sort_key),
        cells=cells,
        skipped=skipped,
    )


def with_display_fields(schedule):
    """
    Copy of a schedule dict with flat course_code, course_name, course_level
    and venue_name keys for templates. The embedded course record is optional.
    """
    course = schedule.get('course') or {}
    return {
        **schedule,
        'course_code': schedule.get('courseCode') or course.get('code') or '',
        'course_name': course.get('name') or '',
        'course_level': course.get('level') or '',
        'venue_name': _venue_name(schedule.get('venue')),
    }


def sort_by_start(schedules):
    return sorted(schedules, key=lambda s: normalize_time(s.get('startTime')) or '99:99')


def group_by_day(schedules):
    """
    Group schedule dicts by day for list pages.

    Returns [(day_value, day_label, [schedules sorted by start time])] in
    week order, omitting days with no classes. Each schedule carries the
    keys added by with_display_fields.
    """
    grouped = {}
    for schedule in schedules:
        day = (schedule.get('dayOfWeek') or '').upper()
        if day in DAY_ORDER:
            grouped.setdefault(day, []).append(with_display_fields(schedule))

    return [
        (day, str(DayOfWeek(day).label), sort_by_start(grouped[day]))
        for day in DayOfWeek.values
        if day in grouped
    ]
