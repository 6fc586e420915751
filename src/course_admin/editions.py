"""Course-edition scheduling rule.

An edition runs on working days (Monday to Friday) between its start and
end dates, a fixed number of hours per day.  The hours an edition adds up
to must stay close to the nominal duration of its course.

Usage:
    from datetime import date
    from course_admin.editions import check_edition_hours

    check = check_edition_hours(date(2025, 3, 3), date(2025, 3, 14), 50)
    check.computed_hours    # 50
    check.within_tolerance  # True
"""

from datetime import date, timedelta

from pydantic import BaseModel

DEFAULT_HOURS_PER_DAY = 5
DEFAULT_MAX_DIFFERENCE = 25


class EditionHoursCheck(BaseModel):
    """Outcome of the hours rule for one edition."""

    working_days: int
    computed_hours: int
    course_hours: int
    difference: int
    within_tolerance: bool
    message: str = ""


def working_days(start: date, end: date) -> int:
    """Count Monday-Friday dates from *start* to *end*, both included.

    Raises:
        ValueError: If *end* is before *start*.
    """
    if end < start:
        raise ValueError("End date must not be before start date")

    total_days = (end - start).days + 1
    full_weeks, remainder = divmod(total_days, 7)
    count = full_weeks * 5

    day = start + timedelta(days=full_weeks * 7)
    for _ in range(remainder):
        if day.weekday() < 5:
            count += 1
        day += timedelta(days=1)

    return count


def check_edition_hours(
    start: date,
    end: date,
    course_hours: int | None,
    hours_per_day: int = DEFAULT_HOURS_PER_DAY,
    max_difference: int = DEFAULT_MAX_DIFFERENCE,
) -> EditionHoursCheck:
    """Compare the hours of an edition with its course's nominal duration.

    A course without a nominal duration (``None`` or 0) is always within
    tolerance.

    Args:
        start: First day of the edition.
        end: Last day of the edition.
        course_hours: Nominal course duration (``duracion_horas``).
        hours_per_day: Teaching hours per working day.
        max_difference: Largest accepted gap, in hours, either direction.

    Raises:
        ValueError: If *end* is before *start*.
    """
    days = working_days(start, end)
    computed = days * hours_per_day
    nominal = course_hours or 0

    if nominal <= 0:
        return EditionHoursCheck(
            working_days=days,
            computed_hours=computed,
            course_hours=0,
            difference=0,
            within_tolerance=True,
            message="Course has no nominal duration",
        )

    difference = abs(computed - nominal)
    within = difference <= max_difference
    message = (
        ""
        if within
        else f"Difference of {difference} hours (maximum allowed: {max_difference}h)"
    )

    return EditionHoursCheck(
        working_days=days,
        computed_hours=computed,
        course_hours=nominal,
        difference=difference,
        within_tolerance=within,
        message=message,
    )
