from django.db import models
from django.utils.translation import gettext_lazy as _


class Role(models.TextChoices):
    STUDENT = 'STUDENT', _('Student')
    LECTURER = 'LECTURER', _('Lecturer')
    HOD = 'HOD', _('Head of Department')
    ADMIN = 'ADMIN', _('Admin')


class Level(models.TextChoices):
    LEVEL_100 = 'LEVEL_100', _('100 Level')
    LEVEL_200 = 'LEVEL_200', _('200 Level')
    LEVEL_300 = 'LEVEL_300', _('300 Level')
    LEVEL_400 = 'LEVEL_400', _('400 Level')
    LEVEL_500 = 'LEVEL_500', _('500 Level')


class College(models.TextChoices):
    CBAS = 'CBAS', _('College of Basic and Applied Sciences')
    CHMS = 'CHMS', _('College of Humanities and Management Sciences')


class Semester(models.TextChoices):
    FIRST = 'FIRST', _('First Semester')
    SECOND = 'SECOND', _('Second Semester')


class DayOfWeek(models.TextChoices):
    MONDAY = 'MONDAY', _('Monday')
    TUESDAY = 'TUESDAY', _('Tuesday')
    WEDNESDAY = 'WEDNESDAY', _('Wednesday')
    THURSDAY = 'THURSDAY', _('Thursday')
    FRIDAY = 'FRIDAY', _('Friday')
    SATURDAY = 'SATURDAY', _('Saturday')
    SUNDAY = 'SUNDAY', _('Sunday')


WEEKDAYS = DayOfWeek.values[:5]
WEEKEND = DayOfWeek.values[5:]


class ClassType(models.TextChoices):
    LECTURE = 'LECTURE', _('Lecture')
    SEMINAR = 'SEMINAR', _('Seminar')
    LAB = 'LAB', _('Lab')
    TUTORIAL = 'TUTORIAL', _('Tutorial')


class ComplaintStatus(models.TextChoices):
    PENDING = 'PENDING', _('Pending')
    IN_PROGRESS = 'IN_PROGRESS', _('In Progress')
    RESOLVED = 'RESOLVED', _('Resolved')
    CLOSED = 'CLOSED', _('Closed')
