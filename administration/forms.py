from django import forms

from core.choices import College, Role
from academics.forms import course_choices


def _date_part(value):
    """'2025-01-13T00:00:00.000Z' -> '2025-01-13'."""
    return str(value)[:10] if value else ''


def iso_midnight_utc(value):
    return f"{value.isoformat()}T00:00:00.000Z"


class VenueForm(forms.Form):
    """Form for creating/editing exam and lecture venues."""

    name = forms.CharField(
        max_length=100,
        widget=forms.TextInput(attrs={'placeholder': 'e.g., Main Auditorium'})
    )
    capacity = forms.IntegerField(
        min_value=1,
        widget=forms.NumberInput(attrs={'min': 1})
    )
    is_ict = forms.BooleanField(
        label="ICT Venue",
        required=False,
        help_text="Computer-based test centre"
    )

    @staticmethod
    def initial_from(venue):
        return {
            'name': venue.get('name', ''),
            'capacity': venue.get('capacity'),
            'is_ict': bool(venue.get('isIct')),
        }

    def to_payload(self):
        data = self.cleaned_data
        return {
            'name': data['name'].strip(),
            'capacity': data['capacity'],
            'isIct': data['is_ict'],
        }


class AcademicSessionForm(forms.Form):
    """Form for creating/editing academic sessions."""

    name = forms.CharField(
        max_length=50,
        widget=forms.TextInput(attrs={'placeholder': 'e.g., 2024/2025'})
    )
    start_date = forms.DateField(widget=forms.DateInput(attrs={'type': 'date'}))
    end_date = forms.DateField(widget=forms.DateInput(attrs={'type': 'date'}))

    @staticmethod
    def initial_from(session):
        return {
            'name': session.get('name', ''),
            'start_date': _date_part(session.get('startDate')),
            'end_date': _date_part(session.get('endDate')),
        }

    def clean(self):
        cleaned_data = super().clean()
        start = cleaned_data.get('start_date')
        end = cleaned_data.get('end_date')

        if start and end and end <= start:
            self.add_error('end_date', 'End date must be after start date.')

        return cleaned_data

    def to_payload(self):
        data = self.cleaned_data
        return {
            'name': data['name'].strip(),
            'startDate': iso_midnight_utc(data['start_date']),
            'endDate': iso_midnight_utc(data['end_date']),
        }


class ExamForm(forms.Form):
    """Form for scheduling an exam."""

    course_code = forms.ChoiceField(label="Course", choices=[])
    venue_id = forms.ChoiceField(label="Venue", choices=[])
    date = forms.DateField(widget=forms.DateInput(attrs={'type': 'date'}))
    start_time = forms.TimeField(widget=forms.TimeInput(attrs={'type': 'time'}))
    end_time = forms.TimeField(widget=forms.TimeInput(attrs={'type': 'time'}))
    student_count = forms.IntegerField(
        label="Number of Students",
        min_value=1,
        widget=forms.NumberInput(attrs={'min': 1})
    )
    invigilators = forms.CharField(
        widget=forms.Textarea(attrs={'rows': 2, 'placeholder': 'Comma-separated names'})
    )
    target_college = forms.ChoiceField(
        label="Target College",
        choices=[('', 'All colleges')] + College.choices,
        required=False
    )

    def __init__(self, *args, courses=None, venues=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['course_code'].choices = course_choices(courses)
        self.fields['venue_id'].choices = [('', 'Select venue')] + [
            (str(v['id']), self._venue_label(v)) for v in venues or [] if v.get('id')
        ]

    @staticmethod
    def _venue_label(venue):
        label = f"{venue.get('name', '')} (capacity {venue.get('capacity', '?')})"
        if venue.get('isIct'):
            label += ' - ICT'
        return label

    @staticmethod
    def initial_from(exam):
        venue = exam.get('venue') or {}
        return {
            'course_code': exam.get('courseCode', ''),
            'venue_id': exam.get('venueId') or venue.get('id', ''),
            'date': _date_part(exam.get('date')),
            'start_time': exam.get('startTime', ''),
            'end_time': exam.get('endTime', ''),
            'student_count': exam.get('studentCount'),
            'invigilators': exam.get('invigilators', ''),
            'target_college': exam.get('targetCollege') or '',
        }

    def clean(self):
        cleaned_data = super().clean()
        start = cleaned_data.get('start_time')
        end = cleaned_data.get('end_time')

        if start and end and end <= start:
            self.add_error('end_time', 'End time must be after start time.')

        return cleaned_data

    def to_payload(self):
        data = self.cleaned_data
        payload = {
            'courseCode': data['course_code'],
            'venueId': data['venue_id'],
            'date': iso_midnight_utc(data['date']),
            'startTime': data['start_time'].strftime('%H:%M'),
            'endTime': data['end_time'].strftime('%H:%M'),
            'studentCount': data['student_count'],
            'invigilators': data['invigilators'].strip(),
        }
        if data.get('target_college'):
            payload['targetCollege'] = data['target_college']
        return payload


class VerificationCodeForm(forms.Form):
    """Form for issuing a staff registration code."""

    code = forms.CharField(
        max_length=64,
        widget=forms.TextInput(attrs={'placeholder': 'e.g., LECT2025'})
    )
    role = forms.ChoiceField(
        choices=[(value, label) for value, label in Role.choices if value != Role.STUDENT],
        initial=Role.LECTURER
    )
    expires_at = forms.DateTimeField(
        label="Expires At",
        required=False,
        input_formats=['%Y-%m-%dT%H:%M', '%Y-%m-%d %H:%M', '%Y-%m-%d'],
        widget=forms.DateTimeInput(attrs={'type': 'datetime-local'})
    )
    max_uses = forms.IntegerField(
        label="Max Uses",
        min_value=1,
        required=False,
        help_text="Leave blank for unlimited uses"
    )

    def clean_code(self):
        return self.cleaned_data['code'].strip()

    def to_payload(self):
        data = self.cleaned_data
        payload = {
            'code': data['code'],
            'role': data['role'],
        }
        if data.get('expires_at'):
            payload['expiresAt'] = data['expires_at'].isoformat()
        if data.get('max_uses'):
            payload['maxUses'] = data['max_uses']
        return payload
