import os

from django import forms

from core import config
from core.choices import ClassType, DayOfWeek, Level, Semester


def _code_choices(records, empty_label):
    """Select choices of (code, "CODE - Name") from backend records."""
    choices = [('', empty_label)]
    for record in records or []:
        code = record.get('code')
        if code:
            name = record.get('name')
            choices.append((code, f"{code} - {name}" if name else code))
    return choices


def department_choices(departments, empty_label='Select department'):
    return _code_choices(departments, empty_label)


def course_choices(courses, empty_label='Select course'):
    return _code_choices(courses, empty_label)


class CourseForm(forms.Form):
    """Form for creating courses."""

    code = forms.CharField(
        max_length=20,
        widget=forms.TextInput(attrs={'placeholder': 'e.g., CSC301'})
    )
    name = forms.CharField(
        max_length=200,
        widget=forms.TextInput(attrs={'placeholder': 'e.g., Data Structures'})
    )
    level = forms.ChoiceField(choices=[('', 'Select level')] + Level.choices)
    semester = forms.ChoiceField(
        choices=[('', 'Not specified')] + Semester.choices,
        required=False
    )
    credits = forms.IntegerField(
        min_value=1,
        max_value=6,
        widget=forms.NumberInput(attrs={'min': 1, 'max': 6})
    )
    department_code = forms.ChoiceField(label="Department", choices=[])
    lecturer_email = forms.EmailField(
        label="Lecturer Email",
        required=False,
        widget=forms.EmailInput(attrs={'placeholder': 'lecturer@university.edu'})
    )
    overview = forms.CharField(
        required=False,
        widget=forms.Textarea(attrs={'rows': 3, 'placeholder': 'Optional course overview'})
    )
    is_general = forms.BooleanField(
        label="General Course",
        required=False,
        help_text="University-wide course open to every department"
    )
    is_locked = forms.BooleanField(
        label="Locked",
        required=False,
        help_text="Locked courses cannot be edited by lecturers"
    )

    def __init__(self, *args, departments=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['department_code'].choices = department_choices(departments)

    def clean_code(self):
        return self.cleaned_data['code'].strip().upper()

    def clean_name(self):
        return self.cleaned_data['name'].strip()

    def to_payload(self):
        data = self.cleaned_data
        payload = {
            'code': data['code'],
            'name': data['name'],
            'level': data['level'],
            'credits': data['credits'],
            'departmentCode': data['department_code'],
            'isGeneral': data['is_general'],
            'isLocked': data['is_locked'],
        }
        if data.get('semester'):
            payload['semester'] = data['semester']
        if data.get('lecturer_email'):
            payload['lecturerEmail'] = data['lecturer_email']
        if data.get('overview', '').strip():
            payload['overview'] = data['overview'].strip()
        return payload


class DepartmentForm(forms.Form):
    """Form for creating departments."""

    name = forms.CharField(
        max_length=200,
        widget=forms.TextInput(attrs={'placeholder': 'e.g., Computer Science'})
    )
    code = forms.CharField(
        max_length=20,
        widget=forms.TextInput(attrs={'placeholder': 'e.g., CSC'})
    )
    description = forms.CharField(
        required=False,
        widget=forms.Textarea(attrs={'rows': 2, 'placeholder': 'Optional description'})
    )
    hod_email = forms.EmailField(
        label="Head of Department Email",
        required=False
    )

    def clean_code(self):
        return self.cleaned_data['code'].strip().upper()

    def to_payload(self):
        data = self.cleaned_data
        payload = {
            'name': data['name'].strip(),
            'code': data['code'],
        }
        if data.get('description', '').strip():
            payload['description'] = data['description'].strip()
        if data.get('hod_email'):
            payload['hodEmail'] = data['hod_email']
        return payload


class ScheduleForm(forms.Form):
    """Form for adding a class meeting to the timetable."""

    course_code = forms.ChoiceField(label="Course", choices=[])
    day_of_week = forms.ChoiceField(
        label="Day",
        choices=[('', 'Select day')] + DayOfWeek.choices
    )
    start_time = forms.TimeField(widget=forms.TimeInput(attrs={'type': 'time'}))
    end_time = forms.TimeField(widget=forms.TimeInput(attrs={'type': 'time'}))
    venue = forms.CharField(
        max_length=100,
        widget=forms.TextInput(attrs={'placeholder': 'e.g., LT1'})
    )
    type = forms.ChoiceField(
        label="Class Type",
        choices=ClassType.choices,
        initial=ClassType.LECTURE
    )

    def __init__(self, *args, courses=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['course_code'].choices = course_choices(courses)

    def clean(self):
        cleaned_data = super().clean()
        start = cleaned_data.get('start_time')
        end = cleaned_data.get('end_time')

        if start and end and end <= start:
            self.add_error('end_time', 'End time must be after start time.')

        return cleaned_data

    def to_payload(self):
        data = self.cleaned_data
        return {
            'courseCode': data['course_code'],
            'dayOfWeek': data['day_of_week'],
            'startTime': data['start_time'].strftime('%H:%M'),
            'endTime': data['end_time'].strftime('%H:%M'),
            'venue': data['venue'].strip(),
            'type': data['type'],
        }


class BulkUploadForm(forms.Form):
    """CSV file upload for bulk creation."""

    file = forms.FileField(
        label="CSV File",
        widget=forms.ClearableFileInput(attrs={'accept': '.csv'})
    )

    def clean_file(self):
        uploaded = self.cleaned_data['file']
        extension = os.path.splitext(uploaded.name)[1].lower()
        if extension != '.csv':
            raise forms.ValidationError('Only CSV files are accepted.')

        max_size = config.MAX_UPLOAD_SIZE
        if uploaded.size > max_size:
            raise forms.ValidationError(
                f'File is too large. Maximum size is {max_size // (1024 * 1024)} MB.'
            )
        return uploaded
