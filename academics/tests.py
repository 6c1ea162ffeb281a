import csv
import io
import sys
from datetime import time
from unittest import mock

from django.contrib.messages import get_messages
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import SimpleTestCase, override_settings
from django.urls import reverse
from django.utils import timezone
from openpyxl import load_workbook
from PIL import Image

from core.testing import ApiTestMixin, failed, ok, paged
from .exporters import (
    courses_dataframe, export_courses, export_csv, export_pdf, export_png,
    export_xlsx, render_export,
)
from .forms import BulkUploadForm, CourseForm, DepartmentForm, ScheduleForm
from .timetable import (
    TimeSlot, build_timetable_grid, group_by_day, normalize_time, sort_by_start, with_display_fields,
)
from .views.base import with_course_labels
from .views.schedules import export_scope, export_title, search_schedules

DEPARTMENTS = [
    {'code': 'CSC', 'name': 'Computer Science'},
    {'code': 'MTH', 'name': 'Mathematics'},
]

COURSES = [
    {
        'code': 'CSC101', 'name': 'Intro to Computing', 'level': 'LEVEL_100', 'semester': 'FIRST',
        'credits': 3, 'departmentCode': 'CSC', 'department': {'name': 'Computer Science'},
        'lecturer': {'name': 'Dr. Bello'}, 'isGeneral': False, 'isLocked': True,
    },
    {
        'code': 'CSC201', 'name': 'Data Structures', 'level': 'LEVEL_200', 'semester': 'SECOND',
        'credits': 2, 'departmentCode': 'CSC', 'isGeneral': True,
    },
]

SCHEDULES = [
    {
        'id': 's1', 'courseCode': 'CSC101', 'dayOfWeek': 'MONDAY', 'startTime': '08:00', 'endTime': '10:00',
        'type': 'LECTURE', 'venue': 'LT1', 'course': {'code': 'CSC101', 'name': 'Intro to Computing'},
    },
    {
        'id': 's2', 'courseCode': 'CSC201', 'dayOfWeek': 'MONDAY', 'startTime': '08:00:00', 'endTime': '10:00:00',
        'type': 'LAB', 'venue': {'name': 'Lab 2'},
    },
    {
        'id': 's3', 'courseCode': 'MTH101', 'dayOfWeek': 'WEDNESDAY', 'startTime': '10:00', 'endTime': '12:00',
        'type': 'TUTORIAL', 'venue': 'LT2',
    },
    {
        'id': 's4', 'courseCode': 'GST101', 'dayOfWeek': 'SATURDAY', 'startTime': '9:00', 'endTime': '11:00',
        'type': 'SEMINAR', 'venue': 'Hall A',
    },
    {
        'id': 's5', 'courseCode': 'BAD1', 'dayOfWeek': 'FUNDAY', 'startTime': '09:00', 'endTime': '10:00',
        'type': 'LECTURE', 'venue': 'X',
    },
    {
        'id': 's6', 'courseCode': 'BAD2', 'dayOfWeek': 'TUESDAY', 'startTime': 'late', 'endTime': '10:00',
        'type': 'LECTURE', 'venue': 'X',
    },
]


DISPLAY_KEYS = ('course_code', 'course_name', 'course_level', 'venue_name')


def flashed(response):
    return [str(message) for message in get_messages(response.wsgi_request)]


def today_stamp():
    return timezone.now().strftime('%Y%m%d')


class NormalizeTimeTests(SimpleTestCase):

    def test_valid_times(self):
        self.assertEqual(normalize_time('8:00'), '08:00')
        self.assertEqual(normalize_time('08:00:00'), '08:00')
        self.assertEqual(normalize_time('14:30:00.000'), '14:30')

    def test_invalid_times(self):
        for value in (None, '', 'late', '24:00', '12:60', '8'):
            self.assertIsNone(normalize_time(value))


class TimetableGridTests(SimpleTestCase):
    """Tests for bucketing schedules into a day x slot grid."""

    def setUp(self):
        self.grid = build_timetable_grid(SCHEDULES, courses=COURSES)

    def test_rows_are_weekdays_plus_used_weekend_days(self):
        self.assertEqual(self.grid.days, ['MONDAY', 'TUESDAY', 'WEDNESDAY', 'THURSDAY', 'FRIDAY', 'SATURDAY'])

    def test_slots_sorted_by_time(self):
        self.assertEqual(self.grid.slot_labels, ['08:00 - 10:00', '09:00 - 11:00', '10:00 - 12:00'])

    def test_bad_records_skipped(self):
        self.assertEqual(self.grid.skipped, 2)
        self.assertEqual(self.grid.entry_count, 4)

    def test_cell_sorted_by_course_code(self):
        cell = self.grid.cell('MONDAY', TimeSlot('08:00', '10:00'))
        self.assertEqual([entry.course_code for entry in cell], ['CSC101', 'CSC201'])

    def test_course_names_filled_in(self):
        cell = self.grid.cell('MONDAY', TimeSlot('08:00', '10:00'))
        self.assertEqual(cell[1].course_name, 'Data Structures')
        self.assertEqual(cell[1].venue, 'Lab 2')

    def test_cell_text(self):
        cell = self.grid.cell('MONDAY', TimeSlot('08:00', '10:00'))
        self.assertEqual(self.grid.cell_text(cell), 'CSC101\nLecture\nLT1\n\nCSC201\nLab\nLab 2')

    def test_rows(self):
        rows = list(self.grid.rows())
        self.assertEqual(rows[0][0], 'Monday')
        self.assertEqual(len(rows[0][1]), 3)
        self.assertEqual(rows[1][1], [[], [], []])

    def test_explicit_days(self):
        grid = build_timetable_grid(SCHEDULES, days=['monday', 'nonsense'])
        self.assertEqual(grid.days, ['MONDAY'])

    def test_empty(self):
        grid = build_timetable_grid([])
        self.assertTrue(grid.is_empty)
        self.assertEqual(len(grid.days), 5)
        self.assertEqual(grid.slots, [])

    def test_slot_without_end_sorts_last(self):
        slots = sorted([TimeSlot('08:00', None), TimeSlot('08:00', '09:00')], key=TimeSlot.sort_key)
        self.assertEqual(slots[0].label, '08:00 - 09:00')
        self.assertEqual(slots[1].label, '08:00')

    def test_to_dataframe(self):
        df = self.grid.to_dataframe()
        self.assertEqual(df.index.name, 'Day')
        self.assertEqual(list(df.columns), self.grid.slot_labels)
        self.assertEqual(df.loc['Wednesday', '10:00 - 12:00'], 'MTH101\nTutorial\nLT2')
        self.assertEqual(df.loc['Friday', '08:00 - 10:00'], '')


class GroupByDayTests(SimpleTestCase):

    def test_week_order_and_start_time(self):
        schedules = [
            {'dayOfWeek': 'friday', 'startTime': '08:00'},
            {'dayOfWeek': 'MONDAY', 'startTime': '14:00'},
            {'dayOfWeek': 'MONDAY', 'startTime': '9:00'},
            {'dayOfWeek': 'SOMEDAY', 'startTime': '9:00'},
        ]
        grouped = group_by_day(schedules)
        self.assertEqual([day for day, _, _ in grouped], ['MONDAY', 'FRIDAY'])
        self.assertEqual(grouped[0][1], 'Monday')
        self.assertEqual([s['startTime'] for s in grouped[0][2]], ['9:00', '14:00'])

    def test_display_fields(self):
        self.assertEqual(
            {k: v for k, v in with_display_fields(SCHEDULES[0]).items() if k in DISPLAY_KEYS},
            {'course_code': 'CSC101', 'course_name': 'Intro to Computing', 'course_level': '', 'venue_name': 'LT1'},
        )
        bare = with_display_fields({'course': None, 'venue': {'name': 'Lab 2'}})
        self.assertEqual((bare['course_code'], bare['course_name'], bare['venue_name']), ('', '', 'Lab 2'))

    def test_sort_by_start(self):
        schedules = [{'startTime': '10:00'}, {'startTime': 'soon'}, {'startTime': '8:00'}]
        self.assertEqual([s['startTime'] for s in sort_by_start(schedules)], ['8:00', '10:00', 'soon'])


class CourseLabelTests(SimpleTestCase):

    def test_labels(self):
        self.assertEqual(with_course_labels(COURSES[0])['department_label'], 'Computer Science')
        self.assertEqual(with_course_labels(COURSES[1])['department_label'], 'CSC')
        self.assertEqual(with_course_labels({'lecturer': {'email': 'x@example.com'}})['lecturer_label'], 'x@example.com')
        self.assertEqual(with_course_labels({})['lecturer_label'], '')


class TimetableExportTests(SimpleTestCase):
    """Tests for the timetable file exporters."""

    def setUp(self):
        self.grid = build_timetable_grid(SCHEDULES)

    def test_csv(self):
        content = export_csv(self.grid)
        self.assertTrue(content.startswith(b'\xef\xbb\xbf'))
        rows = list(csv.reader(io.StringIO(content.decode('utf-8-sig'))))
        self.assertEqual(rows[0], ['Day', '08:00 - 10:00', '09:00 - 11:00', '10:00 - 12:00'])
        self.assertEqual(rows[1][0], 'Monday')
        self.assertEqual(rows[1][1], 'CSC101\nLecture\nLT1\n\nCSC201\nLab\nLab 2')
        self.assertEqual(len(rows), 7)

    def test_xlsx(self):
        content = export_xlsx(self.grid, 'Timetable - CSC')
        self.assertTrue(content.startswith(b'PK'))

        ws = load_workbook(io.BytesIO(content)).active
        self.assertEqual(ws['A1'].value, 'Timetable - CSC')
        self.assertTrue(ws['A2'].value.startswith('Generated: '))
        self.assertIn('A1:D1', [str(r) for r in ws.merged_cells.ranges])
        self.assertEqual([c.value for c in ws[4]], ['Day', '08:00 - 10:00', '09:00 - 11:00', '10:00 - 12:00'])
        self.assertEqual(ws['A5'].value, 'Monday')
        self.assertTrue(ws['B4'].fill.start_color.rgb.endswith('4F46E5'))

    def test_png(self):
        content = export_png(self.grid, 'Timetable')
        self.assertTrue(content.startswith(b'\x89PNG'))
        image = Image.open(io.BytesIO(content))
        self.assertEqual(image.width, 2 * 24 + 120 + 170 * 3)

    def test_png_empty_grid(self):
        content = export_png(build_timetable_grid([]), 'Timetable')
        self.assertTrue(content.startswith(b'\x89PNG'))

    def test_pdf(self):
        weasyprint = mock.MagicMock()
        weasyprint.HTML.return_value.write_pdf.side_effect = lambda target: target.write(b'%PDF-1.7')

        with mock.patch.dict(sys.modules, {'weasyprint': weasyprint}):
            content = export_pdf(self.grid, 'Timetable - CSC')

        self.assertEqual(content, b'%PDF-1.7')
        html = weasyprint.HTML.call_args.kwargs['string']
        self.assertIn('Timetable - CSC', html)
        self.assertIn('CSC101', html)
        self.assertIn('Lab 2', html)

    def test_pdf_without_weasyprint(self):
        with mock.patch.dict(sys.modules, {'weasyprint': None}):
            with self.assertRaises(ImportError):
                export_pdf(self.grid, 'Timetable')

    def test_render_export(self):
        content, content_type, extension = render_export('csv', self.grid, 'Timetable')
        self.assertEqual(content_type, 'text/csv')
        self.assertEqual(extension, 'csv')

    def test_render_export_unknown_format(self):
        with self.assertRaises(ValueError):
            render_export('docx', self.grid, 'Timetable')


class CourseExportTests(SimpleTestCase):

    def test_dataframe(self):
        df = courses_dataframe(COURSES)
        first = df.iloc[0]
        self.assertEqual(first['Level'], '100 Level')
        self.assertEqual(first['Semester'], 'First Semester')
        self.assertEqual(first['Department'], 'Computer Science')
        self.assertEqual(first['Lecturer'], 'Dr. Bello')
        self.assertEqual(first['Locked'], 'Yes')
        self.assertEqual(df.iloc[1]['Department'], 'CSC')
        self.assertEqual(df.iloc[1]['General Course'], 'Yes')

    def test_csv(self):
        content, content_type, extension = export_courses(COURSES, 'csv')
        rows = list(csv.reader(io.StringIO(content.decode('utf-8-sig'))))
        self.assertEqual(rows[0][:3], ['Code', 'Name', 'Level'])
        self.assertEqual(rows[1][0], 'CSC101')
        self.assertEqual(content_type, 'text/csv')

    def test_xlsx(self):
        content, _, extension = export_courses(COURSES, 'xlsx')
        self.assertEqual(extension, 'xlsx')
        ws = load_workbook(io.BytesIO(content))['Courses']
        self.assertEqual(ws['A1'].value, 'Code')
        self.assertEqual(ws['A3'].value, 'CSC201')

    def test_empty_xlsx(self):
        content, _, _ = export_courses([], 'xlsx')
        self.assertTrue(content.startswith(b'PK'))

    def test_unknown_format(self):
        with self.assertRaises(ValueError):
            export_courses(COURSES, 'pdf')


class CourseFormTests(SimpleTestCase):

    def form_data(self, **overrides):
        data = {
            'code': ' csc301 ',
            'name': 'Operating Systems',
            'level': 'LEVEL_300',
            'semester': '',
            'credits': 3,
            'department_code': 'CSC',
        }
        data.update(overrides)
        return data

    def test_payload(self):
        form = CourseForm(data=self.form_data(is_general='on'), departments=DEPARTMENTS)
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.to_payload(), {
            'code': 'CSC301',
            'name': 'Operating Systems',
            'level': 'LEVEL_300',
            'credits': 3,
            'departmentCode': 'CSC',
            'isGeneral': True,
            'isLocked': False,
        })

    def test_optional_fields(self):
        form = CourseForm(data=self.form_data(
            semester='FIRST', lecturer_email='lect@example.com', overview='  Processes  '
        ), departments=DEPARTMENTS)
        self.assertTrue(form.is_valid(), form.errors)
        payload = form.to_payload()
        self.assertEqual(payload['semester'], 'FIRST')
        self.assertEqual(payload['lecturerEmail'], 'lect@example.com')
        self.assertEqual(payload['overview'], 'Processes')

    def test_credits_range(self):
        form = CourseForm(data=self.form_data(credits=7), departments=DEPARTMENTS)
        self.assertFalse(form.is_valid())
        self.assertIn('credits', form.errors)

    def test_unknown_department(self):
        form = CourseForm(data=self.form_data(department_code='PHY'), departments=DEPARTMENTS)
        self.assertFalse(form.is_valid())
        self.assertIn('department_code', form.errors)

    def test_department_labels(self):
        form = CourseForm(departments=DEPARTMENTS)
        self.assertEqual(form.fields['department_code'].choices[1], ('CSC', 'CSC - Computer Science'))


class DepartmentFormTests(SimpleTestCase):

    def test_payload(self):
        form = DepartmentForm(data={'name': 'Physics', 'code': 'phy', 'description': '', 'hod_email': 'hod@example.com'})
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.to_payload(), {'name': 'Physics', 'code': 'PHY', 'hodEmail': 'hod@example.com'})


class ScheduleFormTests(SimpleTestCase):

    def form_data(self, **overrides):
        data = {
            'course_code': 'CSC101',
            'day_of_week': 'MONDAY',
            'start_time': '08:00',
            'end_time': '10:00',
            'venue': ' LT1 ',
            'type': 'LECTURE',
        }
        data.update(overrides)
        return data

    def test_payload(self):
        form = ScheduleForm(data=self.form_data(), courses=COURSES)
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.to_payload(), {
            'courseCode': 'CSC101',
            'dayOfWeek': 'MONDAY',
            'startTime': '08:00',
            'endTime': '10:00',
            'venue': 'LT1',
            'type': 'LECTURE',
        })

    def test_end_before_start(self):
        form = ScheduleForm(data=self.form_data(start_time='10:00', end_time='09:00'), courses=COURSES)
        self.assertFalse(form.is_valid())
        self.assertEqual(form.errors['end_time'], ['End time must be after start time.'])

    def test_cleaned_times(self):
        form = ScheduleForm(data=self.form_data(), courses=COURSES)
        form.is_valid()
        self.assertEqual(form.cleaned_data['start_time'], time(8, 0))


class BulkUploadFormTests(SimpleTestCase):

    def test_csv_accepted(self):
        upload = SimpleUploadedFile('courses.csv', b'code,name\n', content_type='text/csv')
        self.assertTrue(BulkUploadForm(files={'file': upload}).is_valid())

    def test_other_extensions_rejected(self):
        upload = SimpleUploadedFile('courses.xlsx', b'PK', content_type='application/octet-stream')
        form = BulkUploadForm(files={'file': upload})
        self.assertFalse(form.is_valid())
        self.assertEqual(form.errors['file'], ['Only CSV files are accepted.'])

    @override_settings(COURSEFLOW_MAX_UPLOAD_SIZE=1024 * 1024)
    def test_too_large(self):
        upload = SimpleUploadedFile('courses.csv', b'a' * (1024 * 1024 + 1), content_type='text/csv')
        form = BulkUploadForm(files={'file': upload})
        self.assertFalse(form.is_valid())
        self.assertEqual(form.errors['file'], ['File is too large. Maximum size is 1 MB.'])


class ScheduleHelperTests(SimpleTestCase):

    def test_search(self):
        self.assertEqual([s['id'] for s in search_schedules(SCHEDULES, 'lab 2')], ['s2'])
        self.assertEqual([s['id'] for s in search_schedules(SCHEDULES, 'intro')], ['s1'])
        self.assertEqual(len(search_schedules(SCHEDULES, '  ')), len(SCHEDULES))

    def test_export_scope(self):
        self.assertEqual(export_scope({}), 'all')
        self.assertEqual(export_scope({'level': 'LEVEL_300', 'departmentCode': 'CSC'}), 'csc_level_300')

    def test_export_title(self):
        title = export_title({'departmentCode': 'csc', 'level': 'LEVEL_300', 'semester': 'FIRST', 'dayOfWeek': 'BAD'})
        self.assertEqual(title, 'Timetable - CSC - 300 Level - First Semester')


@override_settings(SECURE_SSL_REDIRECT=False)
class CourseViewTests(ApiTestMixin, SimpleTestCase):
    """Tests for course list, create, upload and export views."""

    def setUp(self):
        super().setUp()
        self.get_departments = self.mock_api('get_departments', return_value=paged(DEPARTMENTS))

    def test_list_is_public(self):
        self.mock_api('get_courses', return_value=paged(COURSES))
        response = self.client.get(reverse('academics:courses'))
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'Intro to Computing')

    def test_export_requires_login(self):
        get_courses = self.mock_api('get_courses')
        response = self.client.get(reverse('academics:courses_export'), {'format': 'csv'})
        self.assertEqual(response.status_code, 302)
        self.assertIn(reverse('accounts:login'), response['Location'])
        get_courses.assert_not_called()

    def test_list_labels(self):
        self.mock_api('get_courses', return_value=paged(COURSES + [
            {'code': 'BIO101', 'name': 'General Biology', 'level': 'LEVEL_100', 'credits': 2},
            {'code': 'CHM101', 'name': 'General Chemistry', 'level': 'LEVEL_100', 'credits': 2,
             'lecturerEmail': 'chem@example.com'},
        ]))

        response = self.client.get(reverse('academics:courses'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            [(c['department_label'], c['lecturer_label']) for c in response.context['courses']],
            [('Computer Science', 'Dr. Bello'), ('CSC', ''), ('', ''), ('', 'chem@example.com')],
        )
        self.assertContains(response, 'General Biology')
        self.assertContains(response, 'chem@example.com')

    def test_list_passes_filters(self):
        self.sign_in()
        get_courses = self.mock_api('get_courses', return_value=paged(COURSES, total=30, total_pages=3, page=2))

        response = self.client.get(reverse('academics:courses'), {'search': 'csc', 'level': 'LEVEL_100', 'page': 2})

        self.assertEqual(response.status_code, 200)
        get_courses.assert_called_once_with(page=2, limit=12, search='csc', level='LEVEL_100')
        self.assertEqual(len(response.context['courses']), 2)
        self.assertTrue(response.context['has_previous'])
        self.assertTrue(response.context['has_next'])
        self.assertEqual(response.context['total_count'], 30)
        self.assertContains(response, 'Intro to Computing')

    def test_list_error(self):
        self.sign_in()
        self.mock_api('get_courses', return_value=failed('Server error', 500))
        response = self.client.get(reverse('academics:courses'))
        self.assertEqual(response.context['error'], 'Server error')
        self.assertEqual(response.context['courses'], [])

    def test_list_htmx(self):
        self.sign_in()
        self.mock_api('get_courses', return_value=paged(COURSES))
        response = self.client.get(reverse('academics:courses'), HTTP_HX_REQUEST='true')
        self.assertTemplateUsed(response, 'academics/partials/courses_content.html')
        self.assertTemplateNotUsed(response, 'academics/courses.html')

    def test_create_forbidden_for_students(self):
        self.sign_in('STUDENT')
        response = self.client.get(reverse('academics:course_create'))
        self.assertRedirects(response, reverse('core:dashboard'), fetch_redirect_response=False)
        self.assertIn("You don't have permission to access this page.", flashed(response))

    def test_create(self):
        self.sign_in('LECTURER')
        create = self.mock_api('create_course', return_value=ok({'code': 'CSC301'}))
        response = self.client.post(reverse('academics:course_create'), {
            'code': 'csc301', 'name': 'Operating Systems', 'level': 'LEVEL_300', 'credits': 3, 'department_code': 'CSC',
        })

        self.assertRedirects(response, reverse('academics:courses'), fetch_redirect_response=False)
        self.assertEqual(create.call_args[0][0]['code'], 'CSC301')
        self.assertIn('Course "CSC301" created successfully.', flashed(response))

    def test_create_htmx(self):
        self.sign_in('HOD')
        self.mock_api('create_course', return_value=ok({'code': 'CSC301'}))
        response = self.client.post(reverse('academics:course_create'), {
            'code': 'csc301', 'name': 'Operating Systems', 'level': 'LEVEL_300', 'credits': 3, 'department_code': 'CSC',
        }, HTTP_HX_REQUEST='true')

        self.assertEqual(response.status_code, 204)
        self.assertEqual(response['HX-Trigger'], 'coursesChanged')

    def test_create_backend_error(self):
        self.sign_in('ADMIN')
        self.mock_api('create_course', return_value=failed('Course code already exists', 409))
        response = self.client.post(reverse('academics:course_create'), {
            'code': 'csc101', 'name': 'Intro', 'level': 'LEVEL_100', 'credits': 3, 'department_code': 'CSC',
        })
        self.assertEqual(response.status_code, 200)
        self.assertIn('Course code already exists', flashed(response))

    def test_bulk_upload(self):
        self.sign_in('LECTURER')
        upload = self.mock_api('upload_courses_bulk', return_value=ok({
            'created': 3, 'failed': 1, 'errors': [{'row': 4, 'message': 'Row 4: unknown department'}],
        }))
        csv_file = SimpleUploadedFile('courses.csv', b'code,name\nCSC101,Intro\n', content_type='text/csv')

        response = self.client.post(reverse('academics:courses_bulk_upload'), {'file': csv_file})

        self.assertRedirects(response, reverse('academics:courses'), fetch_redirect_response=False)
        upload.assert_called_once()
        self.assertEqual(flashed(response), ['3 courses created. 1 rows failed.', 'Row 4: unknown department'])

    def test_bulk_upload_rejects_non_csv(self):
        self.sign_in('LECTURER')
        upload = self.mock_api('upload_courses_bulk')
        bad_file = SimpleUploadedFile('courses.txt', b'hello', content_type='text/plain')

        response = self.client.post(reverse('academics:courses_bulk_upload'), {'file': bad_file})

        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'Only CSV files are accepted.')
        upload.assert_not_called()

    def test_bulk_upload_failure(self):
        self.sign_in('LECTURER')
        self.mock_api('upload_courses_bulk', return_value=failed('', 400))
        csv_file = SimpleUploadedFile('courses.csv', b'code\n', content_type='text/csv')
        response = self.client.post(reverse('academics:courses_bulk_upload'), {'file': csv_file})
        self.assertIn('Upload failed', flashed(response))

    def test_template_download(self):
        self.sign_in('LECTURER')
        self.mock_api('get_courses_bulk_template', return_value=ok('code,name,level\n'))
        response = self.client.get(reverse('academics:courses_template'))
        self.assertEqual(response['Content-Type'], 'text/csv')
        self.assertEqual(response['Content-Disposition'], 'attachment; filename="courses_template.csv"')
        self.assertEqual(response.content, b'code,name,level\n')

    def test_template_download_failure(self):
        self.sign_in('LECTURER')
        self.mock_api('get_courses_bulk_template', return_value=failed('Not found', 404))
        response = self.client.get(reverse('academics:courses_template'))
        self.assertRedirects(response, reverse('academics:courses_bulk_upload'), fetch_redirect_response=False)

    def test_export_csv(self):
        self.sign_in()
        get_courses = self.mock_api('get_courses', return_value=paged(COURSES))
        response = self.client.get(reverse('academics:courses_export'), {'format': 'csv', 'level': 'LEVEL_100'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'text/csv')
        self.assertEqual(
            response['Content-Disposition'], f'attachment; filename="courses_{today_stamp()}.csv"'
        )
        get_courses.assert_called_once_with(page=1, limit=100, level='LEVEL_100')

    def test_export_xlsx(self):
        self.sign_in()
        self.mock_api('get_courses', return_value=paged(COURSES))
        response = self.client.get(reverse('academics:courses_export'))
        self.assertTrue(response.content.startswith(b'PK'))

    def test_export_failure(self):
        self.sign_in()
        self.mock_api('get_courses', return_value=failed('Server error', 500))
        response = self.client.get(reverse('academics:courses_export'), {'format': 'csv'})
        self.assertRedirects(response, reverse('academics:courses'), fetch_redirect_response=False)
        self.assertIn('Export failed: Server error', flashed(response))

    def test_export_session_expired(self):
        self.sign_in()
        self.mock_api('get_courses', return_value=failed('Unauthorized', 401))
        response = self.client.get(reverse('academics:courses_export'), {'format': 'csv'})
        self.assertRedirects(response, reverse('accounts:login'), fetch_redirect_response=False)

    def test_export_unsupported_format(self):
        self.sign_in()
        response = self.client.get(reverse('academics:courses_export'), {'format': 'png'})
        self.assertRedirects(response, reverse('academics:courses'), fetch_redirect_response=False)
        self.assertIn('Unsupported export format: png', flashed(response))


@override_settings(SECURE_SSL_REDIRECT=False)
class DepartmentViewTests(ApiTestMixin, SimpleTestCase):
    """Tests for department views."""

    def test_list(self):
        self.sign_in()
        get_departments = self.mock_api('get_departments', return_value=paged(DEPARTMENTS))
        response = self.client.get(reverse('academics:departments'), {'search': 'comp'})
        self.assertContains(response, 'Computer Science')
        get_departments.assert_called_once_with(page=1, limit=12, search='comp')

    def test_list_is_public(self):
        self.mock_api('get_departments', return_value=paged(DEPARTMENTS))
        response = self.client.get(reverse('academics:departments'))
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'Mathematics')

    def test_detail(self):
        self.mock_api('get_department_full_details', return_value=ok({
            'department': {'code': 'CSC', 'name': 'Computer Science', 'hodEmail': 'hod@example.com'},
            'courses': [
                {'code': 'CSC101', 'name': 'Intro', 'credits': 3, 'schedules': [
                    {'dayOfWeek': 'WEDNESDAY', 'startTime': '10:00', 'endTime': '12:00', 'type': 'LAB',
                     'venue': {'name': 'Lab 1'}},
                    {'dayOfWeek': 'MONDAY', 'startTime': '08:00', 'endTime': '10:00', 'type': 'LECTURE', 'venue': 'LT1'},
                ]},
                {'code': 'CSC201', 'name': 'Data Structures', 'credits': 2, 'lecturerEmail': 'lect@example.com'},
            ],
        }))

        response = self.client.get(reverse('academics:department_detail', args=['CSC']))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['total_credits'], 5)
        self.assertEqual([day for day, _, _ in response.context['schedule_days']], ['MONDAY', 'WEDNESDAY'])
        self.assertContains(response, 'hod@example.com')
        self.assertContains(response, 'lect@example.com')
        self.assertContains(response, 'Lab 1')

    def test_detail_not_found(self):
        self.sign_in()
        self.mock_api('get_department_full_details', return_value=failed('Department not found', 404))
        response = self.client.get(reverse('academics:department_detail', args=['XYZ']))
        self.assertRedirects(response, reverse('academics:departments'), fetch_redirect_response=False)
        self.assertIn('Department not found', flashed(response))

    def test_create_admin_only(self):
        self.sign_in('LECTURER')
        response = self.client.get(reverse('academics:department_create'))
        self.assertRedirects(response, reverse('core:dashboard'), fetch_redirect_response=False)

    def test_create(self):
        self.sign_in('ADMIN')
        create = self.mock_api('create_department', return_value=ok({'code': 'PHY'}))
        response = self.client.post(reverse('academics:department_create'), {'name': 'Physics', 'code': 'phy'})
        self.assertRedirects(response, reverse('academics:departments'), fetch_redirect_response=False)
        create.assert_called_once_with({'name': 'Physics', 'code': 'PHY'})


@override_settings(SECURE_SSL_REDIRECT=False)
class ScheduleViewTests(ApiTestMixin, SimpleTestCase):
    """Tests for the schedule list, create and timetable export."""

    def setUp(self):
        super().setUp()
        self.mock_api('get_departments', return_value=paged(DEPARTMENTS))
        self.sign_in()

    def test_list_grouped_by_day(self):
        get_schedules = self.mock_api('get_schedules', return_value=paged(SCHEDULES))
        response = self.client.get(reverse('academics:schedules'), {'dayOfWeek': 'MONDAY'})

        self.assertEqual(response.status_code, 200)
        get_schedules.assert_called_once_with(page=1, limit=20, dayOfWeek='MONDAY')
        self.assertEqual(
            [day for day, _, _ in response.context['schedule_days']],
            ['MONDAY', 'TUESDAY', 'WEDNESDAY', 'SATURDAY'],
        )
        self.assertIsNone(response.context['grid'])

    def test_list_without_embedded_course(self):
        self.client.cookies.clear()
        self.mock_api('get_schedules', return_value=paged([
            {'courseCode': 'CSC101', 'dayOfWeek': 'TUESDAY', 'startTime': '10:00', 'endTime': '12:00',
             'type': 'LECTURE', 'venue': 'LT1'},
            {'dayOfWeek': 'TUESDAY', 'startTime': '8:00', 'endTime': '10:00', 'type': 'LAB'},
        ]))

        response = self.client.get(reverse('academics:schedules'))

        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.wsgi_request.api_user)
        [(day, _, tuesday)] = response.context['schedule_days']
        self.assertEqual(day, 'TUESDAY')
        self.assertEqual(
            [(s['course_code'], s['course_name'], s['venue_name']) for s in tuesday],
            [('', '', ''), ('CSC101', '', 'LT1')],
        )
        self.assertContains(response, 'CSC101')

    def test_grid_view(self):
        self.mock_api('get_schedules', return_value=paged(SCHEDULES))
        response = self.client.get(reverse('academics:schedules'), {'view': 'grid'})
        self.assertEqual(response.context['grid'].entry_count, 4)
        self.assertContains(response, '08:00 - 10:00')

    def test_local_search(self):
        self.mock_api('get_schedules', return_value=paged(SCHEDULES))
        response = self.client.get(reverse('academics:schedules'), {'q': 'mth'})
        self.assertEqual(response.context['schedule_count'], 1)

    def test_create(self):
        self.sign_in('LECTURER')
        self.mock_api('get_courses', return_value=paged(COURSES))
        create = self.mock_api('create_schedule', return_value=ok({'id': 's9'}))
        response = self.client.post(reverse('academics:schedule_create'), {
            'course_code': 'CSC101', 'day_of_week': 'FRIDAY', 'start_time': '14:00', 'end_time': '16:00',
            'venue': 'LT3', 'type': 'SEMINAR',
        })

        self.assertRedirects(response, reverse('academics:schedules'), fetch_redirect_response=False)
        self.assertEqual(create.call_args[0][0]['dayOfWeek'], 'FRIDAY')

    def test_create_prefills_day(self):
        self.sign_in('LECTURER')
        self.mock_api('get_courses', return_value=paged(COURSES))
        response = self.client.get(reverse('academics:schedule_create'), {'day': 'TUESDAY'})
        self.assertEqual(response.context['form'].initial['day_of_week'], 'TUESDAY')

    def test_export_csv(self):
        get_schedules = self.mock_api('get_schedules', return_value=paged(SCHEDULES))
        get_courses = self.mock_api('get_courses', return_value=paged(COURSES))

        response = self.client.get(reverse('academics:schedules_export'), {
            'format': 'csv', 'departmentCode': 'CSC', 'level': 'LEVEL_100', 'dayOfWeek': 'MONDAY',
        })

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'text/csv')
        self.assertEqual(
            response['Content-Disposition'],
            f'attachment; filename="timetable_csc_level_100_monday_{today_stamp()}.csv"',
        )
        get_schedules.assert_called_once_with(
            page=1, limit=100, departmentCode='CSC', level='LEVEL_100', dayOfWeek='MONDAY'
        )
        get_courses.assert_called_once_with(page=1, limit=100, departmentCode='CSC', level='LEVEL_100')
        self.assertIn('CSC101', response.content.decode('utf-8-sig'))

    def test_export_all_formats(self):
        self.mock_api('get_schedules', return_value=paged(SCHEDULES))
        self.mock_api('get_courses', return_value=paged(COURSES))
        weasyprint = mock.MagicMock()
        weasyprint.HTML.return_value.write_pdf.side_effect = lambda target: target.write(b'%PDF-1.7')

        expected = {
            'pdf': (b'%PDF', 'application/pdf'),
            'xlsx': (b'PK', 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'),
            'png': (b'\x89PNG', 'image/png'),
        }
        with mock.patch.dict(sys.modules, {'weasyprint': weasyprint}):
            for fmt, (magic, content_type) in expected.items():
                response = self.client.get(reverse('academics:schedules_export'), {'format': fmt})
                self.assertEqual(response['Content-Type'], content_type)
                self.assertTrue(response.content.startswith(magic), fmt)
                self.assertTrue(response['Content-Disposition'].endswith(f'.{fmt}"'))

    def test_export_pdf_unavailable(self):
        self.mock_api('get_schedules', return_value=paged(SCHEDULES))
        self.mock_api('get_courses', return_value=paged(COURSES))

        with mock.patch.dict(sys.modules, {'weasyprint': None}):
            response = self.client.get(reverse('academics:schedules_export'), {'format': 'pdf'})

        self.assertRedirects(response, reverse('academics:schedules'), fetch_redirect_response=False)
        self.assertIn('PDF generation is not available. WeasyPrint is not installed.', flashed(response))

    def test_export_fetch_failure(self):
        self.mock_api('get_schedules', return_value=failed('Backend unavailable', 503))
        self.mock_api('get_courses', return_value=paged(COURSES))
        response = self.client.get(reverse('academics:schedules_export'), {'format': 'xlsx'})
        self.assertRedirects(response, reverse('academics:schedules'), fetch_redirect_response=False)
        self.assertIn('Export failed: Backend unavailable', flashed(response))

    def test_export_unsupported_format(self):
        response = self.client.get(reverse('academics:schedules_export'), {'format': 'docx'})
        self.assertRedirects(response, reverse('academics:schedules'), fetch_redirect_response=False)

    @override_settings(RATELIMIT_ENABLE=True)
    def test_export_rate_limited(self):
        self.mock_api('get_schedules', return_value=paged([]))
        self.mock_api('get_courses', return_value=paged([]))
        for _ in range(10):
            self.client.get(reverse('academics:schedules_export'), {'format': 'csv'})
        response = self.client.get(reverse('academics:schedules_export'), {'format': 'csv'})
        self.assertEqual(response.status_code, 429)
