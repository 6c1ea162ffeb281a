"""
Timetable and course list exports.

Every exporter takes already-fetched data and returns file bytes; views
decide filenames and wrap the bytes in a response.
"""
import io
import logging
import textwrap

import pandas as pd
from django.conf import settings
from django.template.loader import render_to_string
from django.utils import timezone
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from PIL import Image, ImageDraw, ImageFont

from core import config
from core.choices import Level, Semester

logger = logging.getLogger(__name__)

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

EXPORT_FORMATS = {
    'pdf': {'content_type': 'application/pdf', 'extension': 'pdf', 'label': 'PDF'},
    'xlsx': {'content_type': XLSX_CONTENT_TYPE, 'extension': 'xlsx', 'label': 'Excel'},
    'csv': {'content_type': 'text/csv', 'extension': 'csv', 'label': 'CSV'},
    'png': {'content_type': 'image/png', 'extension': 'png', 'label': 'Image (PNG)'},
}

COURSE_EXPORT_FORMATS = ('xlsx', 'csv')


# ============ CSV ============

def export_csv(grid):
    """Timetable grid as CSV: a Day column followed by one column per slot."""
    df = grid.to_dataframe()
    return df.to_csv(index=True).encode('utf-8-sig')


# ============ EXCEL ============

def export_xlsx(grid, title):
    """Timetable grid as a styled Excel sheet."""
    wb = Workbook()
    ws = wb.active
    ws.title = 'Timetable'

    # Styles
    header_font = Font(bold=True, size=14)
    table_header_font = Font(bold=True, size=10, color="FFFFFF")
    table_header_fill = PatternFill(
        start_color=config.EXPORT_HEADER_COLOR,
        end_color=config.EXPORT_HEADER_COLOR,
        fill_type="solid",
    )
    border = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )
    last_column = get_column_letter(max(len(grid.slots) + 1, 2))

    # Title
    ws.merge_cells(f'A1:{last_column}1')
    ws['A1'] = title
    ws['A1'].font = header_font
    ws['A1'].alignment = Alignment(horizontal='center')

    # Date
    ws.merge_cells(f'A2:{last_column}2')
    ws['A2'] = f"Generated: {timezone.now().strftime('%B %d, %Y')}"
    ws['A2'].alignment = Alignment(horizontal='center')

    # Empty row
    ws.append([])

    # Table headers
    headers = ['Day'] + grid.slot_labels
    ws.append(headers)
    header_row = 4

    for col_num in range(1, len(headers) + 1):
        cell = ws.cell(row=header_row, column=col_num)
        cell.font = table_header_font
        cell.fill = table_header_fill
        cell.alignment = Alignment(horizontal='center', vertical='center', wrap_text=True)
        cell.border = border

    # Grid rows
    for row_offset, (day_label, cells) in enumerate(grid.rows(), 1):
        row_num = header_row + row_offset
        ws.append([day_label] + [grid.cell_text(cell) for cell in cells])

        max_lines = 1
        for col_num in range(1, len(headers) + 1):
            cell = ws.cell(row=row_num, column=col_num)
            cell.border = border
            cell.alignment = Alignment(horizontal='center', vertical='center', wrap_text=True)
            if cell.value:
                max_lines = max(max_lines, str(cell.value).count('\n') + 1)
        ws.cell(row=row_num, column=1).font = Font(bold=True)
        ws.row_dimensions[row_num].height = max(20, 15 * max_lines)

    # Column widths
    ws.column_dimensions['A'].width = 14
    for col_num in range(2, len(headers) + 1):
        ws.column_dimensions[get_column_letter(col_num)].width = 22

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


# ============ PDF ============

def export_pdf(grid, title, request=None):
    """Timetable grid rendered to PDF with WeasyPrint (landscape A4)."""
    from weasyprint import HTML

    html_string = render_to_string('academics/timetable_pdf.html', {
        'grid': grid,
        'title': title,
        'generated_at': timezone.now(),
        'generated_by': getattr(request, 'api_user', None) if request else None,
    })
    html = HTML(string=html_string, base_url=str(settings.BASE_DIR))
    pdf_buffer = io.BytesIO()
    html.write_pdf(pdf_buffer)
    return pdf_buffer.getvalue()


# ============ PNG ============

PNG_MARGIN = 24
PNG_DAY_COLUMN_WIDTH = 120
PNG_SLOT_COLUMN_WIDTH = 170
PNG_LINE_HEIGHT = 14
PNG_CELL_PADDING = 6
PNG_MIN_ROW_HEIGHT = 48
PNG_TITLE_HEIGHT = 40
PNG_CHARS_PER_LINE = 24


def _hex_to_rgb(value):
    value = value.lstrip('#')
    return tuple(int(value[i:i + 2], 16) for i in (0, 2, 4))


def _cell_lines(cell):
    lines = []
    for index, entry in enumerate(cell):
        if index:
            lines.append('')
        for line in entry.lines():
            lines.extend(textwrap.wrap(line, PNG_CHARS_PER_LINE) or [''])
    return lines


def export_png(grid, title):
    """Timetable grid drawn as a PNG image."""
    font = ImageFont.load_default()
    header_rgb = _hex_to_rgb(config.EXPORT_HEADER_COLOR)

    rows = [(label, [_cell_lines(cell) for cell in cells]) for label, cells in grid.rows()]
    row_heights = []
    for _, cells in rows:
        most_lines = max([len(lines) for lines in cells] or [1])
        row_heights.append(max(PNG_MIN_ROW_HEIGHT, most_lines * PNG_LINE_HEIGHT + 2 * PNG_CELL_PADDING))

    header_height = PNG_MIN_ROW_HEIGHT // 2 + PNG_CELL_PADDING
    width = 2 * PNG_MARGIN + PNG_DAY_COLUMN_WIDTH + PNG_SLOT_COLUMN_WIDTH * len(grid.slots)
    height = 2 * PNG_MARGIN + PNG_TITLE_HEIGHT + header_height + sum(row_heights)

    image = Image.new('RGB', (width, height), 'white')
    draw = ImageDraw.Draw(image)

    draw.text((PNG_MARGIN, PNG_MARGIN), title, fill='black', font=font)
    draw.text(
        (PNG_MARGIN, PNG_MARGIN + PNG_LINE_HEIGHT),
        f"Generated: {timezone.now().strftime('%B %d, %Y')}",
        fill=(90, 90, 90),
        font=font,
    )

    def column_bounds(col):
        if col == 0:
            return PNG_MARGIN, PNG_MARGIN + PNG_DAY_COLUMN_WIDTH
        left = PNG_MARGIN + PNG_DAY_COLUMN_WIDTH + (col - 1) * PNG_SLOT_COLUMN_WIDTH
        return left, left + PNG_SLOT_COLUMN_WIDTH

    # Header band
    top = PNG_MARGIN + PNG_TITLE_HEIGHT
    for col, label in enumerate(['Day'] + grid.slot_labels):
        left, right = column_bounds(col)
        draw.rectangle([left, top, right, top + header_height], fill=header_rgb, outline='black')
        draw.text((left + PNG_CELL_PADDING, top + PNG_CELL_PADDING), label, fill='white', font=font)

    # Body
    top += header_height
    for (day_label, cells), row_height in zip(rows, row_heights):
        left, right = column_bounds(0)
        draw.rectangle([left, top, right, top + row_height], fill=(243, 244, 246), outline='black')
        draw.text((left + PNG_CELL_PADDING, top + PNG_CELL_PADDING), day_label, fill='black', font=font)

        for col, lines in enumerate(cells, 1):
            left, right = column_bounds(col)
            draw.rectangle([left, top, right, top + row_height], outline='black')
            for line_number, line in enumerate(lines):
                draw.text(
                    (left + PNG_CELL_PADDING, top + PNG_CELL_PADDING + line_number * PNG_LINE_HEIGHT),
                    line,
                    fill='black',
                    font=font,
                )
        top += row_height

    output = io.BytesIO()
    image.save(output, format='PNG')
    return output.getvalue()


def render_export(fmt, grid, title, request=None):
    """
    Serialize a timetable grid.

    Returns:
        (bytes, content_type, extension)

    Raises:
        ValueError: for an unknown format
    """
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {fmt}")

    if fmt == 'pdf':
        content = export_pdf(grid, title, request)
    elif fmt == 'xlsx':
        content = export_xlsx(grid, title)
    elif fmt == 'csv':
        content = export_csv(grid)
    else:
        content = export_png(grid, title)

    file_format = EXPORT_FORMATS[fmt]
    logger.info(f"Exported timetable as {fmt}: {grid.entry_count} entries, {len(grid.slots)} slots")
    return content, file_format['content_type'], file_format['extension']


# ============ COURSES ============

def _choice_label(choices, value):
    try:
        return str(choices(value).label)
    except ValueError:
        return value or ''


def courses_dataframe(courses):
    """Flatten course records into export rows."""
    export_data = []
    for course in courses:
        department = course.get('department') or {}
        lecturer = course.get('lecturer') or {}
        export_data.append({
            'Code': course.get('code', ''),
            'Name': course.get('name', ''),
            'Level': _choice_label(Level, course.get('level')),
            'Semester': _choice_label(Semester, course.get('semester')),
            'Credits': course.get('credits', ''),
            'Department': department.get('name') or course.get('departmentCode', ''),
            'Lecturer': lecturer.get('name') or course.get('lecturerEmail') or '',
            'General Course': 'Yes' if course.get('isGeneral') else 'No',
            'Locked': 'Yes' if course.get('isLocked') else 'No',
        })
    columns = ['Code', 'Name', 'Level', 'Semester', 'Credits', 'Department', 'Lecturer', 'General Course', 'Locked']
    return pd.DataFrame(export_data, columns=columns)


def export_courses(courses, fmt):
    """
    Course list as XLSX or CSV.

    Returns:
        (bytes, content_type, extension)
    """
    if fmt not in COURSE_EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {fmt}")

    df = courses_dataframe(courses)

    if fmt == 'csv':
        return df.to_csv(index=False).encode('utf-8-sig'), 'text/csv', 'csv'

    output = io.BytesIO()
    with pd.ExcelWriter(output, engine='openpyxl') as writer:
        df.to_excel(writer, index=False, sheet_name='Courses')

        # Auto-adjust column widths
        worksheet = writer.sheets['Courses']
        for idx, col in enumerate(df.columns):
            max_length = max(
                df[col].astype(str).map(len).max() if len(df) > 0 else 0,
                len(col)
            ) + 2
            worksheet.column_dimensions[get_column_letter(idx + 1)].width = min(max_length, 50)

    return output.getvalue(), XLSX_CONTENT_TYPE, 'xlsx'
