import io
from datetime import datetime

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from app.utils.contact_triage import STATUS_LABELS


HEADERS = ["#", "Received", "First name", "Last name", "Email", "Phone", "Subject", "Message", "Status", "Updated"]
STATUS_COLORS = {"new": "DBEAFE", "in_progress": "FEF3C7", "resolved": "DCFCE7"}


def contact_submissions_workbook(submissions, site_name="Contact submissions"):
    wb = Workbook()
    ws = wb.active
    ws.title = "Submissions"

    title = f"{site_name} - Contact submissions ({datetime.utcnow().strftime('%Y-%m-%d %H:%M UTC')})"
    ws.merge_cells(start_row=1, start_column=1, end_row=2, end_column=len(HEADERS))
    title_cell = ws.cell(row=1, column=1, value=title)
    title_cell.font = Font(bold=True, size=14, color="FFFFFF")
    title_cell.fill = PatternFill("solid", fgColor="1E3A8A")
    title_cell.alignment = Alignment(horizontal="center", vertical="center")

    header_fill = PatternFill("solid", fgColor="1D4ED8")
    header_font = Font(bold=True, color="FFFFFF")
    thin = Side(style="thin", color="D1D5DB")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    header_row = 4

    for idx, header in enumerate(HEADERS, start=1):
        c = ws.cell(row=header_row, column=idx, value=header)
        c.fill = header_fill
        c.font = header_font
        c.alignment = Alignment(horizontal="center", vertical="center")
        c.border = border

    data_start = header_row + 1
    status_column = HEADERS.index("Status") + 1
    for i, s in enumerate(submissions, start=data_start):
        values = [
            s.id,
            s.created_at.strftime("%Y-%m-%d %H:%M") if s.created_at else "",
            s.first_name,
            s.last_name,
            s.email,
            s.phone or "",
            s.subject,
            s.message,
            STATUS_LABELS.get(s.status, s.status),
            s.updated_at.strftime("%Y-%m-%d %H:%M") if s.updated_at else "",
        ]
        for j, v in enumerate(values, start=1):
            c = ws.cell(row=i, column=j, value=v)
            c.border = border
            c.alignment = Alignment(vertical="top", wrap_text=True)

        status_fill = STATUS_COLORS.get(s.status)
        if status_fill:
            ws.cell(row=i, column=status_column).fill = PatternFill("solid", fgColor=status_fill)

    widths = [6, 18, 16, 16, 28, 16, 30, 60, 14, 18]
    for idx, width in enumerate(widths, start=1):
        ws.column_dimensions[ws.cell(row=header_row, column=idx).column_letter].width = width
    ws.freeze_panes = f"A{data_start}"

    buffer = io.BytesIO()
    wb.save(buffer)
    buffer.seek(0)
    return buffer
