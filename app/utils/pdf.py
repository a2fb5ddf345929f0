import io
from typing import Iterable

from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from app.core.logger import logger
from app.utils.qr import make_qr_png

MARGIN = 40
COLS = 3
ROWS = 3
CODES_PER_PAGE = COLS * ROWS
QR_SIZE = 150
H_GAP = 40
V_GAP = 50
HEADER_HEIGHT = 70


def generate_qr_codes_pdf(code_values: Iterable[str], exam_title: str) -> bytes:
    """
    Раскладка QR-кодов на листы A4 для печати, 3x3 на странице.

    На каждой странице указаны название экзамена и номер страницы, под каждым
    QR-кодом напечатано его значение.

    Args:
        code_values: Значения анонимных кодов в порядке печати
        exam_title: Дисциплина для заголовка страницы

    Returns:
        bytes: PDF-документ
    """
    buf = io.BytesIO()
    page_width, page_height = A4
    c = canvas.Canvas(buf, pagesize=A4)
    c.setTitle(f"{exam_title} - QR codes")

    usable_width = page_width - 2 * MARGIN
    grid_width = COLS * QR_SIZE + (COLS - 1) * H_GAP
    start_x = MARGIN + (usable_width - grid_width) / 2
    # начало координат reportlab в левом нижнем углу, ряды идут вниз от заголовка
    top_y = page_height - MARGIN - HEADER_HEIGHT

    page_num = 0
    for i, value in enumerate(code_values):
        slot = i % CODES_PER_PAGE
        if slot == 0:
            if page_num:
                c.showPage()
            page_num += 1
            c.setFont("Helvetica-Bold", 18)
            c.drawString(start_x, page_height - MARGIN - 18, exam_title)
            c.setFont("Helvetica", 10)
            c.drawString(page_width - 100, page_height - MARGIN - 10, f"Page {page_num}")

        row, col = divmod(slot, COLS)
        x = start_x + col * (QR_SIZE + H_GAP)
        y = top_y - (row + 1) * QR_SIZE - row * V_GAP

        image = ImageReader(io.BytesIO(make_qr_png(value)))
        c.drawImage(image, x, y, width=QR_SIZE, height=QR_SIZE)

        c.setFont("Courier", 9)
        c.drawCentredString(x + QR_SIZE / 2, y - 12, value)

    c.save()
    logger.info(f"[ЛИСТ QR] Сформировано страниц: {page_num} для '{exam_title}'")
    return buf.getvalue()
