import csv
import io
from typing import Iterable

CSV_HEADER = ["Student Name", "Student Email", "QR Code", "Score"]
NOT_GRADED = "Not graded"


def format_score(score) -> str:
    if score is None:
        return NOT_GRADED
    # 92.0 -> "92", 92.5 -> "92.5"
    return f"{score:g}"


def generate_results_csv(mappings: Iterable[dict]) -> bytes:
    """
    Сериализация строк раскрытия (student_name, student_email, qr_code, score) в CSV.
    """
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(CSV_HEADER)
    for m in mappings:
        writer.writerow([
            m["student_name"],
            m["student_email"],
            m["qr_code"],
            format_score(m["score"]),
        ])
    return buf.getvalue().encode("utf-8")
