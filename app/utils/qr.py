import io
import secrets

import qrcode

# 16 случайных байт -> 128 бит энтропии, 32 шестнадцатеричных символа
CODE_VALUE_BYTES = 16


def generate_code_value() -> str:
    """Новое непредсказуемое значение анонимного кода."""
    return secrets.token_hex(CODE_VALUE_BYTES)


def make_qr_png(value: str) -> bytes:
    """
    Отрисовка значения кода как PNG-изображения QR.

    Args:
        value: Кодируемый текст

    Returns:
        bytes: Данные PNG-изображения
    """
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=8,
        border=2,
    )
    qr.add_data(value)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
