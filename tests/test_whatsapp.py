import pytest

from procarni.services.whatsapp import build_whatsapp_link, document_message, normalize_phone


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("414-123.45.67", "584141234567"),
        ("+58 414 1234567", "584141234567"),
        ("(0414) 123 4567", "5804141234567"),
        ("584141234567", "584141234567"),
    ],
)
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw, country_code="58") == expected


@pytest.mark.parametrize("raw", [None, "", "sin número", "+-()"])
def test_phone_without_digits(raw):
    assert normalize_phone(raw, country_code="58") is None


def test_country_code_can_be_empty():
    assert normalize_phone("414 123 4567", country_code="") == "4141234567"


def test_link_encodes_the_whole_message():
    text = document_message("Orden de Compra", "OC-2024-08-007", "Procarni C.A.", "https://files.procarni.test/a b.pdf")

    link = build_whatsapp_link("584141234567", text, base_url="https://wa.me/")

    assert link.startswith("https://wa.me/584141234567?text=Hola%2C%20te%20he%20enviado%20la%20Orden%20de%20Compra")
    assert "%23OC-2024-08-007" in link
    assert "https%3A%2F%2Ffiles.procarni.test%2Fa%20b.pdf" in link
    assert " " not in link


def test_message_text():
    text = document_message("Solicitud de Cotización", "QR1abcde", "Procarni", "https://x.test/d.pdf")

    assert text == (
        "Hola, te he enviado la Solicitud de Cotización #QR1abcde de Procarni. "
        "Puedes descargarla aquí: https://x.test/d.pdf"
    )
