# procarni/export/excel_export.py
from io import BytesIO
from typing import Iterable, Sequence

from openpyxl import Workbook
from openpyxl.styles import Font

from procarni.core.errors import GenerationError
from procarni.core.logging_config import logger
from procarni.domain.views import PriceHistoryRow
from procarni.export.columns import Column, headers, tabulate
from procarni.services.artifacts import XLSX_MIME, GeneratedArtifact


def build_workbook(
    rows: Iterable[PriceHistoryRow],
    columns: Sequence[Column],
    sheet_title: str,
    filename: str,
) -> GeneratedArtifact:
    """
    Single sheet: one header row, then exactly one row per input row.
    The workbook is written to memory; nothing is returned until it is complete.
    """
    try:
        wb = Workbook()
        ws = wb.active
        ws.title = sheet_title[:31]  # Excel limit

        ws.append(headers(columns))
        for cell in ws[1]:
            cell.font = Font(bold=True)

        body = tabulate(rows, columns)
        for values in body:
            ws.append(values)

        for idx, column in enumerate(columns, start=1):
            width = max([len(column.header)] + [len(str(v[idx - 1])) for v in body])
            ws.column_dimensions[ws.cell(row=1, column=idx).column_letter].width = min(width + 2, 50)

        buf = BytesIO()
        wb.save(buf)
    except Exception as exc:
        logger.bind(filename=filename).error("xlsx_generation_failed", error=str(exc))
        raise GenerationError("No se pudo generar el archivo Excel.", filename=filename) from exc

    return GeneratedArtifact(filename=filename, mime_type=XLSX_MIME, content=buf.getvalue())
