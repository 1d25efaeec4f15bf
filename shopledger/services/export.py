import csv
import io
import logging
from typing import Dict, List, Optional, Sequence

import pandas as pd
from fastapi.responses import Response, StreamingResponse

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def rows_to_csv(rows: List[Dict], headers: Optional[Sequence[str]] = None) -> str:
    """
    Serialize dict rows to CSV text.

    Columns follow `headers`, or the keys of the first row. Missing and None
    values become empty fields. Fields holding a comma, a quote, a carriage
    return or a newline are wrapped in quotes with inner quotes doubled, so the
    text parses back to the same values.
    """
    if not rows:
        return ""
    columns = list(headers) if headers else list(rows[0].keys())
    # object dtype keeps ints as ints when a column also holds None
    df = pd.DataFrame(rows, columns=columns, dtype=object)
    needs_quotes = df.apply(lambda col: col.map(lambda v: isinstance(v, str) and "\r" in v)).any(axis=None)
    quoting = csv.QUOTE_ALL if needs_quotes else csv.QUOTE_MINIMAL
    return df.to_csv(index=False, lineterminator="\n", quoting=quoting)


def csv_response(filename: str, rows: List[Dict], headers: Optional[Sequence[str]] = None) -> Response:
    content = rows_to_csv(rows, headers)
    logger.info("Exporting %s rows to %s.csv", len(rows), filename)
    return Response(content=content.encode("utf-8"), media_type="text/csv; charset=utf-8",
                    headers={"Content-Disposition": f'attachment; filename="{filename}.csv"'})


def workbook_response(filename: str, sheets: Dict[str, pd.DataFrame]) -> StreamingResponse:
    """One sheet per DataFrame, written with openpyxl into memory."""
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        for name, df in sheets.items():
            df.to_excel(writer, index=False, sheet_name=name[:31])
    output.seek(0)
    logger.info("Exporting workbook %s.xlsx with %s sheets", filename, len(sheets))
    return StreamingResponse(output, media_type=XLSX_MEDIA_TYPE,
                             headers={"Content-Disposition": f'attachment; filename="{filename}.xlsx"'})
