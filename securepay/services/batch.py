"""
Batch CSV import / export.

Input columns (header row required, case-insensitive):
    amount,type,oldbalanceOrg,newbalanceOrig,oldbalanceDest,newbalanceDest[,country]

Rows that fail to parse are kept as error rows so the caller can report
them alongside the scored ones. Row numbers are 1-based CSV line numbers
(the first data row is row 2).
"""

import csv
import io
import time
from dataclasses import dataclass
from typing import Optional, Sequence

from pydantic import ValidationError

from securepay.formatting import as_percent
from securepay.schemas.prediction import BatchRow
from securepay.schemas.transaction import TransactionRecord, TransactionType

REQUIRED_COLUMNS = [
    "amount",
    "type",
    "oldbalanceOrg",
    "newbalanceOrig",
    "oldbalanceDest",
    "newbalanceDest",
]

TEMPLATE = "\n".join([
    "amount,type,oldbalanceOrg,newbalanceOrig,oldbalanceDest,newbalanceDest,country",
    "12000,CASH_OUT,18000,6000,5000,17000,US",
    "400,PAYMENT,2200,1800,100,500,IN",
    "24000,TRANSFER,25000,800,3000,26200,GB",
])

RESULT_COLUMNS = ["row", "transaction_id", "prediction", "risk_percent", "threshold_percent", "error"]

_TYPE_VALUES = frozenset(t.value for t in TransactionType)


@dataclass(frozen=True)
class ParsedRow:
    row: int
    transaction: Optional[TransactionRecord] = None
    error: Optional[str] = None


def _to_number(raw: str) -> float:
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"Invalid number: {raw}") from None


def parse_batch_csv(text: str, default_country: str = "US") -> list[ParsedRow]:
    """Parse batch CSV text into transactions (or per-row errors)."""
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        return [ParsedRow(row=0, error="CSV must include a header and at least one data row.")]

    headers = [h.strip().lower() for h in next(csv.reader([lines[0]]))]
    missing = [c for c in REQUIRED_COLUMNS if c.lower() not in headers]
    if missing:
        return [ParsedRow(row=0, error=f"Missing required columns: {', '.join(missing)}")]

    column = {name: headers.index(name.lower()) for name in REQUIRED_COLUMNS}
    country_col = headers.index("country") if "country" in headers else None
    batch_stamp = int(time.time() * 1000)

    parsed: list[ParsedRow] = []
    for i, cells in enumerate(csv.reader(lines[1:])):
        row_number = i + 2
        cells = [c.strip() for c in cells]

        def cell(index: int) -> str:
            return cells[index] if index < len(cells) else ""

        try:
            tx_type = cell(column["type"])
            if tx_type not in _TYPE_VALUES:
                raise ValueError(f'Invalid type "{tx_type}"')

            country = cell(country_col) if country_col is not None else ""
            transaction = TransactionRecord(
                id=f"BATCH-{batch_stamp}-{i + 1}",
                amount=_to_number(cell(column["amount"])),
                type=TransactionType(tx_type),
                oldbalanceOrg=_to_number(cell(column["oldbalanceOrg"])),
                newbalanceOrig=_to_number(cell(column["newbalanceOrig"])),
                oldbalanceDest=_to_number(cell(column["oldbalanceDest"])),
                newbalanceDest=_to_number(cell(column["newbalanceDest"])),
                country=country or default_country,
            )
            parsed.append(ParsedRow(row=row_number, transaction=transaction))
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(p) for p in first["loc"])
            parsed.append(ParsedRow(row=row_number, error=f"{field}: {first['msg']}"))
        except ValueError as e:
            parsed.append(ParsedRow(row=row_number, error=str(e)))

    return parsed


def format_batch_results_csv(rows: Sequence[BatchRow]) -> str:
    """Results export; every cell quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    buffer.write(",".join(RESULT_COLUMNS) + "\n")
    for row in rows:
        writer.writerow([
            row.row,
            row.transaction_id or "",
            row.result.prediction.value if row.result else "",
            as_percent(row.result.probability) if row.result else "",
            as_percent(row.threshold) if row.threshold else "",
            row.error or "",
        ])
    return buffer.getvalue().rstrip("\n")
