# cashflow/outputs/excel_output.py

"""Excel output module backed by XlsxWriter.

The workbook holds a ``Ledger`` worksheet with one row per projected
transaction and a ``Summary`` worksheet with the anchor balance, the
period total and the lowest projected balance.
"""

from __future__ import annotations

import logging
import os
import xlsxwriter

from cashflow.outputs.base import BaseOutput

logger = logging.getLogger(__name__)


class ExcelOutput(BaseOutput):
    """Generate a local Excel workbook for a projection."""

    LEDGER = "Ledger"
    SUMMARY = "Summary"
    HEADERS = ["date", "description", "amount", "balance_after", "one_time"]

    def __init__(self, config: dict):
        self.config = config
        self.output_dir = config.get("output_dir", "data")
        os.makedirs(self.output_dir, exist_ok=True)

    def write(self, projection):
        out_path = os.path.join(
            self.output_dir, f"Projection{projection.start_date.isoformat()}.xlsx"
        )
        workbook = xlsxwriter.Workbook(out_path)
        amount_fmt = workbook.add_format({"num_format": "#,##0.00"})

        ws = workbook.add_worksheet(self.LEDGER)
        ws.freeze_panes(1, 0)
        ws.write_row(0, 0, self.HEADERS)
        for row_idx, row in enumerate(self._ledger_rows(projection), start=1):
            ws.write_string(row_idx, 0, row[0])
            ws.write_string(row_idx, 1, row[1])
            ws.write_number(row_idx, 2, row[2], amount_fmt)
            ws.write_number(row_idx, 3, row[3], amount_fmt)
            ws.write_boolean(row_idx, 4, row[4])
        ws.set_column(1, 1, 30)
        ws.set_column(2, 3, 14, amount_fmt)
        if projection.ledger:
            ws.add_table(0, 0, len(projection.ledger), len(self.HEADERS) - 1, {
                "columns": [{"header": h} for h in self.HEADERS]
            })

        summary_ws = workbook.add_worksheet(self.SUMMARY)
        summary_ws.set_column(0, 0, 22)
        summary_ws.set_column(1, 1, 14, amount_fmt)
        for row_idx, (label, value) in enumerate(self._summary_rows(projection)):
            summary_ws.write_string(row_idx, 0, label)
            if isinstance(value, float):
                summary_ws.write_number(row_idx, 1, value, amount_fmt)
            else:
                summary_ws.write_string(row_idx, 1, value)

        workbook.close()
        logger.info("Written Excel workbook %s", out_path)
        return out_path

    def _ledger_rows(self, projection):
        # XlsxWriter stores numbers as doubles; the ledger itself stays exact.
        return [
            [
                row.date.isoformat(),
                row.description,
                float(row.amount),
                float(row.balance_after),
                row.is_one_time,
            ]
            for row in projection.ledger
        ]

    def _summary_rows(self, projection):
        return [
            ("Anchor date", projection.anchor.date.isoformat()),
            ("Anchor balance", float(projection.anchor.balance)),
            ("Start date", projection.start_date.isoformat()),
            ("Days", str(projection.days)),
            ("Period total", float(projection.period_total)),
            ("Closing balance", float(projection.closing_balance)),
            ("Minimum balance", float(projection.minimum.balance)),
            ("Minimum balance date", projection.minimum.date.isoformat()),
        ]
