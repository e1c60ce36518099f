# cashflow/outputs/csv_output.py

import csv
import logging
import os
from cashflow.outputs.base import BaseOutput

logger = logging.getLogger(__name__)

HEADER = ['date', 'description', 'amount', 'balance_after', 'one_time']


class CSVOutput(BaseOutput):
    """
    Writes a projection ledger to Projection<start date>.csv, one row per
    projected transaction in ledger order.
    """
    def __init__(self, config):
        self.config     = config
        self.output_dir = config.get('output_dir', 'data')
        os.makedirs(self.output_dir, exist_ok=True)

    def write(self, projection):
        filename = f"Projection{projection.start_date.isoformat()}.csv"
        out_path = os.path.join(self.output_dir, filename)

        with open(out_path, 'w', newline='') as f:
            writer = csv.writer(f)
            writer.writerow(HEADER)
            for row in projection.ledger:
                writer.writerow([
                    row.date.isoformat(),
                    row.description,
                    str(row.amount),
                    str(row.balance_after),
                    'yes' if row.is_one_time else 'no',
                ])

        logger.info("Written %d projected transactions to %s", len(projection.ledger), out_path)
        return out_path
