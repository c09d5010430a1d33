import os
from typing import Iterable

import pyarrow as pa
import pyarrow.parquet as pq


def write_rows_parquet(rows_iter: Iterable[dict], path: str) -> int:
  rows = list(rows_iter)
  if not rows:
    return 0
  os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
  table = pa.Table.from_pylist(rows)
  pq.write_table(table, path, compression="snappy")
  return table.num_rows
