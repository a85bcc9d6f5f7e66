import json
import os

from . import paths


def append_jsonl(filename: str, record: dict) -> None:
    """Append one JSON record to `filename` under the logs directory.

    Binary append with a single LF terminator keeps lines byte-identical
    across platforms (no CRLF translation).
    """
    base = paths.logs_dir()
    os.makedirs(base, exist_ok=True)
    path = os.path.join(base, os.path.basename(str(filename)))
    line = (json.dumps(record, ensure_ascii=False, sort_keys=True) + "\n").encode("utf-8")
    with open(path, "ab") as f:
        f.write(line)
