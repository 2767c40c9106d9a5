# ============================================================================
# tests/unit/test_logging.py
# ============================================================================

import json
import logging
import sys

from procurement_ingestion.utils.logging import JsonFormatter, job_logger


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


def test_job_logger_stamps_ids():
    handler = ListHandler()
    logger = logging.getLogger("procurement_ingestion.tests.job")
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    try:
        job_logger(logger.name, "job-1", "doc-1").info("Extracting INV-1.pdf")
    finally:
        logger.removeHandler(handler)

    line = json.loads(JsonFormatter().format(handler.records[0]))
    assert line["message"] == "Extracting INV-1.pdf"
    assert line["job_id"] == "job-1"
    assert line["document_id"] == "doc-1"
    assert line["level"] == "INFO"
    assert "project_id" not in line


def test_exception_included():
    try:
        raise ValueError("bad page")
    except ValueError:
        record = logging.getLogger("x").makeRecord(
            "x", logging.ERROR, __file__, 1, "failed", None, exc_info=sys.exc_info()
        )

    line = json.loads(JsonFormatter().format(record))
    assert "ValueError: bad page" in line["exception"]
