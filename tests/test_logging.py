import json
import logging

from bizledger.core.config import settings
from bizledger.core.logging import LedgerJsonFormatter, setup_logging


def test_json_records_carry_service_fields():
    formatter = LedgerJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
    record = logging.LogRecord("bizledger.services", logging.INFO, __file__, 1, "Payment created", None, None)
    record.payment_number = "PAY-IN-2024-0001"

    payload = json.loads(formatter.format(record))

    assert payload["message"] == "Payment created"
    assert payload["level"] == "INFO"
    assert payload["service"] == settings.PROJECT_NAME
    assert payload["payment_number"] == "PAY-IN-2024-0001"
    assert "timestamp" in payload


def test_setup_logging_installs_one_handler():
    root = logging.getLogger()
    saved = root.handlers[:], root.level
    try:
        setup_logging("DEBUG", json_output=True)
        setup_logging("WARNING", json_output=False)

        assert len(root.handlers) == 1
        assert root.level == logging.WARNING
        assert not isinstance(root.handlers[0].formatter, LedgerJsonFormatter)
    finally:
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])
