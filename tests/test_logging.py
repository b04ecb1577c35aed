"""Tests for structured logging functionality."""

from __future__ import annotations

import json
import logging
import logging.handlers
import sys
from decimal import Decimal

import pytest

from pocketledger.config import BaseConfig
from pocketledger.domain.errors import OverRepayment
from pocketledger.logging_config import JSONFormatter, get_logger, setup_logging
from pocketledger.services import loans
from pocketledger.services.transfers import transfer


def _record(level=logging.INFO, msg="Test message", exc_info=None):
    record = logging.LogRecord(
        name="test.logger",
        level=level,
        pathname="test.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )
    record.module = "test_module"
    record.funcName = "test_function"
    return record


def test_json_formatter():
    """Test that JSONFormatter correctly formats log records."""
    formatted = JSONFormatter().format(_record())
    log_data = json.loads(formatted)

    assert log_data["level"] == "INFO"
    assert log_data["logger"] == "test.logger"
    assert log_data["message"] == "Test message"
    assert log_data["module"] == "test_module"
    assert log_data["function"] == "test_function"
    assert log_data["line"] == 42
    assert "timestamp" in log_data
    assert "extra" not in log_data


def test_json_formatter_with_exception():
    """Test that JSONFormatter correctly handles exceptions."""
    try:
        raise ValueError("Test error")
    except ValueError:
        exc_info = sys.exc_info()

    log_data = json.loads(JSONFormatter().format(_record(logging.ERROR, "Error occurred", exc_info)))

    assert log_data["exception"]["type"] == "ValueError"
    assert "Test error" in log_data["exception"]["message"]
    assert log_data["exception"]["traceback"] is not None


def test_json_formatter_serialises_extra_fields():
    """Decimal amounts passed via extra= are rendered as strings."""

    record = _record()
    record.amount = Decimal("12.50")
    record.limit = Decimal("1E+2")
    record.account_id = 3

    log_data = json.loads(JSONFormatter().format(record))

    assert log_data["extra"] == {"amount": "12.50", "limit": "100", "account_id": 3}


def test_setup_logging(tmp_path):
    """Test that logging setup creates log files with rotation."""
    config = BaseConfig()
    config.DATA_DIR = tmp_path
    config.DEV_MODE = True

    logger = setup_logging(config)

    assert logger.name == "pocketledger"
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 2  # Console + File

    log_file = tmp_path / "logs" / "pocketledger.log"
    assert log_file.exists()

    get_logger("services.transfers").info("Transfer posted", extra={"amount": "5.00"})
    for handler in logger.handlers:
        handler.flush()

    lines = [line for line in log_file.read_text().splitlines() if line.strip()]
    entries = [json.loads(line) for line in lines]
    assert entries[0]["message"] == "Logging initialized"
    assert entries[-1]["logger"] == "pocketledger.services.transfers"
    assert entries[-1]["extra"] == {"amount": "5.00"}


def test_setup_logging_is_idempotent(tmp_path):
    config = BaseConfig()
    config.DATA_DIR = tmp_path

    setup_logging(config)
    logger = setup_logging(config)

    assert len(logger.handlers) == 2


def test_get_logger():
    """Test that get_logger returns properly namespaced loggers."""
    logger1 = get_logger("module1")
    logger2 = get_logger("module2")

    assert logger1.name == "pocketledger.module1"
    assert logger2.name == "pocketledger.module2"
    assert get_logger("pocketledger.services.loans").name == "pocketledger.services.loans"


@pytest.mark.parametrize("dev_mode", [True, False])
def test_logging_levels_by_mode(tmp_path, dev_mode):
    """Test that console logging level adjusts based on dev mode."""
    config = BaseConfig()
    config.DATA_DIR = tmp_path
    config.DEV_MODE = dev_mode

    logger = setup_logging(config)

    console_handler = next(
        handler
        for handler in logger.handlers
        if isinstance(handler, logging.StreamHandler)
        and not isinstance(handler, logging.handlers.RotatingFileHandler)
    )

    expected_level = logging.INFO if dev_mode else logging.WARNING
    assert console_handler.level == expected_level


def _logged(config, message):
    for handler in logging.getLogger("pocketledger").handlers:
        handler.flush()
    log_file = config.DATA_DIR / "logs" / "pocketledger.log"
    entries = [json.loads(line) for line in log_file.read_text().splitlines() if line.strip()]
    return [entry for entry in entries if entry["message"] == message]


def test_money_movements_log_amounts_and_ids(
    test_config, session_factory, user, account_factory, loan_factory, clock
):
    setup_logging(test_config)
    checking = account_factory(name="Checking", balance="100")
    savings = account_factory(name="Savings", balance="0")
    loan = loan_factory(principal="100")

    moved = transfer(
        session_factory,
        user_id=user.id,
        from_account_id=checking.id,
        to_account_id=savings.id,
        amount="12.5",
        clock=clock,
    )
    repayment = dict(
        session_factory=session_factory, user_id=user.id, loan_id=loan.id, account_id=checking.id
    )
    loans.repay(**repayment, amount="25", clock=clock)
    with pytest.raises(OverRepayment):
        loans.repay(**repayment, amount="80", clock=clock)

    (transfer_log,) = _logged(test_config, "Transfer posted")
    assert transfer_log["logger"] == "pocketledger.services.transfers"
    assert transfer_log["extra"] == {
        "transfer_ref": moved.transfer_ref,
        "from_account_id": checking.id,
        "to_account_id": savings.id,
        "amount": "12.50",
    }
    (repayment_log,) = _logged(test_config, "Loan repayment posted")
    assert repayment_log["extra"]["amount"] == "25.00"
    assert repayment_log["extra"]["loan_id"] == loan.id
    (rejected,) = _logged(test_config, "Repayment rejected")
    assert rejected["level"] == "WARNING"
    assert rejected["extra"]["amount"] == "80.00"
    assert Decimal(rejected["extra"]["remaining"]) == Decimal("75")
