# utils.py
import logging
import sys
from datetime import date, datetime, timedelta
from typing import Optional

from errors import FutureDateError, InvalidDateError


def setup_logging(verbose: bool = False):
    """配置全局日志 (输出到 stderr，stdout 只留给报告内容)"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def format_date(day: date) -> str:
    """date -> DD-MM-YYYY"""
    return day.strftime("%d-%m-%Y")


def validate_date(date_string: str, today: Optional[date] = None) -> date:
    """
    解析并校验用户输入的日期。
    支持 today / yesterday / DD-MM-YYYY / YYYY-MM-DD，不接受未来日期。
    """
    if not date_string or not date_string.strip():
        raise InvalidDateError("Date is required")

    today = today or date.today()
    value = date_string.strip().lower()

    if value == "today":
        return today
    if value == "yesterday":
        return today - timedelta(days=1)

    parsed: Optional[date] = None
    for fmt in ("%d-%m-%Y", "%Y-%m-%d"):
        try:
            parsed = datetime.strptime(value, fmt).date()
            break
        except ValueError:
            continue

    if parsed is None:
        raise InvalidDateError(
            f"Invalid date format: {date_string}. Use DD-MM-YYYY format."
        )
    if parsed > today:
        raise FutureDateError(f"Date cannot be in the future: {date_string}")
    return parsed
