"""Utility functions for pledgeflow."""

from pledgeflow.utils.date_parser import parse_date, parse_datetime
from pledgeflow.utils.amount_parser import parse_amount

__all__ = ["parse_date", "parse_datetime", "parse_amount"]
