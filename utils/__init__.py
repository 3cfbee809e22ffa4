"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, today_utc, to_utc, unix_millis
from utils.user_context import (
    get_current_user_id,
    peek_current_user_id,
    set_current_user_id,
    clear_current_user_id,
    user_context,
)
from utils.money import round_money, format_currency
