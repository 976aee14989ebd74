import os
from decimal import Decimal

# Currency precision: amounts carry two decimal places (cents).
CURRENCY_EXPONENT = 2
MINOR_UNITS_PER_UNIT = 10 ** CURRENCY_EXPONENT

# Upper bound for a single expense accepted over the API.
MAX_EXPENSE_AMOUNT = Decimal("1000000000")

HOST = os.environ.get("SETTLE_HOST", "0.0.0.0")
PORT = int(os.environ.get("SETTLE_PORT", "5000"))
LOG_LEVEL = os.environ.get("SETTLE_LOG_LEVEL", "INFO").upper()
