import logging
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from models import Balances, Expense, Settlement
from utils import Amount, to_major, to_minor

logger = logging.getLogger(__name__)


class SettlementInvariantError(AssertionError):
    """Raised when the engine's bookkeeping no longer adds up.

    This signals a programming defect, never bad input data.
    """


def compute_settlements(expenses: Sequence[Expense]) -> List[Settlement]:
    balances = aggregate(expenses)
    settlements = simplify(balances)

    logger.debug("Computed %d settlements for %d balances",
                 len(settlements), len(balances))
    return settlements


def aggregate(expenses: Iterable[Expense]) -> Balances:
    """Fold expenses into net balances per user.

    Every valid expense credits the payer with the full amount and debits
    each participant an equal share. Shares are computed in minor units;
    leftover minor units go one each to the first participants in sorted
    id order. Expenses without a payer, without participants, or with a
    non-positive amount are skipped.

    Returns only non-zero balances, ordered by user id.
    """
    balance_map: Dict[str, int] = {}
    skipped = 0

    for expense in expenses:
        participants = sorted({p for p in expense.participants if p})
        amount = expense.amount

        if not expense.payer or not participants \
                or not amount.is_finite() or amount <= 0:
            skipped += 1
            continue

        amount_minor = to_minor(amount)
        share_per_person, remainder = divmod(amount_minor, len(participants))

        balance_map[expense.payer] = \
            balance_map.get(expense.payer, 0) + amount_minor

        for i, participant in enumerate(participants):
            share = share_per_person
            if i < remainder:
                share += 1

            balance_map[participant] = balance_map.get(participant, 0) - share

    if skipped:
        logger.debug("Skipped %d invalid expenses", skipped)

    _check_zero_sum(balance_map, "after aggregation")

    return {
        user_id: to_major(balance_minor)
        for user_id, balance_minor in sorted(balance_map.items())
        if balance_minor != 0
    }


def simplify(balances: Mapping[str, Amount]) -> List[Settlement]:
    """Greedy largest-creditor / largest-debtor matching.

    Not guaranteed to reach the minimal number of transfers; it emits at
    most ``len(creditors) + len(debtors) - 1`` of them.
    """
    balance_map = {user_id: to_minor(amount)
                   for user_id, amount in balances.items()}
    _check_zero_sum(balance_map, "before simplification")

    creditors = _ranked((uid, b) for uid, b in balance_map.items() if b > 0)
    debtors = _ranked((uid, -b) for uid, b in balance_map.items() if b < 0)

    credit_left = [amount for _, amount in creditors]
    debt_left = [amount for _, amount in debtors]

    settlements = []

    i, j = 0, 0
    while i < len(creditors) and j < len(debtors):
        transfer_amount = min(credit_left[i], debt_left[j])

        if transfer_amount > 0:
            settlements.append(Settlement(
                from_user_id=debtors[j][0],
                to_user_id=creditors[i][0],
                amount=to_major(transfer_amount)
            ))

        credit_left[i] -= transfer_amount
        debt_left[j] -= transfer_amount

        if credit_left[i] == 0:
            i += 1
        if debt_left[j] == 0:
            j += 1

    if i != len(creditors) or j != len(debtors):
        raise SettlementInvariantError(
            f"Unsettled parties after matching: "
            f"{len(creditors) - i} creditors, {len(debtors) - j} debtors")

    return settlements


def balances_from_settlements(settlements: Iterable[Settlement]) -> Balances:
    """Net balances that the given transfers would settle."""
    balance_map: Dict[str, int] = {}

    for settlement in settlements:
        amount_minor = to_minor(settlement.amount)
        balance_map[settlement.from_user_id] = \
            balance_map.get(settlement.from_user_id, 0) - amount_minor
        balance_map[settlement.to_user_id] = \
            balance_map.get(settlement.to_user_id, 0) + amount_minor

    return {
        user_id: to_major(balance_minor)
        for user_id, balance_minor in sorted(balance_map.items())
        if balance_minor != 0
    }


def _ranked(entries: Iterable[Tuple[str, int]]) -> List[Tuple[str, int]]:
    # Largest amount first, ties by ascending id.
    return sorted(entries, key=lambda e: (-e[1], e[0]))


def _check_zero_sum(balance_map: Mapping[str, int], stage: str) -> None:
    total = sum(balance_map.values())
    if total != 0:
        raise SettlementInvariantError(
            f"Balances do not sum to zero ({stage}): {total} minor units")
