import logging
from datetime import datetime
from typing import Dict, List, Optional

from models import Expense, ExpenseCreate, Group, LedgerEntry

logger = logging.getLogger(__name__)


class InMemoryStorage:
    """Per-group append-only ledger of expenses and settlement resets."""

    def __init__(self):
        self.groups: Dict[str, Group] = {}
        self.entries: Dict[str, List[LedgerEntry]] = {}

    def create_group(self, group: Group) -> Group:
        self.groups[group.id] = group
        self.entries[group.id] = []
        logger.info("Created group %s", group.id)
        return group

    def get_group(self, group_id: str) -> Optional[Group]:
        return self.groups.get(group_id)

    def group_exists(self, group_id: str) -> bool:
        return group_id in self.groups

    def add_expense(self,
                    group_id: str,
                    payload: ExpenseCreate,
                    created_at: Optional[datetime] = None) -> LedgerEntry:
        participants = list(payload.participants)
        if not participants:
            participants = self.get_members(group_id)
        if payload.payer not in participants:
            participants.append(payload.payer)

        entry = LedgerEntry(group_id=group_id,
                            payer=payload.payer,
                            amount=payload.amount,
                            participants=participants,
                            description=payload.description)
        if created_at is not None:
            entry.created_at = created_at

        self.entries[group_id].append(entry)
        logger.info("Added expense %s to group %s", entry.id, group_id)
        return entry

    def clear_settlements(self,
                          group_id: str,
                          created_at: Optional[datetime] = None) -> LedgerEntry:
        entry = LedgerEntry(group_id=group_id,
                            kind='reset',
                            description='Settlements cleared')
        if created_at is not None:
            entry.created_at = created_at

        self.entries[group_id].append(entry)
        logger.info("Cleared settlements for group %s", group_id)
        return entry

    def get_anchor(self, group_id: str) -> Optional[datetime]:
        resets = [e.created_at for e in self.entries[group_id]
                  if e.kind == 'reset']
        return max(resets) if resets else None

    def get_expense_entries(self, group_id: str) -> List[LedgerEntry]:
        return [e for e in self.entries[group_id] if e.kind == 'expense']

    def get_active_entries(self, group_id: str) -> List[LedgerEntry]:
        anchor = self.get_anchor(group_id)
        return [
            e for e in self.get_expense_entries(group_id)
            if anchor is None or e.created_at >= anchor
        ]

    def get_active_expenses(self, group_id: str) -> List[Expense]:
        return [e.to_expense() for e in self.get_active_entries(group_id)]

    def get_members(self, group_id: str) -> List[str]:
        members = set()
        for entry in self.entries[group_id]:
            if entry.payer:
                members.add(entry.payer)
            members.update(p for p in entry.participants if p)
        return sorted(members)


storage = InMemoryStorage()
