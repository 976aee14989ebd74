from fastapi import FastAPI, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ValidationError
from typing import Any, Dict, List
import csv
import io
import logging
from urllib.parse import quote

import config
from models import (Balance, ExpenseCreate, Group, LedgerEntry,
                    SettlementSummary)
from storage import storage
from settlement import aggregate, simplify
from utils import format_currency, to_minor

logger = logging.getLogger(__name__)

app = FastAPI(title="Settle Up")


class GroupCreate(BaseModel):
    name: str


def _require_group(group_id: str) -> Group:
    group = storage.get_group(group_id)
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")
    return group


def _content_disposition(filename: str) -> str:
    fallback = "".join(
        c if c.isascii() and c.isprintable() and c not in '"\\' else "_"
        for c in filename)
    return (f"attachment; filename=\"{fallback}\"; "
            f"filename*=UTF-8''{quote(filename, safe='')}")


def _build_summary(group_id: str) -> SettlementSummary:
    expenses = storage.get_active_expenses(group_id)
    balances = aggregate(expenses)

    return SettlementSummary(
        group_id=group_id,
        anchor=storage.get_anchor(group_id),
        balances=[Balance(user_id=uid, amount=amount)
                  for uid, amount in balances.items()],
        settlements=simplify(balances))


@app.post("/groups")
async def create_group(payload: GroupCreate) -> Dict[str, str]:
    try:
        group = Group(name=payload.name)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    storage.create_group(group)
    return {"id": group.id, "name": group.name}


@app.post("/groups/{group_id}/expenses",
          response_model=LedgerEntry,
          status_code=201)
async def add_expense(group_id: str, payload: Dict[str, Any]):
    _require_group(group_id)

    try:
        expense = ExpenseCreate(**payload)
    except ValidationError as e:
        logger.info("Rejected expense for group %s: %s", group_id, e)
        raise HTTPException(status_code=400, detail=str(e))

    return storage.add_expense(group_id, expense)


@app.get("/groups/{group_id}/summary")
async def group_summary(group_id: str) -> Dict[str, List[LedgerEntry]]:
    _require_group(group_id)

    entries = sorted(storage.get_expense_entries(group_id),
                     key=lambda e: e.created_at,
                     reverse=True)
    return {"expenses": entries}


@app.get("/groups/{group_id}/balances")
async def group_balances(group_id: str) -> List[Balance]:
    _require_group(group_id)

    balances = aggregate(storage.get_active_expenses(group_id))
    return [Balance(user_id=uid, amount=amount)
            for uid, amount in balances.items()]


@app.get("/groups/{group_id}/settlements",
         response_model=SettlementSummary)
async def group_settlements(group_id: str):
    _require_group(group_id)
    return _build_summary(group_id)


@app.post("/groups/{group_id}/settlements/clear")
async def clear_settlements(group_id: str) -> Dict[str, str]:
    _require_group(group_id)

    storage.clear_settlements(group_id)
    return {"message": "Settlements cleared"}


@app.get("/groups/{group_id}/export/csv")
async def export_csv(group_id: str):
    group = _require_group(group_id)
    summary = _build_summary(group_id)

    output = io.StringIO()
    writer = csv.writer(output)

    writer.writerow(["Settle Up - group export"])
    writer.writerow([f"Group: {group.name}"])
    if summary.anchor:
        writer.writerow(
            [f"Since: {summary.anchor.strftime('%Y-%m-%d %H:%M')}"])
    writer.writerow([])

    writer.writerow(["EXPENSES"])
    writer.writerow(["Date", "Description", "Amount", "Payer", "Participants"])
    for entry in storage.get_active_entries(group_id):
        writer.writerow([
            entry.created_at.strftime('%Y-%m-%d'), entry.description or "",
            format_currency(to_minor(entry.amount)), entry.payer,
            ", ".join(entry.participants)
        ])
    writer.writerow([])

    writer.writerow(["BALANCES"])
    writer.writerow(["User", "Balance"])
    for balance in summary.balances:
        writer.writerow(
            [balance.user_id, format_currency(to_minor(balance.amount))])
    writer.writerow([])

    writer.writerow(["SETTLEMENTS"])
    writer.writerow(["From", "To", "Amount"])
    for settlement in summary.settlements:
        writer.writerow([
            settlement.from_user_id, settlement.to_user_id,
            format_currency(to_minor(settlement.amount))
        ])

    output.seek(0)

    return StreamingResponse(
        io.BytesIO(output.getvalue().encode('utf-8-sig')),
        media_type="text/csv",
        headers={
            "Content-Disposition": _content_disposition(
                f"settlements_{group.name.replace(' ', '_')}.csv")
        })


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=config.LOG_LEVEL)
    uvicorn.run(app, host=config.HOST, port=config.PORT)
