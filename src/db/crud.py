# src/db/crud.py
# order, quote and contract services backed by the local store
from __future__ import annotations

import random
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence, Union

from db import models
from db.database import connect
from utils.config import get_settings
from utils.errors import NotFoundError, ValidationError
from utils.logger import get_logger
from utils.pure import normalize_date

_logger = get_logger(__name__)

_QUOTE_COLS = (
    "id, customer_id, customer_name, quote_number, date, expiry_date, "
    "tax_rate, terms, notes, status, sales_rep, review_notes"
)
_ORDER_COLS = (
    "id, order_number, customer_name, customer_email, status, shipping_address, "
    "order_date, expected_delivery, payment_method, notes"
)
_CONTRACT_COLS = (
    "id, quote_id, contract_number, customer_name, start_date, end_date, "
    "value, status, signed_date"
)


def _row_to_quote(row, lines: Sequence[models.LineItem]) -> models.Quote:
    return models.Quote(
        id=row["id"],
        customer_id=row["customer_id"],
        customer_name=row["customer_name"],
        quote_number=row["quote_number"],
        date=row["date"],
        expiry_date=row["expiry_date"],
        line_items=tuple(lines),
        tax_rate=float(row["tax_rate"]),
        terms=row["terms"],
        notes=row["notes"],
        status=row["status"],
        sales_rep=row["sales_rep"],
        review_notes=row["review_notes"],
        currency_precision=get_settings().currency_precision,
    )


def _row_to_line(row) -> models.LineItem:
    return models.LineItem(
        id=row["item_id"],
        description=row["description"],
        quantity=row["quantity"],
        unit_price=row["unit_price"],
        currency_precision=get_settings().currency_precision,
    )


def _row_to_order(row, items: Sequence[models.OrderItem]) -> models.Order:
    return models.Order(
        id=row["id"],
        order_number=row["order_number"],
        customer_name=row["customer_name"] or "Guest Customer",
        customer_email=row["customer_email"],
        status=row["status"],
        items=tuple(items),
        shipping_address=row["shipping_address"] or "Not specified",
        order_date=row["order_date"],
        expected_delivery=row["expected_delivery"],
        payment_method=row["payment_method"],
        notes=row["notes"],
    )


def _row_to_order_item(row) -> models.OrderItem:
    return models.OrderItem(
        id=row["item_id"],
        name=row["name"],
        category=row["category"],
        description=row["description"],
        quantity=int(row["quantity"]),
        price=float(row["price"]),
        is_shipped=bool(row["is_shipped"]),
    )


def _row_to_contract(row) -> models.Contract:
    return models.Contract(
        id=row["id"],
        quote_id=row["quote_id"],
        contract_number=row["contract_number"],
        customer_name=row["customer_name"],
        start_date=row["start_date"],
        end_date=row["end_date"],
        value=float(row["value"]),
        status=row["status"],
        signed_date=row["signed_date"],
    )


# ---------------------------
# Quotes
# ---------------------------


async def _quote_lines(conn, quote_ids: List[str]) -> Dict[str, List[models.LineItem]]:
    lines: Dict[str, List[models.LineItem]] = {qid: [] for qid in quote_ids}
    if not quote_ids:
        return lines
    marks = ", ".join("?" * len(quote_ids))
    cur = await conn.execute(
        f"""
        SELECT quote_id, item_id, description, quantity, unit_price
        FROM quote_lines
        WHERE quote_id IN ({marks})
        ORDER BY quote_id, line_no;
        """,
        tuple(quote_ids),
    )
    rows = await cur.fetchall()
    await cur.close()
    for row in rows:
        lines[row["quote_id"]].append(_row_to_line(row))
    return lines


async def list_quotes() -> List[models.Quote]:
    """All quotes, newest first."""
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {_QUOTE_COLS} FROM quotes ORDER BY date DESC, id DESC;"
        )
        rows = await cur.fetchall()
        await cur.close()
        lines = await _quote_lines(conn, [r["id"] for r in rows])
    return [_row_to_quote(r, lines[r["id"]]) for r in rows]


async def get_quote(quote_id: str) -> Optional[models.Quote]:
    """Fetch a quote with its line items, or None."""
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {_QUOTE_COLS} FROM quotes WHERE id = ?;", (quote_id,)
        )
        row = await cur.fetchone()
        await cur.close()
        if not row:
            return None
        lines = await _quote_lines(conn, [quote_id])
    return _row_to_quote(row, lines[quote_id])


async def _generate_quote_id(conn) -> str:
    """Pick a quote id that isn't already in use."""
    while True:
        qid = f"Q-{random.randint(100000, 999999)}"
        cur = await conn.execute("SELECT 1 FROM quotes WHERE id = ?;", (qid,))
        exists = await cur.fetchone()
        await cur.close()
        if not exists:
            return qid


async def _write_lines(conn, quote_id: str, items: Sequence[models.LineItem]) -> None:
    await conn.execute("DELETE FROM quote_lines WHERE quote_id = ?;", (quote_id,))
    await conn.executemany(
        """
        INSERT INTO quote_lines(quote_id, line_no, item_id, description, quantity, unit_price)
        VALUES (?, ?, ?, ?, ?, ?);
        """,
        [
            (quote_id, n, it.id, it.description, it.quantity, it.unit_price)
            for n, it in enumerate(items, start=1)
        ],
    )


def _quote_params(quote: models.Quote) -> tuple:
    return (
        quote.customer_id,
        quote.customer_name,
        quote.quote_number,
        normalize_date(quote.date),
        normalize_date(quote.expiry_date),
        float(quote.tax_rate or 0),
        quote.terms,
        quote.notes,
        quote.status,
        quote.sales_rep,
        quote.review_notes,
    )


async def create_quote(quote: models.Quote) -> models.Quote:
    """
    Insert a new quote with its lines and return it as stored.
    A missing id is generated.
    """
    async with connect(writing=True) as conn:
        qid = quote.id or await _generate_quote_id(conn)
        await conn.execute(
            f"""
            INSERT INTO quotes({_QUOTE_COLS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (qid, *_quote_params(quote)),
        )
        await _write_lines(conn, qid, quote.line_items)
        await conn.commit()
    _logger.debug(f"Inserted quote {qid} with {len(quote.line_items)} lines")
    return await get_quote(qid)


async def update_quote(quote_id: str, quote: models.Quote) -> models.Quote:
    """Overwrite a quote and all of its lines. Raises NotFoundError if absent."""
    async with connect(writing=True) as conn:
        res = await conn.execute(
            """
            UPDATE quotes
            SET customer_id = ?, customer_name = ?, quote_number = ?, date = ?,
                expiry_date = ?, tax_rate = ?, terms = ?, notes = ?, status = ?,
                sales_rep = ?, review_notes = ?
            WHERE id = ?;
            """,
            (*_quote_params(quote), quote_id),
        )
        if res.rowcount == 0:
            raise NotFoundError(f"Quote {quote_id} not found.")
        await _write_lines(conn, quote_id, quote.line_items)
        await conn.commit()
    return await get_quote(quote_id)


async def update_quote_status(
    quote_id: str, status: str, review_notes: Optional[str] = None
) -> models.Quote:
    """Set a quote's status (any status may follow any other)."""
    if status not in models.QUOTE_STATUSES:
        raise ValidationError(f"Unknown quote status: {status!r}")
    async with connect(writing=True) as conn:
        if review_notes is None:
            res = await conn.execute(
                "UPDATE quotes SET status = ? WHERE id = ?;", (status, quote_id)
            )
        else:
            res = await conn.execute(
                "UPDATE quotes SET status = ?, review_notes = ? WHERE id = ?;",
                (status, review_notes, quote_id),
            )
        if res.rowcount == 0:
            raise NotFoundError(f"Quote {quote_id} not found.")
        await conn.commit()
    _logger.info(f"Quote {quote_id} -> {status}")
    return await get_quote(quote_id)


# ---------------------------
# Contracts
# ---------------------------


async def list_contracts() -> List[models.Contract]:
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {_CONTRACT_COLS} FROM contracts ORDER BY id;"
        )
        rows = await cur.fetchall()
        await cur.close()
    return [_row_to_contract(r) for r in rows]


async def convert_quote_to_contract(contract: models.Contract) -> models.Contract:
    """
    Mark the source quote active_contract and insert the contract in one
    transaction. Either both writes land or neither does.
    """
    async with connect(writing=True) as conn:
        res = await conn.execute(
            "UPDATE quotes SET status = 'active_contract' "
            "WHERE id = ? AND status != 'active_contract';",
            (contract.quote_id,),
        )
        if res.rowcount == 0:
            cur = await conn.execute(
                "SELECT 1 FROM quotes WHERE id = ?;", (contract.quote_id,)
            )
            found = await cur.fetchone()
            await cur.close()
            if found is None:
                raise NotFoundError(f"Quote {contract.quote_id} not found.")
            raise ValidationError(
                f"Quote {contract.quote_id} is already an active contract."
            )
        await conn.execute(
            f"INSERT INTO contracts({_CONTRACT_COLS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);",
            (
                contract.id,
                contract.quote_id,
                contract.contract_number,
                contract.customer_name,
                contract.start_date,
                contract.end_date,
                contract.value,
                contract.status,
                contract.signed_date,
            ),
        )
        await conn.commit()
    _logger.info(
        f"Quote {contract.quote_id} converted to contract {contract.contract_number}"
    )
    return contract


# ---------------------------
# Orders
# ---------------------------


async def _order_items(conn, order_ids: List[str]) -> Dict[str, List[models.OrderItem]]:
    items: Dict[str, List[models.OrderItem]] = {oid: [] for oid in order_ids}
    if not order_ids:
        return items
    marks = ", ".join("?" * len(order_ids))
    cur = await conn.execute(
        f"""
        SELECT order_id, item_id, name, category, description, quantity, price, is_shipped
        FROM order_items
        WHERE order_id IN ({marks})
        ORDER BY order_id, line_no;
        """,
        tuple(order_ids),
    )
    rows = await cur.fetchall()
    await cur.close()
    for row in rows:
        items[row["order_id"]].append(_row_to_order_item(row))
    return items


async def get_orders(search: Optional[str] = None) -> List[models.Order]:
    """
    All orders, newest first. With `search`, keep only orders whose customer
    name, order number, email or status contains it (case-insensitive).
    """
    where, params = "", ()
    term = (search or "").strip().lower()
    if term:
        like = f"%{term}%"
        where = """
            WHERE LOWER(customer_name) LIKE ? OR LOWER(order_number) LIKE ?
               OR LOWER(customer_email) LIKE ? OR LOWER(status) LIKE ?
        """
        params = (like, like, like, like)
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {_ORDER_COLS} FROM orders {where} ORDER BY order_date DESC, id;",
            params,
        )
        rows = await cur.fetchall()
        await cur.close()
        items = await _order_items(conn, [r["id"] for r in rows])
    return [_row_to_order(r, items[r["id"]]) for r in rows]


async def get_order(order_id: str) -> Optional[models.Order]:
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {_ORDER_COLS} FROM orders WHERE id = ?;", (order_id,)
        )
        row = await cur.fetchone()
        await cur.close()
        if not row:
            return None
        items = await _order_items(conn, [order_id])
    return _row_to_order(row, items[order_id])


async def update_order_status(order_id: str, status: str) -> models.Order:
    """
    Persist a new order status. Moving to shipped or delivered also marks
    every item shipped, so the stored flags agree with the status.
    """
    if status not in models.ORDER_STATUSES:
        raise ValidationError(f"Unknown order status: {status!r}")
    async with connect(writing=True) as conn:
        res = await conn.execute(
            "UPDATE orders SET status = ? WHERE id = ?;", (status, order_id)
        )
        if res.rowcount == 0:
            raise NotFoundError(f"Order {order_id} not found.")
        if status in ("shipped", "delivered"):
            await conn.execute(
                "UPDATE order_items SET is_shipped = 1 WHERE order_id = ?;",
                (order_id,),
            )
        await conn.commit()
    _logger.info(f"Order {order_id} -> {status}")
    return await get_order(order_id)


async def update_expected_delivery(
    order_id: str, when: Union[str, date, datetime]
) -> models.Order:
    async with connect(writing=True) as conn:
        res = await conn.execute(
            "UPDATE orders SET expected_delivery = ? WHERE id = ?;",
            (normalize_date(when), order_id),
        )
        if res.rowcount == 0:
            raise NotFoundError(f"Order {order_id} not found.")
        await conn.commit()
    return await get_order(order_id)
