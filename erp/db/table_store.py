"""
Table store accessor: the only component that issues SQL.

A table's schema is its header, the ordered list of its column names. Records are plain dicts keyed
by header names; a row's position is its primary-key value.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from sqlalchemy import String, Table, delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

import erp.core.models  # noqa: F401  registers tables on Base.metadata
from erp.core.exceptions import ConflictError, NotFoundError, ValidationError
from erp.db.session import Base

Record = Dict[str, Any]
OrderBy = Union[str, Iterable[str], None]


def _empty_value(column) -> Any:
    default = column.default
    if default is not None and getattr(default, "is_scalar", False):
        return default.arg
    if isinstance(column.type, String):
        return ""
    return None


class TableStore:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ----- Schema -----

    def get(self, table_name: str) -> Table:
        table = Base.metadata.tables.get(table_name)
        if table is None:
            raise NotFoundError(f"{table_name} table not found")
        return table

    def header(self, table_name: str) -> List[str]:
        return [c.name for c in self.get(table_name).columns]

    def key_column(self, table_name: str) -> str:
        return list(self.get(table_name).primary_key.columns)[0].name

    def tables(self) -> List[str]:
        return list(Base.metadata.tables.keys())

    def serialize(self, table_name: str, record: Record) -> Record:
        """Map every header name to the record's field; absent fields get the column's empty value."""
        table = self.get(table_name)
        unknown = sorted(set(record) - set(table.columns.keys()))
        if unknown:
            raise ValidationError(f"Unknown fields for {table_name}: {', '.join(unknown)}")
        row: Record = {}
        for column in table.columns:
            value = record.get(column.name)
            row[column.name] = _empty_value(column) if value is None else value
        return row

    def _column(self, table: Table, column: str):
        if column not in table.columns:
            raise ValidationError(f"Unknown column {column} for {table.name}")
        return table.columns[column]

    def _where(self, stmt, table: Table, filters: Optional[Dict[str, Any]]):
        for key, value in (filters or {}).items():
            if value is None:
                continue
            col = self._column(table, key)
            if isinstance(value, (list, tuple, set)):
                stmt = stmt.where(col.in_(list(value)))
            else:
                stmt = stmt.where(col == value)
        return stmt

    def _order(self, stmt, table: Table, order_by: OrderBy):
        if not order_by:
            return stmt
        names = [order_by] if isinstance(order_by, str) else list(order_by)
        for name in names:
            if name.startswith("-"):
                stmt = stmt.order_by(self._column(table, name[1:]).desc())
            else:
                stmt = stmt.order_by(self._column(table, name))
        return stmt

    def _guard_append_only(self, table: Table) -> None:
        if table.info.get("append_only"):
            raise ConflictError(f"{table.name} is append-only")

    # ----- Reads -----

    async def find_by_key(
        self,
        table_name: str,
        column: str,
        value: Any,
        *,
        for_update: bool = False,
    ) -> Optional[Tuple[Record, Any]]:
        """First row whose `column` equals `value`, with its position, or None."""
        table = self.get(table_name)
        stmt = select(table).where(self._column(table, column) == value).limit(1)
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self.db.execute(stmt)).mappings().first()
        if row is None:
            return None
        record = dict(row)
        return record, record[self.key_column(table_name)]

    async def find_one(self, table_name: str, filters: Dict[str, Any], *, for_update: bool = False) -> Optional[Record]:
        table = self.get(table_name)
        stmt = self._where(select(table), table, filters).limit(1)
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self.db.execute(stmt)).mappings().first()
        return dict(row) if row is not None else None

    async def find_all(
        self,
        table_name: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: OrderBy = None,
    ) -> List[Record]:
        table = self.get(table_name)
        stmt = self._order(self._where(select(table), table, filters), table, order_by)
        result = await self.db.execute(stmt)
        return [dict(r) for r in result.mappings().all()]

    async def count(self, table_name: str, filters: Optional[Dict[str, Any]] = None) -> int:
        table = self.get(table_name)
        stmt = self._where(select(func.count()).select_from(table), table, filters)
        return (await self.db.execute(stmt)).scalar_one()

    # ----- Writes -----

    async def insert(self, table_name: str, record: Record) -> Record:
        table = self.get(table_name)
        row = self.serialize(table_name, record)
        try:
            await self.db.execute(insert(table).values(**row))
        except IntegrityError as e:
            raise ConflictError(f"Duplicate or conflicting row in {table_name}") from e
        return row

    async def update_at(self, table_name: str, position: Any, record: Record) -> Record:
        """Rewrite the whole row at `position` from `record`."""
        table = self.get(table_name)
        self._guard_append_only(table)
        row = self.serialize(table_name, record)
        key = table.columns[self.key_column(table_name)]
        try:
            result = await self.db.execute(update(table).where(key == position).values(**row))
        except IntegrityError as e:
            raise ConflictError(f"Duplicate or conflicting row in {table_name}") from e
        if result.rowcount == 0:
            raise NotFoundError(f"No row at {position} in {table_name}")
        return row

    async def delete_at(self, table_name: str, position: Any) -> None:
        table = self.get(table_name)
        self._guard_append_only(table)
        key = table.columns[self.key_column(table_name)]
        result = await self.db.execute(delete(table).where(key == position))
        if result.rowcount == 0:
            raise NotFoundError(f"No row at {position} in {table_name}")
