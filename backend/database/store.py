"""
Entity store: the persistence collaborator used by every entity service.

Each EntityStore wraps one table and exposes the small document-style API
the services rely on (find / count / find_one / update / delete plus the
atomic add-to-set and pull operators on reference-set columns).

Rows are returned as plain dicts ready for JSON: UUIDs as strings, dates
and timestamps as ISO-8601 strings. Secret columns (the password hash) are
only selected when a caller asks for them explicitly.

Every method takes an optional cursor. Without one the call runs in its own
transaction; with one it joins the caller's transaction (see transaction()).
"""

import uuid
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

from psycopg2 import sql

from backend.common.errors import ValidationError
from backend.database.db_connection import get_db

Record = Dict[str, Any]


def parse_id(value: Any, field: str = "id") -> uuid.UUID:
    """
    Convert an incoming identifier to a UUID.

    Raises:
        ValidationError: If the value is not a well-formed id.
    """
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        raise ValidationError(f"Invalid {field}: {value!r}", fields=[field])


def is_id(value: Any) -> bool:
    try:
        parse_id(value)
    except ValidationError:
        return False
    return True


def _to_json_value(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, list):
        return [_to_json_value(v) for v in value]
    return value


@contextmanager
def transaction() -> Iterator[Any]:
    """
    Open a connection and yield a cursor bound to a single transaction.

    Commits when the block exits normally, rolls back on any exception,
    and always closes the connection.
    """
    conn = get_db()
    try:
        with conn:
            with conn.cursor() as cur:
                yield cur
    finally:
        conn.close()


@contextmanager
def _cursor(cur=None) -> Iterator[Any]:
    if cur is not None:
        yield cur
    else:
        with transaction() as own:
            yield own


class EntityStore:
    """
    Table-backed collection of records of one entity type.

    Args:
        table (str): Table name.
        columns (Sequence[str]): Public columns, returned by every read.
        secret_columns (Sequence[str]): Columns never returned unless requested.
        reference_fields (Sequence[str]): UUID[] columns holding reference sets.
    """

    def __init__(
        self,
        table: str,
        columns: Sequence[str],
        secret_columns: Sequence[str] = (),
        reference_fields: Sequence[str] = (),
    ):
        self.table = table
        self.columns = list(columns)
        self.secret_columns = list(secret_columns)
        self.reference_fields = list(reference_fields)

    def __repr__(self) -> str:
        return f"EntityStore({self.table!r})"

    def transaction(self):
        """Cursor bound to one transaction; see the module-level transaction()."""
        return transaction()

    # --- SQL BUILDING ---

    def _check_columns(self, names: Iterable[str]) -> None:
        known = set(self.columns) | set(self.secret_columns)
        unknown = [n for n in names if n not in known]
        if unknown:
            raise ValueError(f"Unknown column(s) for {self.table}: {', '.join(unknown)}")

    def _select_list(self, with_secrets: bool = False, columns: Optional[Sequence[str]] = None) -> sql.Composed:
        names = list(columns) if columns else list(self.columns)
        if with_secrets:
            names += self.secret_columns
        return sql.SQL(", ").join(sql.Identifier(n) for n in names)

    def _param(self, column: str, value: Any) -> Any:
        if column == "id":
            return parse_id(value)
        if column in self.reference_fields:
            return [parse_id(v, column) for v in value]
        return value

    def _where(self, filters: Optional[Dict[str, Any]]):
        """
        Build a WHERE clause from an equality filter.

        A reference-set column in the filter matches rows whose set contains
        the given id.
        """
        if not filters:
            return sql.SQL(""), []
        self._check_columns(filters)
        clauses = []
        params = []
        for column, value in filters.items():
            if column in self.reference_fields:
                clauses.append(sql.SQL("%s = ANY({})").format(sql.Identifier(column)))
                params.append(parse_id(value, column))
            else:
                clauses.append(sql.SQL("{} = %s").format(sql.Identifier(column)))
                params.append(self._param(column, value))
        return sql.SQL(" WHERE ") + sql.SQL(" AND ").join(clauses), params

    def _record(self, row: Optional[Record]) -> Optional[Record]:
        if row is None:
            return None
        return {key: _to_json_value(value) for key, value in dict(row).items()}

    # --- READS ---

    def find(
        self,
        filters: Optional[Dict[str, Any]] = None,
        skip: int = 0,
        limit: Optional[int] = None,
        cur=None,
    ) -> List[Record]:
        """Return matching records in insertion order, windowed by skip/limit."""
        where, params = self._where(filters)
        query = sql.SQL("SELECT {cols} FROM {table}{where} ORDER BY created_at, id OFFSET %s").format(
            cols=self._select_list(), table=sql.Identifier(self.table), where=where
        )
        params.append(skip)
        if limit is not None:
            query += sql.SQL(" LIMIT %s")
            params.append(limit)
        with _cursor(cur) as c:
            c.execute(query, params)
            return [self._record(row) for row in c.fetchall()]

    def count(self, filters: Optional[Dict[str, Any]] = None, cur=None) -> int:
        where, params = self._where(filters)
        query = sql.SQL("SELECT COUNT(*) AS total FROM {table}{where}").format(
            table=sql.Identifier(self.table), where=where
        )
        with _cursor(cur) as c:
            c.execute(query, params)
            return int(c.fetchone()["total"])

    def find_one(self, filters: Dict[str, Any], with_secrets: bool = False, cur=None) -> Optional[Record]:
        where, params = self._where(filters)
        query = sql.SQL("SELECT {cols} FROM {table}{where} LIMIT 1").format(
            cols=self._select_list(with_secrets), table=sql.Identifier(self.table), where=where
        )
        with _cursor(cur) as c:
            c.execute(query, params)
            return self._record(c.fetchone())

    def find_by_id(self, record_id: Any, cur=None) -> Optional[Record]:
        return self.find_one({"id": record_id}, cur=cur)

    def find_by_ids(self, ids: Sequence[Any], columns: Optional[Sequence[str]] = None, cur=None) -> List[Record]:
        """Fetch the records for a list of ids; missing ids are skipped."""
        if not ids:
            return []
        if columns:
            self._check_columns(columns)
        query = sql.SQL("SELECT {cols} FROM {table} WHERE id = ANY(%s)").format(
            cols=self._select_list(columns=columns), table=sql.Identifier(self.table)
        )
        with _cursor(cur) as c:
            c.execute(query, ([parse_id(i) for i in ids],))
            return [self._record(row) for row in c.fetchall()]

    def exists(self, record_id: Any, cur=None) -> bool:
        query = sql.SQL("SELECT 1 FROM {table} WHERE id = %s").format(table=sql.Identifier(self.table))
        with _cursor(cur) as c:
            c.execute(query, (parse_id(record_id),))
            return c.fetchone() is not None

    def populate(
        self,
        records: List[Record],
        field: str,
        target: "EntityStore",
        columns: Optional[Sequence[str]] = None,
        cur=None,
    ) -> List[Record]:
        """
        Replace the ids in `field` of each record by the referenced records.

        References that no longer resolve (hard-deleted targets) are dropped
        from the populated list.
        """
        wanted = []
        for record in records:
            for ref in record.get(field) or []:
                if ref not in wanted:
                    wanted.append(ref)
        found = {r["id"]: r for r in target.find_by_ids(wanted, columns=columns, cur=cur)}
        for record in records:
            record[field] = [found[ref] for ref in record.get(field) or [] if ref in found]
        return records

    # --- WRITES ---

    def insert(self, data: Dict[str, Any], cur=None) -> Record:
        self._check_columns(data)
        names = list(data)
        query = sql.SQL("INSERT INTO {table} ({names}) VALUES ({values}) RETURNING {cols}").format(
            table=sql.Identifier(self.table),
            names=sql.SQL(", ").join(sql.Identifier(n) for n in names),
            values=sql.SQL(", ").join(sql.Placeholder() for _ in names),
            cols=self._select_list(),
        )
        with _cursor(cur) as c:
            c.execute(query, [self._param(n, data[n]) for n in names])
            return self._record(c.fetchone())

    def find_one_and_update(self, filters: Dict[str, Any], patch: Dict[str, Any], cur=None) -> Optional[Record]:
        """Apply `patch` to the first matching record and return it updated."""
        if not patch:
            return self.find_one(filters, cur=cur)
        self._check_columns(patch)
        where, where_params = self._where(filters)
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(column)) for column in patch
        )
        query = sql.SQL(
            "UPDATE {table} SET {assignments} WHERE id = (SELECT id FROM {table}{where} LIMIT 1) RETURNING {cols}"
        ).format(
            table=sql.Identifier(self.table), assignments=assignments, where=where, cols=self._select_list()
        )
        params = [self._param(column, value) for column, value in patch.items()] + where_params
        with _cursor(cur) as c:
            c.execute(query, params)
            return self._record(c.fetchone())

    def find_by_id_and_update(self, record_id: Any, patch: Dict[str, Any], cur=None) -> Optional[Record]:
        return self.find_one_and_update({"id": record_id}, patch, cur=cur)

    def find_one_and_delete(self, filters: Dict[str, Any], cur=None) -> Optional[Record]:
        where, params = self._where(filters)
        query = sql.SQL(
            "DELETE FROM {table} WHERE id = (SELECT id FROM {table}{where} LIMIT 1) RETURNING {cols}"
        ).format(table=sql.Identifier(self.table), where=where, cols=self._select_list())
        with _cursor(cur) as c:
            c.execute(query, params)
            return self._record(c.fetchone())

    def find_by_id_and_delete(self, record_id: Any, cur=None) -> Optional[Record]:
        return self.find_one_and_delete({"id": record_id}, cur=cur)

    # --- REFERENCE-SET OPERATORS ---

    def _reference(self, field: str) -> sql.Identifier:
        if field not in self.reference_fields:
            raise ValueError(f"{field} is not a reference set of {self.table}")
        return sql.Identifier(field)

    def add_to_set(self, record_id: Any, field: str, value: Any, cur=None) -> Optional[Record]:
        """Append `value` to the reference set unless it is already present."""
        query = sql.SQL(
            "UPDATE {table} SET {f} = CASE WHEN %s = ANY({f}) THEN {f} ELSE array_append({f}, %s) END "
            "WHERE id = %s RETURNING {cols}"
        ).format(table=sql.Identifier(self.table), f=self._reference(field), cols=self._select_list())
        ref = parse_id(value, field)
        with _cursor(cur) as c:
            c.execute(query, (ref, ref, parse_id(record_id)))
            return self._record(c.fetchone())

    def add_to_set_many(self, record_ids: Sequence[Any], field: str, value: Any, cur=None) -> int:
        """add_to_set over several records; returns how many rows matched."""
        if not record_ids:
            return 0
        query = sql.SQL(
            "UPDATE {table} SET {f} = CASE WHEN %s = ANY({f}) THEN {f} ELSE array_append({f}, %s) END "
            "WHERE id = ANY(%s)"
        ).format(table=sql.Identifier(self.table), f=self._reference(field))
        ref = parse_id(value, field)
        with _cursor(cur) as c:
            c.execute(query, (ref, ref, [parse_id(i) for i in record_ids]))
            return c.rowcount

    def pull(self, record_id: Any, field: str, value: Any, cur=None) -> Optional[Record]:
        """Remove `value` from the reference set; absent values are a no-op."""
        query = sql.SQL("UPDATE {table} SET {f} = array_remove({f}, %s) WHERE id = %s RETURNING {cols}").format(
            table=sql.Identifier(self.table), f=self._reference(field), cols=self._select_list()
        )
        with _cursor(cur) as c:
            c.execute(query, (parse_id(value, field), parse_id(record_id)))
            return self._record(c.fetchone())
