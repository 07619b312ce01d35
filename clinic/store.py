"""Row-level access to the clinic tables.

Every insert and update is committed on its own. Callers that need several
writes (the treatment workflow) get no transaction spanning them.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.inspection import inspect

from .errors import ClinicError, NotFound, PersistenceError
from .extensions import db


class TableStore:
    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        # Resolved per call so a store can outlive the request that created it.
        return self._session if self._session is not None else db.session

    def get(self, model, row_id):
        try:
            return self.session.get(model, row_id)
        except SQLAlchemyError as exc:
            current_app.logger.exception("Failed to load %s %s", model.__tablename__, row_id, exc_info=exc)
            raise PersistenceError(f"Could not load {model.__tablename__} {row_id}") from exc

    def select(self, model, order_by=None, **filters) -> list:
        """Return rows of ``model`` matching every filter.

        A list, tuple or set filter value matches any of its members.
        """
        query = self.session.query(model)
        for column_name, value in filters.items():
            column = getattr(model, column_name)
            if isinstance(value, (list, tuple, set, frozenset)):
                query = query.filter(column.in_(list(value)))
            else:
                query = query.filter(column == value)
        if order_by is not None:
            if not isinstance(order_by, (list, tuple)):
                order_by = [order_by]
            query = query.order_by(*order_by)
        try:
            return query.all()
        except SQLAlchemyError as exc:
            current_app.logger.exception("Failed to read %s", model.__tablename__, exc_info=exc)
            raise PersistenceError(f"Could not read {model.__tablename__}") from exc

    def insert(self, model, rows: list[dict]) -> list[int]:
        """Insert ``rows`` and return their assigned primary keys."""
        # Construction runs the model validators before anything is sent.
        records = [model(**row) for row in rows]
        if not records:
            return []
        try:
            self.session.add_all(records)
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            current_app.logger.exception("Failed to insert into %s", model.__tablename__, exc_info=exc)
            raise PersistenceError(f"Could not insert into {model.__tablename__}") from exc
        return [inspect(record).identity[0] for record in records]

    def update(self, model, row_id, values: dict):
        record = self.get(model, row_id)
        if record is None:
            raise NotFound(f"{model.__tablename__} {row_id} not found")
        try:
            for key, value in values.items():
                setattr(record, key, value)
        except ClinicError:
            self.session.rollback()
            raise
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            current_app.logger.exception("Failed to update %s %s", model.__tablename__, row_id, exc_info=exc)
            raise PersistenceError(f"Could not update {model.__tablename__} {row_id}") from exc
        return record
