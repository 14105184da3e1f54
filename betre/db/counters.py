"""SQL expressions for denormalized counters.

Counters are changed with a single UPDATE evaluated by the database, so two
concurrent writers never lose an increment. Decrements clamp at zero.
"""
from sqlalchemy import case
from sqlalchemy.sql.elements import ColumnElement


def incremented(column, by: int = 1) -> ColumnElement:
    return column + by


def decremented(column, by: int = 1) -> ColumnElement:
    return case((column > by, column - by), else_=0)
