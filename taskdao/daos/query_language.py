"""
Query languages accepted by `Dao.query`.
"""

from enum import Enum


class QueryLanguage(Enum):
    """
    Query language.

    - ``ORM``: the statement is a SQLAlchemy ``Select`` (e.g. ``select(Customer).where(...)``).
    - ``SQL``: the statement is a raw SQL string with ``:name`` bind parameters;
      result rows are mapped onto the DAO's entity class.
    """

    ORM = "sqlalchemy.orm"
    SQL = "sqlalchemy.sql.text"

    @property
    def identifier(self) -> str:
        """Identifier of this query language, e.g. ``QueryLanguage.SQL.identifier == "sqlalchemy.sql.text"``."""
        return self.value
