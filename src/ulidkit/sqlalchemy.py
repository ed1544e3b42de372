"""SQLAlchemy integration for ULID.

Provides a TypeDecorator and helpers for using ULIDs as typed columns
that store as TEXT in the database. The 26-character form sorts like the
binary value, so ``ORDER BY`` on these columns is chronological.

Example:
    from sqlalchemy.orm import DeclarativeBase, Mapped
    from ulidkit import ULID, factory
    from ulidkit.sqlalchemy import ulid_column

    class Base(DeclarativeBase):
        pass

    class Event(Base):
        __tablename__ = "events"

        id: Mapped[ULID] = ulid_column(primary_key=True, default=factory())
        parent_id: Mapped[ULID | None] = ulid_column(nullable=True)
        name: Mapped[str]
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, TypedDict, Unpack, cast

from sqlalchemy import Text
from sqlalchemy.orm import mapped_column
from sqlalchemy.types import TypeDecorator

from ulidkit import ULID, ULIDError, unmarshal


if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.engine import Dialect
    from sqlalchemy.orm import MappedColumn


logger = logging.getLogger(__name__)


class ULIDColumnKwargs(TypedDict, total=False):
    """Keyword arguments for ulid_column, matching mapped_column's common options."""

    primary_key: bool
    nullable: bool
    default: object
    default_factory: Callable[[], object]
    index: bool
    unique: bool
    insert_default: object
    onupdate: object


class ULIDColumn(TypeDecorator[ULID]):
    """SQLAlchemy TypeDecorator for ULID storage as TEXT.

    Serializes ULID objects to their 26-character string on write
    and deserializes back to ULID objects on read.

    Example:
        id: Mapped[ULID] = mapped_column(ULIDColumn(), primary_key=True)
    """

    impl = Text
    cache_ok = True

    def process_bind_param(
        self,
        value: ULID | str | None,
        dialect: Dialect,  # noqa: ARG002
    ) -> str | None:
        """Convert ULID to string for database storage.

        Strings are validated before storing, so malformed IDs fail at
        write time rather than read time.
        """
        if value is None:
            return None
        if isinstance(value, ULID):
            return str(value)
        if isinstance(value, str):
            unmarshal(value)  # Raises ULIDError if invalid
            return value
        raise ULIDError(f"Expected ULID or str, got {type(value).__name__}")

    def process_result_value(
        self,
        value: str | None,
        dialect: Dialect,  # noqa: ARG002
    ) -> ULID | None:
        """Convert database string to ULID object."""
        if value is None:
            return None
        try:
            return unmarshal(value)
        except ULIDError:
            logger.warning("Stored value %r is not a valid ULID", value)
            raise


def ulid_column(**kwargs: Unpack[ULIDColumnKwargs]) -> MappedColumn[ULID]:
    """Create a mapped_column storing ULIDs (pure SQLAlchemy).

    Args:
        **kwargs: Additional arguments passed to mapped_column.
            Supports: primary_key, nullable, default, default_factory,
            index, unique, insert_default, onupdate.

    Returns:
        A mapped_column configured with ULIDColumn.

    Example:
        class Event(Base):
            __tablename__ = "events"

            id: Mapped[ULID] = ulid_column(primary_key=True)
            parent_id: Mapped[ULID | None] = ulid_column(nullable=True)
    """
    return mapped_column(ULIDColumn(), **kwargs)


class ULIDFieldKwargs(TypedDict, total=False):
    """Keyword arguments for ulid_field, matching SQLModel Field's common options."""

    default: object
    default_factory: Callable[[], object]
    primary_key: bool
    index: bool
    unique: bool


def ulid_field(**kwargs: Unpack[ULIDFieldKwargs]) -> Any:  # noqa: ANN401 - return type matches SQLModel's Field
    """Create a SQLModel Field storing ULIDs.

    Args:
        **kwargs: Additional arguments passed to Field.
            Supports: default, default_factory, primary_key, index, unique.

    Returns:
        A SQLModel Field configured with ULIDColumn as its sa_type.

    Example:
        from sqlmodel import SQLModel
        from ulidkit import ULID, factory
        from ulidkit.sqlalchemy import ulid_field

        class Event(SQLModel, table=True):
            id: ULID = ulid_field(default_factory=factory(), primary_key=True)
            parent_id: ULID | None = ulid_field(default=None)
    """
    # Import here to avoid hard dependency on sqlmodel
    from sqlmodel import Field

    # SQLModel's sa_type is incorrectly typed as type[Any] but accepts TypeEngine instances.
    # Use cast to satisfy the type checker until SQLModel fixes their stubs.
    sa_type = cast("type[Any]", ULIDColumn())
    return Field(sa_type=sa_type, **kwargs)


__all__ = ["ULIDColumn", "ulid_column", "ulid_field"]
