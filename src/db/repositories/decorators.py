from collections.abc import Callable
import functools
import logging
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from core.exceptions import DatabaseError

logger = logging.getLogger(__name__)

AsyncFunc = Callable[..., Any]


def handle_db_errors(entity_name: str = ""):
    """Decorator translating SQLAlchemy failures into DatabaseError.

    Every store call is attempted exactly once; there is no retry.
    IntegrityError is re-raised untouched so the service layer can map a
    unique-slug violation to a conflict.

    Args:
        entity_name: Entity name for logging
    """

    def decorator(func: AsyncFunc) -> AsyncFunc:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            func_name = getattr(func, "__name__", str(func))

            try:
                return await func(*args, **kwargs)
            except IntegrityError:
                raise
            except SQLAlchemyError as e:
                entity_info = _extract_entity_info(func_name, args, kwargs)
                log_prefix = f"{entity_name} " if entity_name else ""
                logger.error(f"Database error while {log_prefix}{func_name} {entity_info}: {e}")
                raise DatabaseError(message="Database failure", details=str(e)) from e
            except Exception as e:
                entity_info = _extract_entity_info(func_name, args, kwargs)
                log_prefix = f"{entity_name} " if entity_name else ""
                logger.error(f"Unexpected error while {log_prefix}{func_name} {entity_info}: {e}")
                raise

        return wrapper

    return decorator


def _extract_entity_info(func_name: str, args: tuple, kwargs: dict) -> str:
    """Extracts entity information from function arguments for logging."""
    # Skip the first argument (usually db: AsyncSession)
    if len(args) > 1 and isinstance(args[1], int | str):
        return str(args[1])

    for key in ["slug", "page", "offset"]:
        if key in kwargs:
            return f"{key}={kwargs[key]}"

    return ""
