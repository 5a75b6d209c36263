"""Idempotent provisioning of the blog schema on the managed PostgreSQL backend.

Every statement is safe to run repeatedly, so the whole sequence is simply
re-applied on each admin validation. Statements run in autocommit mode:
a failure stops the sequence but leaves earlier statements applied, and the
next run picks up where this one stopped.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Protocol

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from db.database import to_async_dsn
from db.models.post import POSTS_TABLE, SLUG_INDEX_NAME

logger = logging.getLogger(__name__)

TRIGGER_FUNCTION = "update_updated_at_column"
TRIGGER_NAME = "update_blog_posts_updated_at"
PUBLIC_READ_POLICY = "Allow public read access"
ADMIN_WRITE_POLICY = "Allow admin full access"

SETUP_OK_MESSAGE = "Blog database setup successful."
SETUP_FAILED_MESSAGE = "Error during blog database validation/setup"


class Connection(Protocol):
    async def execute(self, statement: Any, parameters: Any = None) -> Any: ...


@dataclass(frozen=True)
class ProvisioningResult:
    ok: bool
    message: str
    details: str | None = None


def sql_literal(value: str) -> str:
    """Quote a value for inlining into DDL, where bind parameters are not allowed."""
    escaped = value.replace("'", "''").replace(":", "\\:")
    return f"'{escaped}'"


def sql_identifier(value: str) -> str:
    return '"' + value.replace('"', '""').replace(":", "\\:") + '"'


class SchemaProvisioner:
    """Creates the posts table, its trigger, index and policies, and the image bucket."""

    def __init__(self, *, admin_email: str | None, bucket: str) -> None:
        self.admin_email = admin_email
        self.bucket = bucket

    async def run(self, conn: Connection) -> None:
        await self._ensure_uuid_extension(conn)
        await self._ensure_trigger_function(conn)
        await self._ensure_posts_table(conn)
        await self._ensure_row_level_security(conn)
        await self._ensure_post_policies(conn)
        await self._ensure_updated_at_trigger(conn)
        await self._ensure_slug_index(conn)
        await self._ensure_bucket(conn)
        await self._ensure_storage_policies(conn)

    async def _exec(self, conn: Connection, sql: str) -> Any:
        return await conn.execute(text(sql))

    async def _ensure_uuid_extension(self, conn: Connection) -> None:
        try:
            await self._exec(conn, 'CREATE EXTENSION IF NOT EXISTS "uuid-ossp";')
            logger.info("uuid-ossp extension ensured")
        except SQLAlchemyError as e:
            # Often already present or not permitted for this role; the table default still works
            logger.warning("Could not ensure uuid-ossp extension: %s", e)

    async def _ensure_trigger_function(self, conn: Connection) -> None:
        await self._exec(
            conn,
            f"""
            CREATE OR REPLACE FUNCTION public.{TRIGGER_FUNCTION}()
            RETURNS TRIGGER AS $$
            BEGIN
                NEW.updated_at = now();
                RETURN NEW;
            END;
            $$ LANGUAGE plpgsql;
            """,
        )
        logger.info("%s function ensured", TRIGGER_FUNCTION)

    async def _ensure_posts_table(self, conn: Connection) -> None:
        await self._exec(
            conn,
            f"""
            CREATE TABLE IF NOT EXISTS public.{POSTS_TABLE} (
                id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
                title TEXT NOT NULL,
                slug TEXT NOT NULL UNIQUE,
                published_at TIMESTAMPTZ NOT NULL,
                description TEXT,
                keywords TEXT,
                content TEXT NOT NULL,
                created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
            );
            """,
        )
        logger.info("%s table ensured", POSTS_TABLE)

    async def _ensure_row_level_security(self, conn: Connection) -> None:
        await self._exec(conn, f"ALTER TABLE public.{POSTS_TABLE} ENABLE ROW LEVEL SECURITY;")
        await self._exec(conn, f"ALTER TABLE public.{POSTS_TABLE} FORCE ROW LEVEL SECURITY;")
        logger.info("Row level security enabled and forced for %s", POSTS_TABLE)

    async def _ensure_post_policies(self, conn: Connection) -> None:
        public_read = sql_identifier(PUBLIC_READ_POLICY)
        await self._exec(conn, f"DROP POLICY IF EXISTS {public_read} ON public.{POSTS_TABLE};")
        await self._exec(
            conn,
            f"CREATE POLICY {public_read} ON public.{POSTS_TABLE} FOR SELECT USING (true);",
        )
        logger.info("Public read policy ensured for %s", POSTS_TABLE)

        if not self.admin_email:
            logger.warning("No admin email configured; admin write policy for %s not created", POSTS_TABLE)
            return

        admin_write = sql_identifier(ADMIN_WRITE_POLICY)
        email = sql_literal(self.admin_email)
        await self._exec(conn, f"DROP POLICY IF EXISTS {admin_write} ON public.{POSTS_TABLE};")
        await self._exec(
            conn,
            f"""
            CREATE POLICY {admin_write}
            ON public.{POSTS_TABLE}
            FOR ALL
            USING (auth.email() = {email})
            WITH CHECK (auth.email() = {email});
            """,
        )
        logger.info("Admin write policy ensured for %s", POSTS_TABLE)

    async def _ensure_updated_at_trigger(self, conn: Connection) -> None:
        result = await conn.execute(
            text("SELECT 1 FROM pg_trigger WHERE tgname = :name"),
            {"name": TRIGGER_NAME},
        )
        if result.first() is not None:
            logger.info("%s trigger already exists, skipping creation", TRIGGER_NAME)
            return

        await self._exec(conn, f"DROP TRIGGER IF EXISTS {TRIGGER_NAME} ON public.{POSTS_TABLE};")
        await self._exec(
            conn,
            f"""
            CREATE TRIGGER {TRIGGER_NAME}
            BEFORE UPDATE ON public.{POSTS_TABLE}
            FOR EACH ROW
            EXECUTE PROCEDURE public.{TRIGGER_FUNCTION}();
            """,
        )
        logger.info("%s trigger created", TRIGGER_NAME)

    async def _ensure_slug_index(self, conn: Connection) -> None:
        await self._exec(
            conn,
            f"CREATE UNIQUE INDEX IF NOT EXISTS {SLUG_INDEX_NAME} ON public.{POSTS_TABLE}(slug);",
        )
        logger.info("%s index ensured", SLUG_INDEX_NAME)

    async def _ensure_bucket(self, conn: Connection) -> None:
        bucket = sql_literal(self.bucket)
        await self._exec(
            conn,
            f"""
            INSERT INTO storage.buckets (id, name, public)
            VALUES ({bucket}, {bucket}, true)
            ON CONFLICT (id) DO NOTHING;
            """,
        )
        logger.info("Storage bucket %s ensured", self.bucket)

    async def _ensure_storage_policies(self, conn: Connection) -> None:
        bucket = sql_literal(self.bucket)
        public_read = sql_identifier(f"Public Read Access for {self.bucket}")
        admin_write = sql_identifier(f"Admin Write Access for {self.bucket}")

        await self._exec(conn, f"DROP POLICY IF EXISTS {public_read} ON storage.objects;")
        await self._exec(
            conn,
            f"CREATE POLICY {public_read} ON storage.objects FOR SELECT USING (bucket_id = {bucket});",
        )
        logger.info("Public read policy for bucket %s ensured", self.bucket)

        await self._exec(conn, f"DROP POLICY IF EXISTS {admin_write} ON storage.objects;")
        if not self.admin_email:
            logger.warning("No admin email configured; admin write policy for bucket %s not created", self.bucket)
            return

        email = sql_literal(self.admin_email)
        await self._exec(
            conn,
            f"""
            CREATE POLICY {admin_write}
            ON storage.objects
            FOR ALL
            USING (bucket_id = {bucket} AND auth.email() = {email})
            WITH CHECK (bucket_id = {bucket} AND auth.email() = {email});
            """,
        )
        logger.info("Admin write policy for bucket %s ensured", self.bucket)


async def ensure_schema(database_url: str, *, admin_email: str | None, bucket: str) -> ProvisioningResult:
    """Open a dedicated connection, run the provisioner and always release it."""
    provisioner = SchemaProvisioner(admin_email=admin_email, bucket=bucket)
    engine = create_async_engine(to_async_dsn(database_url), poolclass=NullPool)
    try:
        async with engine.connect() as conn:
            conn = await conn.execution_options(isolation_level="AUTOCOMMIT")
            await provisioner.run(conn)
    except Exception as e:
        logger.error("%s: %s", SETUP_FAILED_MESSAGE, e)
        return ProvisioningResult(ok=False, message=SETUP_FAILED_MESSAGE, details=str(e))
    finally:
        try:
            await engine.dispose()
        except Exception as e:
            logger.error("Error releasing provisioning connection: %s", e)

    logger.info(SETUP_OK_MESSAGE)
    return ProvisioningResult(ok=True, message=SETUP_OK_MESSAGE)
