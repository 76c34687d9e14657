"""Versioned schema for the marketplace tables.

Each database/schema/vN.py exposes a ``schema`` dict:

    version     N
    tables      the complete table layout at version N
    migrations  SQL turning version N-1 into version N

An empty database is built straight from the newest layout. A database at an
older version replays the migrations of every later version instead. Either
way the statements run in one transaction, so a failure leaves the previous
version intact.
"""
import importlib
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple

from ..exceptions import DatabaseSchemaError

logger = logging.getLogger(__name__)

SCHEMA_DIR = Path(__file__).resolve().parent.parent / 'schema'
SCHEMA_PACKAGE = 'database.schema'

VERSION_TABLE_SQL = '''
    CREATE TABLE IF NOT EXISTS schema_version (
        version INT8 PRIMARY KEY,
        applied_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
'''
RECORD_VERSION_SQL = 'INSERT INTO schema_version (version) VALUES ($1)'

Plan = List[Tuple[int, List[str]]]

def load_schemas(schema_dir: Path = SCHEMA_DIR, package: str = SCHEMA_PACKAGE) -> Dict[int, Dict[str, Any]]:
    """Import every vN.py under schema_dir, keyed and ordered by N.

    Raises:
        DatabaseSchemaError: If a file cannot be imported, has no ``schema``
            or declares a version different from its name
    """
    schemas = {}
    for path in schema_dir.glob('v*.py'):
        if not path.stem[1:].isdigit():
            logger.warning(f"Ignoring schema file {path.name}")
            continue
        version = int(path.stem[1:])

        try:
            module = importlib.import_module(f"{package}.{path.stem}")
        except ImportError as e:
            raise DatabaseSchemaError(f"Cannot import {path.name}: {e}")

        schema = getattr(module, 'schema', None)
        if schema is None:
            raise DatabaseSchemaError(f"{path.name} defines no schema")
        if schema.get('version') != version:
            raise DatabaseSchemaError(
                f"{path.name} declares version {schema.get('version')}"
            )
        schemas[version] = schema

    return dict(sorted(schemas.items()))

def render_columns(table: Dict[str, Any]) -> str:
    """Column list plus inline primary key and unique constraints."""
    parts = []
    keys = []

    for column in table['columns']:
        sql = f"{column['name']} {column['type']}"
        if 'default' in column:
            sql += f" DEFAULT {column['default']}"
        if column.get('nullable') is False:
            sql += " NOT NULL"
        if 'check' in column:
            sql += f" CHECK ({column['check']})"
        parts.append(sql)

        if column.get('primary_key'):
            keys.append(f"PRIMARY KEY ({column['name']})")
        elif column.get('unique'):
            keys.append(f"UNIQUE ({column['name']})")

    for columns in table.get('unique', []):
        keys.append(f"UNIQUE ({', '.join(columns)})")

    return ', '.join(parts + keys)

def render_table(table: Dict[str, Any]) -> str:
    return f"CREATE TABLE IF NOT EXISTS {table['name']} ({render_columns(table)})"

def render_relations(table: Dict[str, Any]) -> List[str]:
    """Foreign keys and indexes, which need every table to exist first."""
    name = table['name']
    statements = []

    for fk in table.get('foreign_keys', []):
        statements.append(
            f"ALTER TABLE {name} "
            f"ADD CONSTRAINT fk_{name}_{fk['columns'][0]} "
            f"FOREIGN KEY ({', '.join(fk['columns'])}) "
            f"REFERENCES {fk['references']}"
        )

    for index in table.get('indexes', []):
        sql = (
            f"CREATE {'UNIQUE ' if index.get('unique') else ''}INDEX IF NOT EXISTS "
            f"{index['name']} ON {name} ({', '.join(index['columns'])})"
        )
        if 'where' in index:
            sql += f" WHERE {index['where']}"
        statements.append(sql)

    return statements

def fresh_install(schema: Dict[str, Any]) -> List[str]:
    tables = schema.get('tables', [])
    statements = [render_table(t) for t in tables]
    for table in tables:
        statements.extend(render_relations(table))
    return statements

def plan_upgrade(schemas: Dict[int, Dict[str, Any]], current_version: int) -> Plan:
    """Work out which statements bring a database up to the newest version.

    Returns:
        (version, statements) steps in the order they must run; empty when
        the database is already current
    """
    if not schemas:
        raise DatabaseSchemaError("No schema versions found")

    latest = max(schemas)
    if current_version >= latest:
        return []
    if current_version == 0:
        return [(latest, fresh_install(schemas[latest]))]

    return [
        (version, list(schemas[version].get('migrations', [])))
        for version in range(current_version + 1, latest + 1)
        if version in schemas
    ]

class SchemaManager:
    """Brings a database's tables up to the newest schema version."""

    def __init__(self, pool, schema_dir: Optional[Path] = None) -> None:
        self.pool = pool
        self.schema_dir = Path(schema_dir) if schema_dir else SCHEMA_DIR
        self.current_version = 0

    async def initialize(self) -> None:
        """Create or upgrade the schema.

        Raises:
            DatabaseSchemaError: If the schema files are invalid or any
                statement fails; nothing is applied in that case
        """
        try:
            async with self.pool.acquire() as conn:
                await conn.execute(VERSION_TABLE_SQL)
                row = await conn.fetchrow(
                    'SELECT version FROM schema_version ORDER BY version DESC LIMIT 1'
                )
                self.current_version = row['version'] if row else 0

                plan = plan_upgrade(load_schemas(self.schema_dir), self.current_version)
                if not plan:
                    logger.info(f"Schema is up to date at version {self.current_version}")
                    return

                async with conn.transaction():
                    for version, statements in plan:
                        for statement in statements:
                            await conn.execute(statement)
                        await conn.execute(RECORD_VERSION_SQL, version)
                        logger.info(f"Schema now at version {version}")
        except DatabaseSchemaError:
            raise
        except Exception as e:
            logger.error(f"Schema upgrade from version {self.current_version} failed: {e}")
            raise DatabaseSchemaError(f"Failed to apply schema: {e}")

        self.current_version = plan[-1][0]

    async def reset(self) -> None:
        """Drop every table in the public schema, schema_version included."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch('''
                SELECT table_name
                FROM information_schema.tables
                WHERE table_schema = 'public' AND table_type = 'BASE TABLE'
            ''')
            for row in rows:
                await conn.execute(f'DROP TABLE IF EXISTS "{row["table_name"]}" CASCADE')
                logger.info(f"Dropped table {row['table_name']}")
        self.current_version = 0
