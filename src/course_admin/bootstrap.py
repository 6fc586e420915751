"""Base schema for the course back office.

Creates the fixed tables (document index, users, courses, tutors,
students, course editions, enrolments) and seeds a default administrator.
Every statement is ``CREATE TABLE IF NOT EXISTS``, so running the
bootstrap against an initialized database changes nothing.

Usage:
    from course_admin.bootstrap import init_database

    result = await init_database(adapter)
    result.admin_created  # False on the second run
"""

import asyncio
import logging

from pydantic import BaseModel, Field

from course_admin.adapters.base import DatabaseClient
from course_admin.forms.transform import DEFAULT_HASH_ROUNDS, hash_password

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_EMAIL = "admin@admin.com"
DEFAULT_ADMIN_PASSWORD = "admin123"

# Parents first: edicionescursos and matriculasalumnos point at earlier tables
BASE_TABLES: dict[str, str] = {
    "indice": """
        CREATE TABLE IF NOT EXISTS indice (
            id SERIAL PRIMARY KEY,
            enlace TEXT NOT NULL,
            fecha_creacion TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            activo BOOLEAN DEFAULT true,
            tema VARCHAR(255) NOT NULL,
            curso VARCHAR(255) NOT NULL,
            autor VARCHAR(255) NOT NULL
        )
    """,
    "usuarios": """
        CREATE TABLE IF NOT EXISTS usuarios (
            id SERIAL PRIMARY KEY,
            email VARCHAR(255) UNIQUE NOT NULL,
            password VARCHAR(255) NOT NULL,
            rol VARCHAR(50) DEFAULT 'admin',
            ultima_entrada TIMESTAMP,
            activo BOOLEAN DEFAULT true,
            fecha_creacion TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """,
    "cursos": """
        CREATE TABLE IF NOT EXISTS cursos (
            id SERIAL PRIMARY KEY,
            codigo VARCHAR(25) UNIQUE NOT NULL,
            descripcion VARCHAR(255) NOT NULL,
            duracion_horas INTEGER DEFAULT 50,
            nivel INTEGER,
            activo BOOLEAN DEFAULT true,
            observaciones TEXT,
            fecha_creacion TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """,
    "tutores": """
        CREATE TABLE IF NOT EXISTS tutores (
            id SERIAL PRIMARY KEY,
            nombre VARCHAR(25) NOT NULL,
            apellidos VARCHAR(25),
            dni VARCHAR(15),
            email VARCHAR(80) UNIQUE NOT NULL,
            tlf VARCHAR(80),
            activo BOOLEAN DEFAULT true,
            especialidad VARCHAR(155),
            observaciones TEXT,
            fecha_creacion TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """,
    "alumnos": """
        CREATE TABLE IF NOT EXISTS alumnos (
            id SERIAL PRIMARY KEY,
            nombre VARCHAR(25) NOT NULL,
            apellidos VARCHAR(25),
            dni VARCHAR(15),
            email VARCHAR(80) UNIQUE NOT NULL,
            tlf VARCHAR(80),
            grupo VARCHAR(155),
            activo BOOLEAN DEFAULT true,
            observaciones TEXT,
            fecha_creacion TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """,
    "edicionescursos": """
        CREATE TABLE IF NOT EXISTS edicionescursos (
            id SERIAL PRIMARY KEY,
            curso_id INTEGER REFERENCES cursos(id),
            activo BOOLEAN DEFAULT true,
            fecha_inicio DATE,
            fecha_fin DATE,
            tutor_id INTEGER REFERENCES tutores(id),
            maximo_alumnos INTEGER,
            fecha_creacion TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """,
    "matriculasalumnos": """
        CREATE TABLE IF NOT EXISTS matriculasalumnos (
            id SERIAL PRIMARY KEY,
            ediciones_cursos_id INTEGER REFERENCES edicionescursos(id),
            activo BOOLEAN DEFAULT true,
            alumno_id INTEGER REFERENCES alumnos(id),
            fecha_creacion TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """,
}


class BootstrapResult(BaseModel):
    """What ``init_database`` did."""

    tables: list[str] = Field(default_factory=list)
    admin_created: bool = False


async def init_database(
    adapter: DatabaseClient,
    admin_email: str = DEFAULT_ADMIN_EMAIL,
    admin_password: str = DEFAULT_ADMIN_PASSWORD,
    hash_rounds: int = DEFAULT_HASH_ROUNDS,
) -> BootstrapResult:
    """Create the base tables and seed the administrator account.

    The administrator is only inserted when no user with *admin_email*
    exists; an existing account keeps its password.

    Args:
        adapter: Database adapter.
        admin_email: Email of the default administrator.
        admin_password: Plain password, stored as a bcrypt hash.
        hash_rounds: bcrypt cost factor.

    Returns:
        ``BootstrapResult`` with the tables ensured and whether the
        administrator was created.
    """
    result = BootstrapResult()

    for table, ddl in BASE_TABLES.items():
        await adapter.execute(ddl)
        logger.info("Table %s ready", table)
        result.tables.append(table)

    existing = await adapter.select(
        "usuarios", "id", filters={"email": admin_email}, limit=1
    )
    if existing:
        logger.info("Admin user %s already exists", admin_email)
        return result

    hashed = await asyncio.to_thread(hash_password, admin_password, hash_rounds)
    await adapter.insert(
        "usuarios", {"email": admin_email, "password": hashed, "rol": "admin"}
    )
    logger.info("Admin user %s created", admin_email)
    result.admin_created = True

    return result
